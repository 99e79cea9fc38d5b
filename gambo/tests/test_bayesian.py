"""Tests for Bayesian evidence fusion.

Tests cover:
  - Prior construction (fixed draw rate, away floor, normalization)
  - Evidence direction follows the sign of the signal
  - Sequential updates stay a valid distribution under extreme evidence
  - Posterior predictive sampling is reproducible with a seeded generator
  - Model-vs-market comparison
"""

import numpy as np
import pytest

from gambo.bayesian import (
    BayesianFusion,
    BayesianPrior,
    Evidence,
    EvidenceType,
    build_evidence,
    build_prior,
)
from gambo.layers import ContextLayer, MarketLayer, MLLayer, StatisticalLayer
from gambo.layers.statistical import StatisticalResult
from gambo.types import BetSignal, Side


def _layers(game):
    stat = StatisticalLayer().predict(game)
    ctx = ContextLayer().adjust(stat, game)
    ml = MLLayer().predict(game, stat.probability, ctx.probability)
    mkt = MarketLayer().analyze(game.odds, ml.probability)
    return stat, ctx, ml, mkt


def _prior(home=0.45, draw=0.25, away=0.30, confidence=0.7):
    return BayesianPrior(home_win_rate=home, draw_rate=draw, away_win_rate=away, confidence=confidence)


# ============================================================
# Prior and evidence
# ============================================================

class TestPriorAndEvidence:

    def test_prior_sums_to_one(self, game):
        stat = StatisticalLayer().predict(game)
        prior = build_prior(stat)
        total = prior.home_win_rate + prior.draw_rate + prior.away_win_rate
        assert total == pytest.approx(1.0)

    def test_prior_floors_away_probability(self):
        stat = StatisticalResult(probability=0.9, confidence=0.8, expected_value=0.0, models=[])
        prior = build_prior(stat)
        assert prior.away_win_rate > 0, "away mass must never be zero"
        assert prior.home_win_rate + prior.draw_rate + prior.away_win_rate == pytest.approx(1.0)
        assert prior.home_win_rate == pytest.approx(0.9 / 1.16)
        assert prior.confidence == 0.8, "prior confidence follows the statistical layer"

    def test_evidence_order_is_fixed(self, game):
        stat, ctx, ml, mkt = _layers(game)
        evidence = build_evidence(build_prior(stat), stat, ctx, ml, mkt)
        assert [e.type for e in evidence] == [
            EvidenceType.STATISTICAL,
            EvidenceType.FORM,
            EvidenceType.INJURY,
            EvidenceType.TACTICAL,
            EvidenceType.MARKET,
        ]

    def test_negative_signal_points_away(self, game):
        # Swap the sides so the away team is in form
        flipped = game.model_copy(update={"home_stats": game.away_stats, "away_stats": game.home_stats})
        stat, ctx, ml, mkt = _layers(flipped)
        form = build_evidence(build_prior(stat), stat, ctx, ml, mkt)[1]
        assert form.direction == Side.AWAY
        assert form.likelihood >= 1.0, "builders encode sign in direction, not in likelihood < 1"

    def test_market_strength_depends_on_sharp_money(self, game):
        stat, ctx, ml, mkt = _layers(game)
        market = build_evidence(build_prior(stat), stat, ctx, ml, mkt)[-1]
        assert market.strength == pytest.approx(0.5)


# ============================================================
# Sequential update
# ============================================================

class TestBayesianUpdate:

    def setup_method(self):
        self.fusion = BayesianFusion()

    def test_uninformative_evidence_keeps_prior(self):
        prior = _prior()
        fused = self.fusion.update(prior, [Evidence(EvidenceType.FORM, 1.0, 1.0, Side.HOME)])
        assert fused.home == pytest.approx(0.45)
        assert fused.draw == pytest.approx(0.25)
        assert fused.away == pytest.approx(0.30)

    def test_home_evidence_raises_home(self):
        prior = _prior()
        fused = self.fusion.update(prior, [Evidence(EvidenceType.FORM, 1.5, 1.0, Side.HOME)])
        assert fused.home > prior.home_win_rate
        assert fused.away < prior.away_win_rate
        assert fused.favorite == Side.HOME

    def test_draw_evidence(self):
        fused = self.fusion.update(_prior(), [Evidence(EvidenceType.TACTICAL, 3.0, 1.0, Side.DRAW)])
        assert fused.favorite == Side.DRAW

    @pytest.mark.parametrize("likelihood", [0.0, 1e-9, 1e6, 1e12])
    @pytest.mark.parametrize("direction", [Side.HOME, Side.DRAW, Side.AWAY])
    def test_extreme_evidence_stays_a_distribution(self, likelihood, direction):
        evidence = [Evidence(EvidenceType.MARKET, likelihood, 1.0, direction)] * 5
        fused = self.fusion.update(_prior(), evidence)
        for p in (fused.home, fused.draw, fused.away):
            assert 0.0 <= p <= 1.0, f"probability out of range: {p}"
        assert fused.home + fused.draw + fused.away == pytest.approx(1.0)
        assert 0.01 <= fused.confidence <= 0.99

    def test_strength_out_of_range_is_clamped(self):
        a = self.fusion.update(_prior(), [Evidence(EvidenceType.FORM, 2.0, 5.0, Side.HOME)])
        b = self.fusion.update(_prior(), [Evidence(EvidenceType.FORM, 2.0, 1.0, Side.HOME)])
        assert a.home == pytest.approx(b.home)

    def test_update_is_order_dependent(self):
        prior = _prior(home=0.35, draw=0.30, away=0.35)
        first = Evidence(EvidenceType.FORM, 1.8, 0.9, Side.HOME)
        second = Evidence(EvidenceType.MARKET, 1.05, 0.5, Side.AWAY)
        ab = self.fusion.update(prior, [first, second])
        ba = self.fusion.update(prior, [second, first])
        # Probabilities commute; the running confidence does not
        assert ab.home == pytest.approx(ba.home)
        assert ab.confidence != pytest.approx(ba.confidence)


# ============================================================
# Posterior predictive
# ============================================================

class TestPosteriorPredictive:

    def test_seeded_generator_is_reproducible(self, game):
        stat, ctx, ml, mkt = _layers(game)
        prior = build_prior(stat)
        evidence = build_evidence(prior, stat, ctx, ml, mkt)
        fusion = BayesianFusion(samples=300)

        a = fusion.posterior_predictive(prior, evidence, np.random.default_rng(11))
        b = fusion.posterior_predictive(prior, evidence, np.random.default_rng(11))
        assert a == b

    def test_summary_is_ordered(self, game):
        stat, ctx, ml, mkt = _layers(game)
        prior = build_prior(stat)
        evidence = build_evidence(prior, stat, ctx, ml, mkt)
        summary = BayesianFusion().posterior_predictive(prior, evidence, np.random.default_rng(3), samples=400)
        assert summary.samples == 400
        assert 0.0 <= summary.lower <= summary.mean <= summary.upper <= 1.0
        assert summary.variance >= 0.0

    def test_zero_noise_collapses(self):
        prior = _prior()
        evidence = [Evidence(EvidenceType.FORM, 1.4, 0.8, Side.HOME)]
        fusion = BayesianFusion(noise_std=0.0, samples=50)
        summary = fusion.posterior_predictive(prior, evidence, np.random.default_rng(0))
        exact = fusion.update(prior, evidence).home
        assert summary.mean == pytest.approx(exact)
        assert summary.variance == pytest.approx(0.0, abs=1e-15)


# ============================================================
# Model comparison
# ============================================================

class TestModelComparison:

    def setup_method(self):
        self.fusion = BayesianFusion()

    def test_equal_probabilities(self):
        result = self.fusion.compare_models(0.5, 0.5)
        assert result.bayes_factor == pytest.approx(1.0)
        assert result.posterior_accuracy == pytest.approx(0.70)
        assert result.signal == BetSignal.NO_BET

    def test_strong_signal(self):
        result = self.fusion.compare_models(0.75, 0.5)
        assert result.bayes_factor == pytest.approx(3.0)
        assert result.posterior_accuracy == pytest.approx(2.1 / 2.4)
        assert result.signal == BetSignal.STRONG

    def test_extreme_probabilities_are_clipped(self):
        result = self.fusion.compare_models(1.0, 0.0)
        assert np.isfinite(result.bayes_factor)
        assert 0.0 < result.posterior_accuracy <= 1.0
