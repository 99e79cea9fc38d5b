"""Tests for bundle selection strategies and the async orchestrator."""

import asyncio
from datetime import date

import pytest

from gambo.bundles import (
    NO_BUNDLE_MESSAGE,
    BundleGenerator,
    LegacySelectionStrategy,
    PortfolioSelectionStrategy,
    bundle_name,
    legacy_score,
    qualifies,
)
from gambo.config import EngineConfig
from gambo.engine import GamboEngine
from gambo.errors import InsufficientDataError, NoCombinationFoundError
from gambo.learning import ModelWeightStore
from gambo.tests.factories import StubPredictor, make_game, make_prediction
from gambo.types import BundleRequest, BundleType, Sport


@pytest.fixture
def pair(later):
    """Two uncorrelated legs: confidence 80 / 82 at 1.6 / 1.7."""
    return {
        "a": make_prediction("a", 80, 1.6, 0.70, sport=Sport.SOCCER, league="Serie A", scheduled_at=later(0)),
        "b": make_prediction("b", 82, 1.7, 0.65, sport=Sport.BASKETBALL, league="NBA", scheduled_at=later(12)),
    }


def games_for(predictions):
    return [
        make_game(p.game_id, sport=p.sport, league=p.league, scheduled_at=p.scheduled_at)
        for p in predictions.values()
    ]


# ============================================================
# Qualification and naming
# ============================================================

class TestQualification:

    def test_filters(self):
        assert qualifies(make_prediction("x", 75, 1.6, 0.70), 70)
        assert not qualifies(make_prediction("x", 65, 1.6, 0.70), 70), "below confidence"
        assert not qualifies(make_prediction("x", 90, 1.6, 0.60), 70), "no edge"
        # Edge > 0 but expected return under 1.01
        thin = make_prediction("x", 90, 1.6, 0.63).model_copy(update={"expected_return": 1.005})
        assert not qualifies(thin, 70)

    def test_bundle_names(self):
        assert bundle_name(BundleType.STANDARD, 90) == "Elite Optimized Acca"
        assert bundle_name(BundleType.BTTS, 76) == "Premium Goals Galore"
        assert bundle_name(BundleType.MEGA, 65) == "Select Mega Acca"
        assert bundle_name(BundleType.LIVE, 10) == "Value Live Edge"


# ============================================================
# Two-asset scenario
# ============================================================

class TestTwoAssetBundle:

    def test_portfolio_strategy(self, pair):
        generator = BundleGenerator(StubPredictor(pair), weight_store=ModelWeightStore())
        request = BundleRequest(target_odds=2.72, min_confidence=70, max_games=2)
        bundle = asyncio.run(generator.generate(request, games_for(pair)))

        assert {g.game_id for g in bundle.games} == {"a", "b"}
        assert bundle.expected_return == pytest.approx(2.72)
        assert bundle.confidence == 81.0
        # 0.455 x 2.72 is outside 20% of the target, so only the top-ER fallback fits
        assert bundle.metadata.fallback_used
        assert bundle.metadata.strategy == "portfolio"
        assert bundle.metadata.portfolio_metrics.expected_value == pytest.approx(0.70 * 0.65 * 2.72)
        assert set(bundle.metadata.kelly_stakes) == {"a", "b"}
        assert all(0.0 <= s <= 0.10 for s in bundle.metadata.kelly_stakes.values())
        assert bundle.games[0].pick.endswith("to win")

    def test_legacy_strategy(self, pair):
        generator = BundleGenerator(StubPredictor(pair), strategy=LegacySelectionStrategy())
        request = BundleRequest(target_odds=2.72, min_confidence=70, max_games=2)
        bundle = asyncio.run(generator.generate(request, games_for(pair)))

        assert {g.game_id for g in bundle.games} == {"a", "b"}
        assert bundle.expected_return == pytest.approx(1.6 * 1.7)
        assert bundle.confidence == 81.0
        assert not bundle.metadata.fallback_used
        assert bundle.metadata.strategy == "legacy"

    def test_confidence_floored_at_minimum(self, later):
        preds = {
            "a": make_prediction("a", 71, 1.6, 0.70, league="A", scheduled_at=later(0)),
            "b": make_prediction("b", 71, 1.7, 0.65, sport=Sport.TENNIS, league="B", scheduled_at=later(12)),
        }
        generator = BundleGenerator(StubPredictor(preds))
        request = BundleRequest(target_odds=2.72, min_confidence=71, max_games=2)
        bundle = asyncio.run(generator.generate(request, games_for(preds)))
        assert bundle.confidence >= 71.0


# ============================================================
# Selection strategies
# ============================================================

class TestStrategies:

    def test_legacy_score_prefers_confident_diverse_legs(self, pair):
        same_sport = [pair["a"], pair["a"].model_copy(update={"game_id": "c"})]
        assert legacy_score([pair["a"], pair["b"]]) > legacy_score(same_sport)
        assert legacy_score([pair["a"], pair["b"]]) == pytest.approx(81 * 0.5 + 1.0 * 0.3 - 1.0 / 100 * 0.2)

    def test_legacy_no_combination(self, pair):
        request = BundleRequest(target_odds=10.0, max_games=2)
        with pytest.raises(NoCombinationFoundError):
            LegacySelectionStrategy().select(list(pair.values()), request)

    def test_legacy_relaxed_tolerance(self, pair):
        # 2.72 is 24% short of 3.6: outside 15%, inside 30%
        request = BundleRequest(target_odds=3.6, max_games=2)
        strategy = LegacySelectionStrategy()
        with pytest.raises(NoCombinationFoundError):
            strategy.select(list(pair.values()), request)
        selection = strategy.relaxed().select(list(pair.values()), request)
        assert selection.combined_odds == pytest.approx(2.72)

    def test_portfolio_fallback_is_flagged(self, later):
        # Same sport, league and kickoff: correlation well above the cap
        preds = {
            k: make_prediction(k, 85, odds, p, scheduled_at=later(0))
            for k, odds, p in (("a", 1.8, 0.62), ("b", 1.9, 0.58), ("c", 2.0, 0.55))
        }
        selection = PortfolioSelectionStrategy().select(
            list(preds.values()), BundleRequest(target_odds=6.84, max_games=3)
        )
        assert selection.fallback_used
        assert selection.criteria["max_correlation"] == 0.6


# ============================================================
# Orchestration
# ============================================================

class TestOrchestration:

    def test_insufficient_predictions(self, pair):
        only_one = {"a": pair["a"]}
        generator = BundleGenerator(StubPredictor(only_one))
        request = BundleRequest(target_odds=2.0)
        with pytest.raises(InsufficientDataError):
            asyncio.run(generator.generate(request, games_for(only_one)))

    def test_report_instead_of_raise(self, pair):
        generator = BundleGenerator(StubPredictor({"a": pair["a"]}))
        outcome = asyncio.run(generator.generate_or_report(BundleRequest(target_odds=2.0), games_for({"a": pair["a"]})))
        assert not outcome.ok
        assert outcome.message == NO_BUNDLE_MESSAGE

    def test_relaxed_retry(self, pair):
        generator = BundleGenerator(StubPredictor(pair), strategy=LegacySelectionStrategy())
        request = BundleRequest(target_odds=3.6, max_games=2)
        outcome = asyncio.run(generator.generate_or_report(request, games_for(pair)))
        assert outcome.ok
        assert outcome.bundle.metadata.selection_criteria["odds_tolerance"] == 0.30

    def test_unreachable_target_reports(self, pair):
        generator = BundleGenerator(StubPredictor(pair), strategy=LegacySelectionStrategy())
        outcome = asyncio.run(generator.generate_or_report(BundleRequest(target_odds=50.0), games_for(pair)))
        assert outcome.bundle is None
        assert outcome.message == NO_BUNDLE_MESSAGE

    def test_failed_prediction_is_skipped(self, pair, later):
        preds = dict(pair)
        preds["broken"] = make_prediction("broken", 90, 2.0, 0.7, scheduled_at=later(30))
        predictor = StubPredictor(preds, failing={"broken"})
        generator = BundleGenerator(predictor)
        request = BundleRequest(target_odds=2.72, max_games=3)
        bundle = asyncio.run(generator.generate(request, games_for(preds)))
        assert "broken" in predictor.calls
        assert "broken" not in {g.game_id for g in bundle.games}

    def test_sport_and_date_filters(self, pair, later):
        preds = dict(pair)
        preds["tennis"] = make_prediction("tennis", 90, 1.8, 0.7, sport=Sport.TENNIS, league="ATP", scheduled_at=later(48))
        predictor = StubPredictor(preds)
        generator = BundleGenerator(predictor)

        by_sport = BundleRequest(target_odds=2.72, sports=[Sport.SOCCER, Sport.BASKETBALL], max_games=2)
        asyncio.run(generator.generate(by_sport, games_for(preds)))
        assert "tennis" not in predictor.calls

        predictor.calls.clear()
        by_date = BundleRequest(target_odds=2.72, date=date(2026, 3, 14), max_games=2)
        with pytest.raises(InsufficientDataError):
            # Only "a" kicks off on the 14th
            asyncio.run(generator.generate(by_date, games_for(preds)))
        assert predictor.calls == ["a"]

    def test_end_to_end_with_engine(self, later):
        # Favourite priced at 1.35 / 1.38: edge 7-9% over the market, confidence 70
        engine = GamboEngine(EngineConfig(random_seed=3, posterior_samples=50))
        games = [
            make_game("g1", home_odds=1.35, league="Premier League", scheduled_at=later(0)),
            make_game("g2", home_odds=1.38, league="La Liga", scheduled_at=later(10)),
        ]
        generator = BundleGenerator(engine)
        request = BundleRequest(target_odds=1.3, min_confidence=65, max_games=2)
        candidates = asyncio.run(generator.qualify(request, games))
        assert {p.game_id for p in candidates} == {"g1", "g2"}
        assert all(p.expected_return >= 1.01 for p in candidates)

        outcome = asyncio.run(generator.generate_or_report(request, games))
        assert outcome.ok, f"expected a bundle, got: {outcome.message}"
        bundle = outcome.bundle
        assert {g.game_id for g in bundle.games} == {"g1", "g2"}
        assert bundle.expected_return == pytest.approx(1.35 * 1.38)
        assert bundle.confidence == 70.0
        assert all(0.0 < s <= 0.10 for s in bundle.metadata.kelly_stakes.values())
        assert [g.stake for g in bundle.games] == [bundle.metadata.kelly_stakes[g.game_id] for g in bundle.games]

    def test_bundle_type_names_but_keeps_home_win_picks(self, pair):
        generator = BundleGenerator(StubPredictor(pair))
        request = BundleRequest(type=BundleType.BTTS, target_odds=2.72, min_confidence=70, max_games=2)
        bundle = asyncio.run(generator.generate(request, games_for(pair)))
        assert bundle.name.endswith("Goals Galore")
        assert bundle.type == BundleType.BTTS
        assert sorted(g.pick for g in bundle.games) == ["Home a to win", "Home b to win"]
