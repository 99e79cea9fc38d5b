"""Gambo engine: per-game prediction pipeline.

  Layer 1  statistical foundation     home-win probability from season stats
  Layer 2  context                    form, injuries, weather, travel, stakes
  Layer 3  model ensemble             accuracy-weighted archetype blend
  Layer 4  market                     implied probability, edge, line movement
  Bayes    evidence fusion            (home, draw, away) posterior + sampling
  Market   efficiency detector        sharp money / steam / reverse movement
  Final    weighted aggregation       probability, confidence, stake, verdict

``predict`` reads layer weights from a ``ModelWeights`` snapshot and touches
no shared state, so games can be predicted concurrently.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

import numpy as np

from gambo.analysis import build_analysis, identify_risks, key_factors
from gambo.bayesian import BayesianFusion, build_evidence, build_prior
from gambo.bayesian.fusion import FusedProbability, ModelComparison, PosteriorPredictive
from gambo.config import (
    BAYESIAN_BLEND,
    MARKET_AGREEMENT_EDGE,
    MARKET_CONFLICT_EDGE,
    MARKET_EDGE_TRIGGER,
    PROBABILITY_CEILING,
    PROBABILITY_FLOOR,
    EngineConfig,
)
from gambo.errors import ValidationError
from gambo.layers import ContextLayer, MarketLayer, MLLayer, StatisticalLayer
from gambo.layers.base import clamp
from gambo.learning.weights import ModelWeights, ModelWeightStore
from gambo.market.efficiency import (
    LineMovementAnalysis,
    MarketEfficiencyDetector,
    home_observations,
    market_adjustment,
)
from gambo.types import (
    GameData,
    MarketSignals,
    ModelComparisonSummary,
    OutcomeProbabilities,
    PosteriorSummary,
    PredictionOutput,
    Recommendation,
    TeamStats,
)

logger = logging.getLogger(__name__)

PREDICTION_NAMESPACE = uuid.UUID("6f1c7f3e-3c1b-4b8e-9a55-0d7c5d1e2a10")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_stats(label: str, stats: TeamStats) -> None:
    counts = {
        "games_played": stats.games_played,
        "wins": stats.wins,
        "draws": stats.draws,
        "losses": stats.losses,
        "goals_for": stats.goals_for,
        "goals_against": stats.goals_against,
    }
    negative = [k for k, v in counts.items() if v < 0]
    if negative:
        raise ValidationError(f"{label}: negative {', '.join(negative)}")
    if stats.wins + stats.draws + stats.losses > stats.games_played:
        raise ValidationError(
            f"{label}: W+D+L ({stats.wins + stats.draws + stats.losses}) "
            f"exceeds games played ({stats.games_played})"
        )


def validate_game(game: GameData) -> None:
    """Reject inputs that would make the pipeline divide by zero or lie."""
    odds = game.odds
    prices = {"home_win": odds.home_win, "away_win": odds.away_win}
    if odds.draw is not None:
        prices["draw"] = odds.draw
    if odds.opening_odds is not None:
        prices["opening_home_win"] = odds.opening_odds.home_win
    bad = {k: v for k, v in prices.items() if v <= 1.0}
    if bad:
        raise ValidationError(f"game {game.id}: decimal odds must exceed 1.0, got {bad}")
    if any(m.home_win <= 0 for m in odds.odds_movement):
        raise ValidationError(f"game {game.id}: non-positive price in odds movement")
    _check_stats(f"game {game.id} home", game.home_stats)
    _check_stats(f"game {game.id} away", game.away_stats)


# ---------------------------------------------------------------------------
# Final aggregation rules
# ---------------------------------------------------------------------------


def aggregate_probability(
    weights: ModelWeights,
    statistical: float,
    contextual: float,
    ml: float,
    edge: float,
    bayesian_home: Optional[float] = None,
    market_factor: float = 1.0,
) -> float:
    probability = (
        weights.statistical * statistical
        + weights.contextual * contextual
        + weights.machine_learning * ml
    )
    if bayesian_home is not None:
        probability = probability * (1 - BAYESIAN_BLEND) + bayesian_home * BAYESIAN_BLEND
    probability *= market_factor

    if edge > MARKET_EDGE_TRIGGER:
        probability *= 1 + weights.market
    elif edge < -MARKET_EDGE_TRIGGER:
        probability *= 1 - weights.market
    return clamp(probability, PROBABILITY_FLOOR, PROBABILITY_CEILING)


def prediction_confidence(statistical_conf: float, ml_conf: float, edge: float) -> float:
    """0-100; boosted when the market agrees, cut when it strongly disagrees."""
    confidence = (statistical_conf + ml_conf) / 2 * 100
    if abs(edge) < MARKET_AGREEMENT_EDGE:
        confidence *= 1.1
    elif abs(edge) > MARKET_CONFLICT_EDGE:
        confidence *= 0.8
    return float(clamp(round(confidence), 0, 100))


def recommended_stake(confidence: float, edge: float, min_confidence: float) -> float:
    """Fractional unit stake in [0, 1]."""
    if edge <= 0 or confidence < min_confidence:
        return 0.0
    return min(confidence / 100 * abs(edge) * 10, 1.0)


def recommend(edge: float, confidence: float) -> Recommendation:
    if edge <= 0:
        return Recommendation.NO_BET
    if confidence < 60:
        return Recommendation.PASS
    if edge > 0.10 and confidence >= 80:
        return Recommendation.STRONG_BET
    if edge > 0.05 and confidence >= 70:
        return Recommendation.RECOMMENDED
    if edge > 0.02:
        return Recommendation.SMALL_STAKE
    return Recommendation.PASS


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class GamboEngine:
    """Runs the full layer pipeline for one game at a time.

    Attributes:
        config: Engine configuration.
        weight_store: Source of layer weights when ``ensemble_learning`` is on.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        weight_store: Optional[ModelWeightStore] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.weight_store = weight_store or ModelWeightStore(
            ModelWeights.from_layer_weights(self.config.layer_weights)
        )
        self.statistical = StatisticalLayer()
        self.context = ContextLayer()
        self.ml = MLLayer()
        self.market = MarketLayer()
        self.fusion = BayesianFusion(
            noise_std=self.config.posterior_noise,
            samples=self.config.posterior_samples,
            prior_model_accuracy=self.config.prior_model_accuracy,
        )
        self.detector = MarketEfficiencyDetector()

    def _weights(self, weights: Optional[ModelWeights]) -> ModelWeights:
        if not self.config.features.ensemble_learning:
            return ModelWeights.from_layer_weights(self.config.layer_weights)
        return weights or self.weight_store.snapshot()

    def predict(
        self,
        game: GameData,
        weights: Optional[ModelWeights] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> PredictionOutput:
        """Predict the home win for ``game``.

        Args:
            game: Fully or partially populated game record.
            weights: Layer weights to use; defaults to the store's snapshot.
            rng: Generator for posterior sampling; defaults to one seeded
                from ``config.random_seed``.

        Raises:
            ValidationError: If the game's odds or counts are malformed.
        """
        validate_game(game)
        features = self.config.features
        w = self._weights(weights)

        stat = self.statistical.predict(game)
        ctx = self.context.adjust(stat, game)
        ml = self.ml.predict(game, stat.probability, ctx.probability)
        mkt = self.market.analyze(game.odds, ml.probability)

        fused: Optional[FusedProbability] = None
        posterior: Optional[PosteriorPredictive] = None
        comparison: Optional[ModelComparison] = None
        if features.bayesian_fusion:
            prior = build_prior(stat)
            evidence = build_evidence(prior, stat, ctx, ml, mkt)
            fused = self.fusion.update(prior, evidence)
            comparison = self.fusion.compare_models(fused.home, mkt.probability)
            if features.posterior_sampling:
                generator = rng if rng is not None else np.random.default_rng(self.config.random_seed)
                posterior = self.fusion.posterior_predictive(prior, evidence, generator)

        movement: Optional[LineMovementAnalysis] = None
        market_factor = 1.0
        if features.sharp_money_tracking:
            public_pct = game.odds.public_home_pct
            if public_pct is None:
                public_pct = self.config.default_public_pct
            movement = self.detector.analyze_line_movement(
                home_observations(game.odds.odds_movement), public_pct
            )
            market_factor = market_adjustment(movement)

        final = aggregate_probability(
            w,
            stat.probability,
            ctx.probability,
            ml.probability,
            mkt.edge,
            bayesian_home=fused.home if fused else None,
            market_factor=market_factor,
        )
        confidence = prediction_confidence(stat.confidence, ml.confidence, mkt.edge)
        stake = recommended_stake(confidence, mkt.edge, self.config.thresholds.min_confidence)
        recommendation = recommend(mkt.edge, confidence)
        risks = identify_risks(game, ctx, mkt, movement)

        output = PredictionOutput(
            prediction_id=str(uuid.uuid5(PREDICTION_NAMESPACE, f"{game.id}:{self.config.model_version}")),
            game_id=game.id,
            sport=game.sport,
            league=game.league,
            home_team=game.home_team,
            away_team=game.away_team,
            scheduled_at=game.scheduled_at,
            statistical_probability=stat.probability,
            contextual_probability=ctx.probability,
            ml_probability=ml.probability,
            market_probability=mkt.probability,
            bayesian=(
                OutcomeProbabilities(home=fused.home, draw=fused.draw, away=fused.away)
                if fused else None
            ),
            btts_probability=stat.btts_probability,
            over_probability=stat.over_probability,
            final_probability=final,
            confidence=confidence,
            edge_over_market=mkt.edge,
            recommended_stake=stake,
            expected_return=final * game.odds.home_win,
            odds=game.odds.home_win,
            recommendation=recommendation,
            risks=risks,
            key_factors=key_factors(stat, ctx, mkt),
            market_signals=_market_signals(mkt.line_movement, mkt.value_rating, movement),
            model_comparison=(
                ModelComparisonSummary(
                    bayes_factor=comparison.bayes_factor,
                    posterior_accuracy=comparison.posterior_accuracy,
                    edge_significance=comparison.edge_significance,
                    signal=comparison.signal,
                )
                if comparison else None
            ),
            posterior_predictive=(
                PosteriorSummary(
                    mean=posterior.mean,
                    variance=posterior.variance,
                    lower=posterior.lower,
                    upper=posterior.upper,
                    samples=posterior.samples,
                )
                if posterior else None
            ),
            analysis=build_analysis(game, stat, ctx, mkt, recommendation, risks),
            model_version=self.config.model_version,
        )

        logger.info(
            "prediction_complete",
            extra={
                "game_id": game.id,
                "final_probability": round(final, 4),
                "confidence": confidence,
                "edge": round(mkt.edge, 4),
                "recommendation": recommendation.value,
            },
        )
        return output


def _market_signals(line_movement, value_rating: float, movement: Optional[LineMovementAnalysis]) -> MarketSignals:
    if movement is None:
        return MarketSignals(line_movement=line_movement, value_rating=value_rating)
    return MarketSignals(
        line_movement=line_movement,
        sharp_direction=movement.direction,
        sharp_confidence=movement.sharp_confidence,
        steam_move=movement.steam_move,
        reverse_line_movement=movement.reverse_line_movement,
        market_efficiency=movement.efficiency,
        value_opportunity=movement.value_opportunity,
        value_rating=value_rating,
    )
