"""Bundle orchestrator.

  games -> filter (sport, date) -> concurrent predict -> qualify
        -> selection strategy -> Kelly stakes -> GeneratedBundle

Predictions run in worker threads against a single weight snapshot so every
leg of a bundle is priced with the same layer weights. A game whose
prediction fails is logged and left out.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from gambo.config import (
    FRACTIONAL_KELLY,
    MAX_KELLY_STAKE,
    MIN_BUNDLE_EXPECTED_RETURN,
)
from gambo.errors import GamboError, InsufficientDataError, NoCombinationFoundError
from gambo.learning.weights import ModelWeights, ModelWeightStore
from gambo.portfolio import calculate_kelly_stakes, quality_score
from gambo.types import (
    BundleMetadata,
    BundleOutcome,
    BundlePick,
    BundleRequest,
    BundleType,
    GameData,
    GeneratedBundle,
    PortfolioMetrics,
    PredictionOutput,
)

from .strategies import PortfolioSelectionStrategy, Selection, SelectionStrategy

logger = logging.getLogger(__name__)

NO_BUNDLE_MESSAGE = "no bundle could be generated"

BUNDLE_NAMES: dict[BundleType, str] = {
    BundleType.STANDARD: "Optimized Acca",
    BundleType.BTTS: "Goals Galore",
    BundleType.PLUS_FIVE_ODDS: "Long Shot Special",
    BundleType.WEEKEND_PLUS: "Weekend Portfolio",
    BundleType.WEEKLY_PLUS: "Weekly Portfolio",
    BundleType.LIVE: "Live Edge",
    BundleType.MEGA: "Mega Acca",
}

QUALITY_TIERS = ((85.0, "Elite"), (75.0, "Premium"), (65.0, "Select"))


class Predictor(Protocol):
    def predict(self, game: GameData, weights: Optional[ModelWeights] = None) -> PredictionOutput:
        ...


def bundle_name(bundle_type: BundleType, quality: float) -> str:
    tier = next((label for floor, label in QUALITY_TIERS if quality >= floor), "Value")
    return f"{tier} {BUNDLE_NAMES[bundle_type]}"


def qualifies(prediction: PredictionOutput, min_confidence: float) -> bool:
    return (
        prediction.confidence >= min_confidence
        and prediction.edge_over_market > 0
        and prediction.recommended_stake > 0
        and prediction.expected_return >= MIN_BUNDLE_EXPECTED_RETURN
    )


class BundleGenerator:
    """Builds multi-leg bundles from a slate of games.

    Args:
        engine: Anything with ``predict(game, weights)``; normally a
            ``GamboEngine``.
        strategy: Leg selection; defaults to the portfolio optimizer.
        weight_store: Where the weight snapshot is read; defaults to the
            engine's store.
        fractional_kelly: Kelly multiplier for leg stakes.
        max_stake: Per-leg stake cap as a bankroll fraction.
    """

    def __init__(
        self,
        engine: Predictor,
        strategy: Optional[SelectionStrategy] = None,
        weight_store: Optional[ModelWeightStore] = None,
        fractional_kelly: float = FRACTIONAL_KELLY,
        max_stake: float = MAX_KELLY_STAKE,
    ) -> None:
        self.engine = engine
        self.strategy = strategy or PortfolioSelectionStrategy()
        self.weight_store = weight_store or getattr(engine, "weight_store", None)
        self.fractional_kelly = fractional_kelly
        self.max_stake = max_stake

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(self, request: BundleRequest, games: Sequence[GameData]) -> GeneratedBundle:
        """Build a bundle or raise.

        Raises:
            InsufficientDataError: Fewer than two predictions qualified.
            NoCombinationFoundError: The strategy found no acceptable subset.
        """
        qualified = await self.qualify(request, games)
        selection = self.strategy.select(qualified, request)
        return self._assemble(request, selection)

    async def generate_or_report(
        self, request: BundleRequest, games: Sequence[GameData]
    ) -> BundleOutcome:
        """Like ``generate`` but never raises.

        A strategy that finds nothing within tolerance gets one retry with a
        relaxed tolerance before the request is reported as unavailable.
        """
        try:
            qualified = await self.qualify(request, games)
            try:
                selection = self.strategy.select(qualified, request)
            except NoCombinationFoundError as e:
                logger.warning(
                    "bundle_retry_relaxed",
                    extra={"type": request.type.value, "reason": str(e)},
                )
                selection = self.strategy.relaxed().select(qualified, request)
            return BundleOutcome(bundle=self._assemble(request, selection))
        except GamboError as e:
            logger.warning(
                "bundle_unavailable",
                extra={"type": request.type.value, "reason": str(e)},
            )
        except Exception:
            logger.error("bundle_generation_failed", extra={"type": request.type.value}, exc_info=True)
        return BundleOutcome(message=NO_BUNDLE_MESSAGE)

    async def qualify(
        self, request: BundleRequest, games: Sequence[GameData]
    ) -> list[PredictionOutput]:
        """Predict the eligible games concurrently and keep the bettable ones."""
        eligible = [g for g in games if self._eligible(g, request)]
        weights = self.weight_store.snapshot() if self.weight_store is not None else None

        results = await asyncio.gather(
            *(asyncio.to_thread(self._predict_one, game, weights) for game in eligible)
        )
        predictions = [r for r in results if r is not None]
        qualified = [p for p in predictions if qualifies(p, request.min_confidence)]

        logger.info(
            "bundle_candidates",
            extra={
                "games": len(games),
                "eligible": len(eligible),
                "predicted": len(predictions),
                "qualified": len(qualified),
            },
        )
        if len(qualified) < 2:
            raise InsufficientDataError(len(qualified))
        return qualified

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _eligible(game: GameData, request: BundleRequest) -> bool:
        if request.sports and game.sport not in request.sports:
            return False
        if request.date is not None and game.scheduled_at.date() != request.date:
            return False
        return True

    def _predict_one(self, game: GameData, weights: Optional[ModelWeights]) -> Optional[PredictionOutput]:
        try:
            return self.engine.predict(game, weights)
        except Exception:
            logger.error("prediction_failed", extra={"game_id": game.id}, exc_info=True)
            return None

    def _assemble(self, request: BundleRequest, selection: Selection) -> GeneratedBundle:
        portfolio = selection.portfolio
        stakes = calculate_kelly_stakes(portfolio, self.fractional_kelly, self.max_stake)
        kelly = {asset.id: stake for asset, stake in zip(portfolio.assets, stakes)}
        weights = dict(zip((a.id for a in portfolio.assets), portfolio.weights))

        weighted = sum(p.confidence * weights.get(p.game_id, 0.0) for p in selection.predictions)
        confidence = max(float(round(weighted)), request.min_confidence)
        quality = quality_score(portfolio)

        picks = [
            BundlePick(
                game_id=p.game_id,
                home_team=p.home_team,
                away_team=p.away_team,
                league=p.league,
                sport=p.sport,
                scheduled_at=p.scheduled_at,
                pick=f"{p.home_team} to win",
                odds=p.odds,
                probability=p.final_probability,
                confidence=p.confidence,
                stake=kelly.get(p.game_id, 0.0),
            )
            for p in selection.predictions
        ]

        bundle = GeneratedBundle(
            name=bundle_name(request.type, quality),
            type=request.type,
            confidence=min(confidence, 100.0),
            expected_return=selection.combined_odds,
            games=picks,
            metadata=BundleMetadata(
                strategy=selection.strategy,
                selection_criteria={
                    "target_odds": request.target_odds,
                    "min_confidence": request.min_confidence,
                    "max_games": request.max_games,
                    **selection.criteria,
                },
                portfolio_metrics=PortfolioMetrics(
                    sharpe_ratio=portfolio.sharpe_ratio,
                    diversification_score=portfolio.diversification_score,
                    correlation_risk=portfolio.correlation_risk,
                    portfolio_variance=portfolio.portfolio_variance,
                    expected_value=portfolio.expected_return,
                    quality_score=quality,
                ),
                fallback_used=selection.fallback_used,
                kelly_stakes=kelly,
            ),
            generated_at=datetime.now(timezone.utc),
        )

        logger.info(
            "bundle_generated",
            extra={
                "type": request.type.value,
                "strategy": selection.strategy,
                "legs": len(picks),
                "combined_odds": round(bundle.expected_return, 4),
                "confidence": bundle.confidence,
                "fallback": selection.fallback_used,
            },
        )
        return bundle
