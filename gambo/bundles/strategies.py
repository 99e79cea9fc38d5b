"""Selection strategies: pick the legs of a bundle from qualified predictions.

Two interchangeable strategies share the ``SelectionStrategy`` interface:

- ``PortfolioSelectionStrategy``: max-Sharpe subset from the portfolio
  optimizer, with a correlation cap and a flagged fallback.
- ``LegacySelectionStrategy``: exhaustive search scored by confidence,
  sport diversity and confidence spread, accepting only combinations whose
  odds product lands near the target.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Optional, Protocol, Sequence

import numpy as np

from gambo.config import (
    LEGACY_ODDS_TOLERANCE,
    LEGACY_RELAXED_TOLERANCE,
    MAX_CANDIDATE_POOL,
    MAX_CORRELATION,
)
from gambo.errors import NoCombinationFoundError
from gambo.portfolio import OptimizedPortfolio, PortfolioOptimizer, portfolio_metrics
from gambo.types import BundleAsset, BundleRequest, PredictionOutput

logger = logging.getLogger(__name__)


def to_asset(prediction: PredictionOutput) -> BundleAsset:
    """Optimizer view of a prediction; Bernoulli variance of the home win."""
    p = prediction.final_probability
    return BundleAsset(
        id=prediction.game_id,
        expected_return=prediction.expected_return,
        variance=p * (1 - p),
        probability=p,
        odds=prediction.odds,
        sport=prediction.sport,
        league=prediction.league,
        game_time=prediction.scheduled_at,
        confidence=prediction.confidence,
    )


@dataclass
class Selection:
    """Legs chosen by a strategy, in bundle order."""

    predictions: list[PredictionOutput]
    portfolio: OptimizedPortfolio
    strategy: str
    fallback_used: bool = False
    criteria: dict[str, Any] = field(default_factory=dict)

    @property
    def combined_odds(self) -> float:
        return math.prod(p.odds for p in self.predictions)


class SelectionStrategy(Protocol):
    name: str

    def select(self, qualified: Sequence[PredictionOutput], request: BundleRequest) -> Selection:
        ...

    def relaxed(self) -> "SelectionStrategy":
        """Same strategy with a looser acceptance tolerance."""
        ...


# ---------------------------------------------------------------------------
# Portfolio optimizer
# ---------------------------------------------------------------------------


class PortfolioSelectionStrategy:
    name = "portfolio"

    def __init__(
        self,
        optimizer: Optional[PortfolioOptimizer] = None,
        max_correlation: float = MAX_CORRELATION,
    ) -> None:
        self.optimizer = optimizer or PortfolioOptimizer()
        self.max_correlation = max_correlation

    def select(self, qualified: Sequence[PredictionOutput], request: BundleRequest) -> Selection:
        by_id = {p.game_id: p for p in qualified}
        portfolio = self.optimizer.optimize(
            [to_asset(p) for p in qualified],
            target_return=request.target_odds,
            max_size=request.max_games,
            max_correlation=self.max_correlation,
        )
        return Selection(
            predictions=[by_id[a.id] for a in portfolio.assets],
            portfolio=portfolio,
            strategy=self.name,
            fallback_used=portfolio.fallback_used,
            criteria={
                "max_correlation": self.max_correlation,
                "return_tolerance": self.optimizer.return_tolerance,
                "combinations_evaluated": portfolio.combinations_evaluated,
            },
        )

    def relaxed(self) -> "PortfolioSelectionStrategy":
        optimizer = PortfolioOptimizer(
            max_pool=self.optimizer.max_pool,
            return_tolerance=max(self.optimizer.return_tolerance, LEGACY_RELAXED_TOLERANCE),
        )
        return PortfolioSelectionStrategy(optimizer, self.max_correlation)


# ---------------------------------------------------------------------------
# Legacy exhaustive search
# ---------------------------------------------------------------------------


def legacy_score(predictions: Sequence[PredictionOutput]) -> float:
    """avg confidence x .5 + sport diversity x .3 - confidence spread x .2."""
    confidences = np.array([p.confidence for p in predictions], dtype=float)
    diversity = len({p.sport for p in predictions}) / len(predictions)
    risk = float(confidences.var()) / 100
    return float(confidences.mean()) * 0.5 + diversity * 0.3 - risk * 0.2


class LegacySelectionStrategy:
    name = "legacy"

    def __init__(
        self,
        tolerance: float = LEGACY_ODDS_TOLERANCE,
        max_pool: int = MAX_CANDIDATE_POOL,
    ) -> None:
        self.tolerance = tolerance
        self.max_pool = max_pool

    def select(self, qualified: Sequence[PredictionOutput], request: BundleRequest) -> Selection:
        pool = sorted(qualified, key=lambda p: p.confidence, reverse=True)[: self.max_pool]
        target = request.target_odds
        best: Optional[tuple[PredictionOutput, ...]] = None
        best_score = -math.inf
        evaluated = 0

        for k in range(2, min(request.max_games, len(pool)) + 1):
            for combo in combinations(pool, k):
                evaluated += 1
                odds = math.prod(p.odds for p in combo)
                if abs(odds - target) / target > self.tolerance:
                    continue
                score = legacy_score(combo)
                if score > best_score:
                    best, best_score = combo, score

        if best is None:
            logger.info(
                "legacy_selection_failed",
                extra={"target_odds": target, "tolerance": self.tolerance, "evaluated": evaluated},
            )
            raise NoCombinationFoundError(target, self.tolerance)

        return Selection(
            predictions=list(best),
            portfolio=portfolio_metrics([to_asset(p) for p in best]),
            strategy=self.name,
            criteria={
                "odds_tolerance": self.tolerance,
                "score": round(best_score, 4),
                "combinations_evaluated": evaluated,
            },
        )

    def relaxed(self) -> "LegacySelectionStrategy":
        return LegacySelectionStrategy(max(self.tolerance, LEGACY_RELAXED_TOLERANCE), self.max_pool)
