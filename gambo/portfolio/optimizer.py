"""Correlation-aware bundle optimizer.

Treats each candidate leg as an asset and searches for the subset with the
best Sharpe ratio, subject to:

1. Average pairwise correlation at or below ``max_correlation``
2. Combined expected return within ``RETURN_TOLERANCE`` of the target

Exhaustive subset search is exponential in the pool size, so the pool is cut
to the ``max_pool`` best candidates by expected return before enumeration.
When no subset qualifies the optimizer falls back to the top expected-return
legs and flags the result.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from itertools import combinations
from typing import Optional, Sequence

import numpy as np

from gambo.config import (
    FRACTIONAL_KELLY,
    MAX_CANDIDATE_POOL,
    MAX_CORRELATION,
    MAX_KELLY_STAKE,
    RETURN_TOLERANCE,
)
from gambo.errors import InsufficientDataError
from gambo.portfolio.correlation import average_correlation, correlation_matrix
from gambo.portfolio.kelly import kelly_criterion
from gambo.types import BundleAsset

logger = logging.getLogger(__name__)

RISK_FREE_RATE = 0.0
CORRELATION_KELLY_DISCOUNT = 0.3


@dataclass
class OptimizedPortfolio:
    assets: list[BundleAsset]
    weights: list[float]
    expected_return: float                   # win probability x combined odds
    portfolio_variance: float
    sharpe_ratio: float
    diversification_score: float
    correlation_risk: float                  # average pairwise correlation
    combined_odds: float
    fallback_used: bool = False
    combinations_evaluated: int = 0
    correlation: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def win_probability(self) -> float:
        return math.prod(a.probability for a in self.assets)


def sharpe_ratio(expected_return: float, variance: float) -> float:
    std = math.sqrt(max(variance, 0.0))
    if std == 0:
        return 0.0
    return (expected_return - RISK_FREE_RATE - 1.0) / std


def diversification_score(assets: Sequence[BundleAsset]) -> float:
    """Mean of sport, league and kickoff-spread diversity, each in [0, 1]."""
    if not assets:
        return 0.0
    n = len(assets)
    sports = len({a.sport for a in assets}) / n
    leagues = len({a.league for a in assets}) / n
    times = [a.game_time for a in assets]
    hours = (max(times) - min(times)).total_seconds() / 3600.0
    return (sports + leagues + min(1.0, hours / 24.0)) / 3


def portfolio_metrics(
    assets: Sequence[BundleAsset],
    corr: Optional[np.ndarray] = None,
) -> OptimizedPortfolio:
    """Equal-weight metrics for a fixed set of legs."""
    assets = list(assets)
    if corr is None:
        corr = correlation_matrix(assets)
    n = len(assets)
    weights = np.full(n, 1.0 / n)
    sigma = np.sqrt(np.array([a.variance for a in assets]))

    combined_odds = math.prod(a.odds for a in assets)
    win_probability = math.prod(a.probability for a in assets)
    expected_return = win_probability * combined_odds
    # sum_i sum_j w_i w_j s_i s_j rho_ij
    variance = float(weights @ (np.outer(sigma, sigma) * corr) @ weights)

    return OptimizedPortfolio(
        assets=assets,
        weights=weights.tolist(),
        expected_return=expected_return,
        portfolio_variance=variance,
        sharpe_ratio=sharpe_ratio(expected_return, variance),
        diversification_score=diversification_score(assets),
        correlation_risk=average_correlation(corr),
        combined_odds=combined_odds,
        correlation=corr,
    )


class PortfolioOptimizer:
    """Max-Sharpe subset search over a bounded candidate pool.

    Args:
        max_pool: Candidates kept (by expected return) before enumeration.
        return_tolerance: Allowed relative distance from the target return.
    """

    def __init__(
        self,
        max_pool: int = MAX_CANDIDATE_POOL,
        return_tolerance: float = RETURN_TOLERANCE,
    ) -> None:
        self.max_pool = max_pool
        self.return_tolerance = return_tolerance

    def optimize(
        self,
        candidates: Sequence[BundleAsset],
        target_return: float,
        max_size: int,
        min_size: int = 2,
        max_correlation: float = MAX_CORRELATION,
    ) -> OptimizedPortfolio:
        if len(candidates) < min_size:
            raise InsufficientDataError(len(candidates), min_size)

        pool = self._bounded_pool(candidates)
        max_size = min(max_size, len(pool))

        best: Optional[OptimizedPortfolio] = None
        evaluated = 0
        rejected_correlation = 0
        rejected_return = 0

        for k in range(min_size, max_size + 1):
            for combo in combinations(pool, k):
                evaluated += 1
                corr = correlation_matrix(combo)
                if average_correlation(corr) > max_correlation:
                    rejected_correlation += 1
                    continue

                portfolio = portfolio_metrics(combo, corr)
                if abs(portfolio.expected_return - target_return) / target_return > self.return_tolerance:
                    rejected_return += 1
                    continue

                if best is None or portfolio.sharpe_ratio > best.sharpe_ratio:
                    best = portfolio

        if best is None:
            top = sorted(pool, key=lambda a: a.expected_return, reverse=True)[:max_size]
            best = portfolio_metrics(top)
            best.fallback_used = True
            logger.warning(
                "portfolio_fallback",
                extra={
                    "candidates": len(pool),
                    "evaluated": evaluated,
                    "rejected_correlation": rejected_correlation,
                    "rejected_return": rejected_return,
                    "target_return": target_return,
                },
            )

        best.combinations_evaluated = evaluated
        logger.info(
            "portfolio_optimized",
            extra={
                "size": len(best.assets),
                "sharpe": round(best.sharpe_ratio, 4),
                "correlation_risk": round(best.correlation_risk, 4),
                "fallback": best.fallback_used,
                "evaluated": evaluated,
            },
        )
        return best

    def _bounded_pool(self, candidates: Sequence[BundleAsset]) -> list[BundleAsset]:
        ranked = sorted(candidates, key=lambda a: a.expected_return, reverse=True)
        if len(ranked) > self.max_pool:
            logger.warning(
                "candidate_pool_truncated",
                extra={"candidates": len(ranked), "kept": self.max_pool},
            )
            ranked = ranked[: self.max_pool]
        return ranked


def calculate_kelly_stakes(
    portfolio: OptimizedPortfolio,
    fractional_kelly: float = FRACTIONAL_KELLY,
    max_stake: float = MAX_KELLY_STAKE,
) -> list[float]:
    """Per-leg bankroll fractions.

    Full Kelly scaled by ``fractional_kelly`` and the leg's confidence, then
    discounted for the bundle's correlation risk. Each stake is in
    [0, max_stake].
    """
    discount = 1.0 - portfolio.correlation_risk * CORRELATION_KELLY_DISCOUNT
    stakes = []
    for asset in portfolio.assets:
        full = kelly_criterion(asset.probability, asset.odds)
        stake = full * fractional_kelly * (asset.confidence / 100.0) * discount
        stakes.append(max(0.0, min(max_stake, stake)))
    return stakes


def quality_score(portfolio: OptimizedPortfolio) -> float:
    """0-100 blend of Sharpe, diversification, low correlation and return."""
    sharpe_score = min(100.0, portfolio.sharpe_ratio * 20 + 50)
    diversification = portfolio.diversification_score * 100
    correlation = (1 - portfolio.correlation_risk) * 100
    returns = min(100.0, portfolio.expected_return / 1.5 * 100)
    return sharpe_score * 0.3 + diversification * 0.25 + correlation * 0.25 + returns * 0.2
