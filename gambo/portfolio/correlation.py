"""Heuristic pairwise correlation between bet legs.

The scores are hand-tuned proxies for shared exposure (same competition,
overlapping kickoffs, similar prices). They are not estimated from the
historical co-movement of results and should be read as a placeholder risk
model.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from gambo.types import BundleAsset

SAME_SPORT = 0.3
SAME_LEAGUE = 0.4
WITHIN_2H = 0.2
WITHIN_6H = 0.1
SIMILAR_ODDS = 0.1
SIMILAR_ODDS_GAP = 0.5
MAX_CORRELATION = 0.95


def correlation(a: BundleAsset, b: BundleAsset) -> float:
    rho = 0.0
    if a.sport == b.sport:
        rho += SAME_SPORT
    if a.league == b.league:
        rho += SAME_LEAGUE

    hours_apart = abs((a.game_time - b.game_time).total_seconds()) / 3600.0
    if hours_apart < 2:
        rho += WITHIN_2H
    elif hours_apart < 6:
        rho += WITHIN_6H

    if abs(a.odds - b.odds) < SIMILAR_ODDS_GAP:
        rho += SIMILAR_ODDS
    return min(MAX_CORRELATION, rho)


def correlation_matrix(assets: Sequence[BundleAsset]) -> np.ndarray:
    """Symmetric matrix with unit diagonal."""
    n = len(assets)
    matrix = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            matrix[i, j] = matrix[j, i] = correlation(assets[i], assets[j])
    return matrix


def average_correlation(matrix: np.ndarray) -> float:
    """Mean of the off-diagonal entries, 0 for fewer than two assets."""
    n = matrix.shape[0]
    if n < 2:
        return 0.0
    off_diagonal = matrix.sum() - np.trace(matrix)
    return float(off_diagonal / (n * (n - 1)))
