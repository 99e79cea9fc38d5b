"""Kelly criterion sizing for decimal-odds bets."""

from __future__ import annotations


def kelly_criterion(probability: float, odds: float) -> float:
    """Full Kelly fraction for a single decimal-odds bet.

    f* = (p * b - q) / b where b = odds - 1
    """
    b = odds - 1.0
    if b <= 0 or probability <= 0.0:
        return 0.0
    q = 1.0 - probability
    f = (probability * b - q) / b
    return max(f, 0.0)


def fractional_kelly(
    probability: float,
    odds: float,
    fraction: float = 0.25,
    cap: float = 0.10,
) -> float:
    """Scaled Kelly fraction, clamped to [0, cap]."""
    return min(kelly_criterion(probability, odds) * fraction, cap)
