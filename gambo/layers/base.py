"""Shared pieces of the four prediction layers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from scipy.special import expit

from gambo.types import TeamStats

NEUTRAL_RATE = 0.5


@runtime_checkable
class LayerResult(Protocol):
    """Capability every layer result exposes."""

    @property
    def probability(self) -> float: ...

    @property
    def confidence(self) -> float: ...


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def logistic(x: float) -> float:
    return float(expit(x))


def safe_rate(count: float, games: int) -> float:
    """Per-game rate, neutral 0.5 when no games have been played."""
    if games <= 0:
        return NEUTRAL_RATE
    return count / games


def per_game(total: float, games: int) -> float:
    """Per-game average, zero when no games have been played."""
    if games <= 0:
        return 0.0
    return total / games


def win_rate(stats: TeamStats) -> float:
    return safe_rate(stats.wins, stats.games_played)


def goals_per_game(stats: TeamStats) -> float:
    return per_game(stats.goals_for, stats.games_played)


def recent_wins(stats: TeamStats, last: int = 5) -> int:
    return sum(1 for r in stats.recent_form[:last] if r == "W")


def form_points(stats: TeamStats, last: int = 5) -> int:
    """League points over the most recent games (W=3, D=1)."""
    points = {"W": 3, "D": 1, "L": 0}
    return sum(points[r] for r in stats.recent_form[:last])
