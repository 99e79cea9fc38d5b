"""Arbitrage and closing-line value checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from gambo.errors import ValidationError
from gambo.types import GameData

logger = logging.getLogger(__name__)


class ClvCategory(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


@dataclass
class ArbitrageResult:
    opportunity: bool
    profit_margin: float                    # percent of total stake
    implied_sum: float
    stake_split: list[float] = field(default_factory=list)


@dataclass
class ClosingLineValue:
    clv: float                              # percent
    category: ClvCategory


def detect_arbitrage(*odds: float) -> ArbitrageResult:
    """Sum of inverse prices below 1 means every outcome can be covered at a profit.

    Works for two-way and three-way markets. The stake split is the share of
    a unit bankroll to put on each outcome for an equal payout.
    """
    if len(odds) < 2:
        raise ValidationError("arbitrage needs at least two outcomes")
    if any(o <= 1.0 for o in odds):
        raise ValidationError(f"decimal odds must exceed 1.0, got {odds}")

    inverses = [1.0 / o for o in odds]
    total = sum(inverses)
    if total < 1.0:
        return ArbitrageResult(
            opportunity=True,
            profit_margin=(1.0 - total) * 100,
            implied_sum=total,
            stake_split=[inv / total for inv in inverses],
        )
    return ArbitrageResult(opportunity=False, profit_margin=0.0, implied_sum=total)


def scan_games_for_arbitrage(games: Iterable[GameData]) -> dict[str, ArbitrageResult]:
    """Check the 1X2 market of each game, keyed by game id."""
    found: dict[str, ArbitrageResult] = {}
    scanned = 0
    for game in games:
        scanned += 1
        legs = [game.odds.home_win, game.odds.away_win]
        if game.odds.draw is not None:
            legs.insert(1, game.odds.draw)
        result = detect_arbitrage(*legs)
        if result.opportunity:
            found[game.id] = result
    logger.info(
        "arbitrage_scan_complete",
        extra={"scanned": scanned, "opportunities": len(found)},
    )
    return found


def closing_line_value(bet_odds: float, closing_odds: float) -> ClosingLineValue:
    """How far the taken price beat (or trailed) the closing price."""
    if closing_odds <= 0:
        raise ValidationError("closing odds must be positive")
    clv = (bet_odds - closing_odds) / closing_odds * 100
    if clv > 5:
        category = ClvCategory.EXCELLENT
    elif clv > 2:
        category = ClvCategory.GOOD
    elif clv > -2:
        category = ClvCategory.FAIR
    else:
        category = ClvCategory.POOR
    return ClosingLineValue(clv=clv, category=category)
