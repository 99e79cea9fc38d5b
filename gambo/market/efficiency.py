"""Market efficiency detector: line movement, sharp money and market depth.

Reads a time-ordered series of home-odds observations together with an
estimate of the public betting split and classifies who is moving the line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import numpy as np

from gambo.config import (
    REVERSE_PUBLIC_HIGH,
    REVERSE_PUBLIC_LOW,
    STEAM_MIN_MOVES,
    STEAM_MOVE_THRESHOLD,
    STEAM_WINDOW,
)
from gambo.types import OddsMovement, SharpDirection

logger = logging.getLogger(__name__)

SHARP_THRESHOLD = 0.65
NEUTRAL_MOVE = 0.05
CONSISTENT_MOVE = 0.01
FULL_CONSENSUS_BOOKS = 5
MAX_VOLATILITY = 0.5


@dataclass(frozen=True)
class OddsObservation:
    timestamp: datetime
    odds: float
    volume: Optional[float] = None
    bookmaker: Optional[str] = None


@dataclass
class LineMovementAnalysis:
    direction: SharpDirection = SharpDirection.NEUTRAL
    sharp_confidence: float = 0.5
    steam_move: bool = False
    reverse_line_movement: bool = False
    efficiency: float = 0.7
    value_opportunity: float = 0.0


@dataclass(frozen=True)
class MarketDepth:
    """Best back/lay quote on an exchange."""

    bid: float
    ask: float
    bid_volume: float
    ask_volume: float


@dataclass
class DepthAnalysis:
    liquidity_score: float
    spread_quality: float
    market_strength: float


def home_observations(movements: list[OddsMovement]) -> list[OddsObservation]:
    """Project a 1X2 movement series onto the home price."""
    return [
        OddsObservation(
            timestamp=m.timestamp,
            odds=m.home_win,
            volume=m.volume,
            bookmaker=m.bookmaker,
        )
        for m in movements
    ]


class MarketEfficiencyDetector:
    """Detects sharp money, steam and reverse line movement."""

    def analyze_line_movement(
        self,
        history: list[OddsObservation],
        public_home_pct: float,
    ) -> LineMovementAnalysis:
        """Classify the line movement in ``history``.

        Args:
            history: Odds observations in any order; sorted by timestamp here.
            public_home_pct: Share of public bets on the home side (0-100).
        """
        if len(history) < 2:
            return LineMovementAnalysis()

        ordered = sorted(history, key=lambda o: o.timestamp)
        opening, current = ordered[0].odds, ordered[-1].odds
        change = current - opening
        change_pct = change / opening * 100 if opening else 0.0

        steam = self.detect_steam_move(ordered)
        reverse = detect_reverse_line_movement(change, public_home_pct)
        sharp_conf = self.sharp_confidence(ordered, steam, reverse)
        efficiency = self.market_efficiency(ordered)
        value = abs(change_pct) * sharp_conf * (1 + (1 - efficiency) * 0.5) / 100

        analysis = LineMovementAnalysis(
            direction=movement_direction(change, sharp_conf),
            sharp_confidence=sharp_conf,
            steam_move=steam,
            reverse_line_movement=reverse,
            efficiency=efficiency,
            value_opportunity=value,
        )
        logger.debug(
            "line_movement_analyzed",
            extra={
                "observations": len(ordered),
                "direction": analysis.direction.value,
                "steam": steam,
                "reverse": reverse,
            },
        )
        return analysis

    def detect_steam_move(self, ordered: list[OddsObservation]) -> bool:
        """True when enough of the latest transitions are large relative moves."""
        if len(ordered) < 3:
            return False
        recent = ordered[-(STEAM_WINDOW + 1):]
        significant = 0
        for prev, cur in zip(recent, recent[1:]):
            if prev.odds > 0 and abs(cur.odds - prev.odds) / prev.odds > STEAM_MOVE_THRESHOLD:
                significant += 1
        return significant >= STEAM_MIN_MOVES

    def sharp_confidence(
        self,
        ordered: list[OddsObservation],
        steam: bool,
        reverse: bool,
    ) -> float:
        confidence = 0.5
        if steam:
            confidence += 0.25
        if reverse:
            confidence += 0.30
        confidence += movement_consistency(ordered) * 0.15
        confidence += volume_trend(ordered) * 0.10
        return max(0.01, min(0.99, confidence))

    def market_efficiency(self, ordered: list[OddsObservation]) -> float:
        """0.6 x price stability + 0.4 x bookmaker consensus."""
        if len(ordered) < 3:
            return 0.5
        volatility_score = 1 - min(1.0, volatility(ordered) / MAX_VOLATILITY)
        books = {o.bookmaker for o in ordered}
        consensus = min(1.0, len(books) / FULL_CONSENSUS_BOOKS)
        return volatility_score * 0.6 + consensus * 0.4

    def analyze_market_depth(self, depth: MarketDepth) -> DepthAnalysis:
        """Exchange depth: spread tightness, liquidity and back/lay balance."""
        spread_pct = (depth.ask - depth.bid) / depth.bid * 100 if depth.bid > 0 else 100.0
        total = depth.bid_volume + depth.ask_volume
        larger = max(depth.bid_volume, depth.ask_volume)
        return DepthAnalysis(
            liquidity_score=min(1.0, total / 100_000),
            spread_quality=max(0.0, 1 - spread_pct / 5),
            market_strength=min(depth.bid_volume, depth.ask_volume) / larger if larger > 0 else 0.0,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def detect_reverse_line_movement(change: float, public_home_pct: float) -> bool:
    # Price drifting out on a publicly backed side, or shortening on a faded one
    if change > 0 and public_home_pct > REVERSE_PUBLIC_HIGH:
        return True
    if change < 0 and public_home_pct < REVERSE_PUBLIC_LOW:
        return True
    return False


def movement_direction(change: float, sharp_confidence: float) -> SharpDirection:
    if abs(change) < NEUTRAL_MOVE:
        return SharpDirection.NEUTRAL
    sharp = sharp_confidence > SHARP_THRESHOLD
    if change < 0:
        return SharpDirection.SHARP_HOME if sharp else SharpDirection.PUBLIC_HOME
    return SharpDirection.SHARP_AWAY if sharp else SharpDirection.PUBLIC_AWAY


def movement_consistency(ordered: list[OddsObservation]) -> float:
    """Share of meaningful moves that agree with the overall drift."""
    if len(ordered) < 2:
        return 0.0
    overall = ordered[-1].odds - ordered[0].odds
    consistent = total = 0
    for prev, cur in zip(ordered, ordered[1:]):
        step = cur.odds - prev.odds
        if abs(step) > CONSISTENT_MOVE:
            total += 1
            if (step > 0 and overall > 0) or (step < 0 and overall < 0):
                consistent += 1
    return consistent / total if total else 0.0


def volume_trend(ordered: list[OddsObservation]) -> float:
    with_volume = [o for o in ordered if o.volume]
    if len(with_volume) < 2:
        return 0.0
    return 0.5 if with_volume[-1].volume > with_volume[0].volume else 0.2


def volatility(ordered: list[OddsObservation]) -> float:
    """Population std of relative price changes."""
    changes = np.array(
        [(cur.odds - prev.odds) / prev.odds for prev, cur in zip(ordered, ordered[1:]) if prev.odds]
    )
    if changes.size == 0:
        return 0.0
    return float(changes.std())


def market_adjustment(analysis: LineMovementAnalysis) -> float:
    """Multiplier applied to the home probability for the observed market behaviour."""
    factor = 1.0
    if analysis.sharp_confidence > 0.75:
        if analysis.direction in (SharpDirection.SHARP_HOME, SharpDirection.PUBLIC_HOME):
            factor *= 1.05
        elif analysis.direction in (SharpDirection.SHARP_AWAY, SharpDirection.PUBLIC_AWAY):
            factor *= 0.95
    if analysis.steam_move:
        factor *= 0.98
    if analysis.reverse_line_movement:
        factor *= 1.03
    return factor
