"""Layer 4: market intelligence.

Compares the model probability with the price on offer and reads the
opening-to-current drift of the home odds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gambo.portfolio.kelly import fractional_kelly
from gambo.types import LineMovement, OddsData

logger = logging.getLogger(__name__)

NEUTRAL_DRIFT = 0.05
STEAM_SHORTENING = -0.15
MONEY_FLOW_DRIFT = 0.1
MAX_LAYER_KELLY = 0.05


@dataclass
class MarketResult:
    """Market view of one game.

    ``probability`` is the implied probability of the home price and
    ``confidence`` the estimated share of professional money behind it.
    """

    probability: float
    confidence: float
    edge: float
    value_rating: float
    line_movement: LineMovement
    current_odds: float
    fair_odds: float
    sharp_pct: float
    public_pct: float

    @property
    def sharp_money(self) -> bool:
        return self.line_movement == LineMovement.SHARP


class MarketLayer:
    def analyze(self, odds: OddsData, true_probability: float) -> MarketResult:
        implied = 1.0 / odds.home_win
        edge = true_probability - implied
        sharp_pct, public_pct = money_flow(odds)
        return MarketResult(
            probability=implied,
            confidence=sharp_pct / 100.0,
            edge=edge,
            value_rating=edge * 200.0,
            line_movement=line_movement(odds),
            current_odds=odds.home_win,
            fair_odds=1.0 / true_probability if true_probability > 0 else float("inf"),
            sharp_pct=sharp_pct,
            public_pct=public_pct,
        )

    def kelly_stake(
        self,
        true_probability: float,
        odds: float,
        bankroll: float,
        fraction: float = 0.25,
    ) -> float:
        """Quarter-Kelly stake in bankroll units, never above 5% of bankroll."""
        return bankroll * fractional_kelly(true_probability, odds, fraction, MAX_LAYER_KELLY)


def odds_drift(odds: OddsData) -> float:
    if odds.opening_odds is None:
        return 0.0
    return odds.home_win - odds.opening_odds.home_win


def line_movement(odds: OddsData) -> LineMovement:
    movement = odds_drift(odds)
    if abs(movement) < NEUTRAL_DRIFT:
        return LineMovement.NEUTRAL
    # Drifting out against the crowd, or a heavy shortening, reads as professional money
    if movement > 0 or movement < STEAM_SHORTENING:
        return LineMovement.SHARP
    return LineMovement.PUBLIC


def money_flow(odds: OddsData) -> tuple[float, float]:
    """Rough (sharp %, public %) split inferred from the drift."""
    movement = odds_drift(odds)
    if movement < -MONEY_FLOW_DRIFT:
        return 70.0, 30.0
    if movement > MONEY_FLOW_DRIFT:
        return 30.0, 70.0
    return 50.0, 50.0


def efficiency_rating(abs_edge: float) -> str:
    if abs_edge < 0.02:
        return "Highly efficient"
    if abs_edge < 0.05:
        return "Moderately efficient"
    if abs_edge < 0.10:
        return "Inefficient"
    return "Highly inefficient"


def describe_market(result: MarketResult) -> str:
    value_pct = result.edge * 100
    parts = [f"Market odds {result.current_odds:.2f} vs fair odds {result.fair_odds:.2f}."]
    if result.edge > 0.05:
        parts.append(f"Strong value detected (+{value_pct:.1f}% edge).")
    elif result.edge > 0.02:
        parts.append(f"Moderate value (+{value_pct:.1f}% edge).")
    elif result.edge < -0.02:
        parts.append(f"Overpriced by market ({value_pct:.1f}% negative edge).")
    else:
        parts.append("Fair market pricing.")
    if result.line_movement == LineMovement.SHARP:
        parts.append(f"Sharp money detected ({result.sharp_pct:.0f}% professional action).")
    elif result.line_movement == LineMovement.PUBLIC:
        parts.append(f"Public betting pressure evident ({result.public_pct:.0f}% retail action).")
    parts.append(f"Market efficiency rating: {efficiency_rating(abs(result.edge))}.")
    return " ".join(parts)
