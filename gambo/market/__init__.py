"""Market microstructure: line movement, sharp money, arbitrage, CLV."""

from .arbitrage import (
    ArbitrageResult,
    ClosingLineValue,
    ClvCategory,
    closing_line_value,
    detect_arbitrage,
    scan_games_for_arbitrage,
)
from .efficiency import (
    DepthAnalysis,
    LineMovementAnalysis,
    MarketDepth,
    MarketEfficiencyDetector,
    OddsObservation,
    home_observations,
    market_adjustment,
)

__all__ = [
    "ArbitrageResult",
    "ClosingLineValue",
    "ClvCategory",
    "DepthAnalysis",
    "LineMovementAnalysis",
    "MarketDepth",
    "MarketEfficiencyDetector",
    "OddsObservation",
    "closing_line_value",
    "detect_arbitrage",
    "home_observations",
    "market_adjustment",
    "scan_games_for_arbitrage",
]
