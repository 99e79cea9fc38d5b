"""Input/output contracts and enums for the Gambo engine.

Everything an external caller hands to the engine (``GameData``) or gets back
from it (``PredictionOutput``, ``GeneratedBundle``) lives here as a pydantic
model so it can be serialized with ``model_dump(mode="json")``.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Sport(str, Enum):
    SOCCER = "SOCCER"
    BASKETBALL = "BASKETBALL"
    FOOTBALL = "FOOTBALL"
    TENNIS = "TENNIS"
    HOCKEY = "HOCKEY"


class Side(str, Enum):
    """Match outcome / team side."""
    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"


class InjurySeverity(str, Enum):
    MINOR = "MINOR"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"


SEVERITY_WEIGHTS: dict[InjurySeverity, float] = {
    InjurySeverity.MINOR: 0.3,
    InjurySeverity.MODERATE: 0.6,
    InjurySeverity.SEVERE: 1.0,
}


class Recommendation(str, Enum):
    """Rule-derived betting recommendation."""
    NO_BET = "NO_BET"
    PASS = "PASS"
    SMALL_STAKE = "SMALL_STAKE"
    RECOMMENDED = "RECOMMENDED"
    STRONG_BET = "STRONG_BET"


class LineMovement(str, Enum):
    SHARP = "SHARP"
    PUBLIC = "PUBLIC"
    NEUTRAL = "NEUTRAL"


class SharpDirection(str, Enum):
    NEUTRAL = "NEUTRAL"
    SHARP_HOME = "SHARP_HOME"
    SHARP_AWAY = "SHARP_AWAY"
    PUBLIC_HOME = "PUBLIC_HOME"
    PUBLIC_AWAY = "PUBLIC_AWAY"


class BetSignal(str, Enum):
    """Model-vs-market significance class."""
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"
    NO_BET = "NO_BET"


class BundleType(str, Enum):
    STANDARD = "STANDARD"
    BTTS = "BTTS"
    PLUS_FIVE_ODDS = "PLUS_FIVE_ODDS"
    WEEKEND_PLUS = "WEEKEND_PLUS"
    WEEKLY_PLUS = "WEEKLY_PLUS"
    LIVE = "LIVE"
    MEGA = "MEGA"


# ---------------------------------------------------------------------------
# Game input
# ---------------------------------------------------------------------------


class TeamStats(BaseModel):
    """Season statistics for one team."""

    games_played: int = Field(default=0, description="Matches played this season.")
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    xg: Optional[float] = Field(default=None, description="Season expected goals.")
    xga: Optional[float] = Field(default=None, description="Season expected goals against.")
    possession: Optional[float] = Field(default=None, description="Average possession %.")
    recent_form: list[Literal["W", "D", "L"]] = Field(
        default_factory=list, description="Most recent results first."
    )
    attack_strength: Optional[float] = None
    defense_strength: Optional[float] = None
    home_advantage: Optional[float] = None
    set_piece_efficiency: Optional[float] = None


class HeadToHead(BaseModel):
    date: datetime
    home_score: int
    away_score: int
    winner: Side


class InjuryReport(BaseModel):
    player: str
    severity: InjurySeverity
    impact: float = Field(..., ge=0.0, le=10.0, description="Importance of the player, 0-10.")
    side: Side = Field(default=Side.HOME, description="Team the player belongs to.")


class WeatherData(BaseModel):
    temperature: float = Field(..., description="Degrees Celsius.")
    wind_speed: float = Field(default=0.0, description="km/h.")
    precipitation: float = Field(default=0.0, description="Chance of rain, %.")


class OddsMovement(BaseModel):
    """One observation of the 1X2 market."""

    timestamp: datetime
    home_win: float
    draw: Optional[float] = None
    away_win: float
    volume: Optional[float] = None
    bookmaker: Optional[str] = None


class OverUnderOdds(BaseModel):
    line: float
    over: float
    under: float


class BTTSOdds(BaseModel):
    yes: float
    no: float


class OpeningOdds(BaseModel):
    home_win: float
    draw: Optional[float] = None
    away_win: float


class OddsData(BaseModel):
    """Decimal odds for a game."""

    home_win: float
    draw: Optional[float] = None
    away_win: float
    over_under: Optional[OverUnderOdds] = None
    btts: Optional[BTTSOdds] = None
    opening_odds: Optional[OpeningOdds] = None
    odds_movement: list[OddsMovement] = Field(default_factory=list)
    public_home_pct: Optional[float] = Field(
        default=None, ge=0.0, le=100.0, description="Share of public bets on the home side."
    )


class GameData(BaseModel):
    """Everything the engine knows about one fixture."""

    id: str
    sport: Sport
    home_team: str
    away_team: str
    league: str
    scheduled_at: datetime
    home_stats: TeamStats = Field(default_factory=TeamStats)
    away_stats: TeamStats = Field(default_factory=TeamStats)
    head_to_head: list[HeadToHead] = Field(default_factory=list)
    injuries: list[InjuryReport] = Field(default_factory=list)
    weather: Optional[WeatherData] = None
    odds: OddsData
    travel_distance_km: Optional[float] = Field(
        default=None, ge=0.0, description="Away side travel distance."
    )
    high_stakes: bool = Field(default=False, description="Derby, title race or relegation decider.")


# ---------------------------------------------------------------------------
# Prediction output
# ---------------------------------------------------------------------------


class OutcomeProbabilities(BaseModel):
    home: float
    draw: float
    away: float


class MarketSignals(BaseModel):
    line_movement: LineMovement = LineMovement.NEUTRAL
    sharp_direction: SharpDirection = SharpDirection.NEUTRAL
    sharp_confidence: float = 0.5
    steam_move: bool = False
    reverse_line_movement: bool = False
    market_efficiency: float = 0.7
    value_opportunity: float = 0.0
    value_rating: float = 0.0


class ModelComparisonSummary(BaseModel):
    bayes_factor: float
    posterior_accuracy: float
    edge_significance: float
    signal: BetSignal


class PosteriorSummary(BaseModel):
    mean: float
    variance: float
    lower: float
    upper: float
    samples: int


class PredictionAnalysis(BaseModel):
    """Rule-based narrative attached to a prediction."""

    summary: str
    statistical: str
    contextual: str
    market: str
    risk: str
    verdict: str


class PredictionOutput(BaseModel):
    """Final per-game prediction."""

    prediction_id: str
    game_id: str
    sport: Sport
    league: str
    home_team: str
    away_team: str
    scheduled_at: datetime

    statistical_probability: float
    contextual_probability: float
    ml_probability: float
    market_probability: float = Field(..., description="Implied probability, 1/odds.")
    bayesian: Optional[OutcomeProbabilities] = None
    btts_probability: Optional[float] = None
    over_probability: Optional[float] = Field(default=None, description="Over the quoted total line.")

    final_probability: float = Field(..., ge=0.05, le=0.95)
    confidence: float = Field(..., ge=0.0, le=100.0)
    edge_over_market: float
    recommended_stake: float = Field(..., ge=0.0, le=1.0, description="Fractional unit.")
    expected_return: float
    odds: float = Field(..., description="Decimal odds of the pick.")
    recommendation: Recommendation
    risks: list[str] = Field(default_factory=list)
    key_factors: list[str] = Field(default_factory=list)

    market_signals: MarketSignals = Field(default_factory=MarketSignals)
    model_comparison: Optional[ModelComparisonSummary] = None
    posterior_predictive: Optional[PosteriorSummary] = None
    analysis: Optional[PredictionAnalysis] = None
    model_version: str = ""


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------


class BundleAsset(BaseModel):
    """Optimizer input: one candidate leg."""

    id: str
    expected_return: float
    variance: float = Field(..., ge=0.0)
    probability: float = Field(..., ge=0.0, le=1.0)
    odds: float = Field(..., gt=1.0)
    sport: Sport
    league: str
    game_time: datetime
    confidence: float = Field(default=100.0, ge=0.0, le=100.0)


class BundleRequest(BaseModel):
    type: BundleType = BundleType.STANDARD
    target_odds: float = Field(..., gt=1.0)
    min_confidence: float = Field(default=70.0, ge=0.0, le=100.0)
    max_games: int = Field(default=3, ge=2)
    sports: list[Sport] = Field(default_factory=list)
    date: Optional[dt.date] = None


class PortfolioMetrics(BaseModel):
    sharpe_ratio: float
    diversification_score: float
    correlation_risk: float
    portfolio_variance: float
    expected_value: float
    quality_score: float


class BundlePick(BaseModel):
    game_id: str
    home_team: str
    away_team: str
    league: str
    sport: Sport
    scheduled_at: datetime
    pick: str
    odds: float
    probability: float
    confidence: float
    stake: float = 0.0


class BundleMetadata(BaseModel):
    strategy: str
    selection_criteria: dict[str, Any] = Field(default_factory=dict)
    portfolio_metrics: Optional[PortfolioMetrics] = None
    fallback_used: bool = False
    kelly_stakes: dict[str, float] = Field(default_factory=dict)


class GeneratedBundle(BaseModel):
    name: str
    type: BundleType
    confidence: float = Field(..., ge=0.0, le=100.0)
    expected_return: float = Field(..., description="Combined decimal odds of all legs.")
    games: list[BundlePick]
    metadata: BundleMetadata
    generated_at: datetime


class BundleOutcome(BaseModel):
    """What the orchestrator hands back to callers that must not see exceptions."""

    bundle: Optional[GeneratedBundle] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.bundle is not None
