"""Layer 2: contextual adjustments to the statistical probability.

Each factor is a small additive delta on the home-win probability:

  form        +/-10%  recent points difference over the last five games
  injuries    <= 8%   severity x impact, home absences hurt, away absences help
  weather     outdoor sports only, skipped when no forecast is supplied
  travel      staged by the away side's travel distance
  motivation  flat bonus for high-stakes fixtures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gambo.layers.base import clamp, form_points, recent_wins
from gambo.layers.statistical import StatisticalResult
from gambo.types import SEVERITY_WEIGHTS, GameData, InjuryReport, Side, Sport, WeatherData

logger = logging.getLogger(__name__)

OUTDOOR_SPORTS = frozenset({Sport.SOCCER, Sport.FOOTBALL, Sport.TENNIS})

MAX_FORM_ADJUSTMENT = 0.10
MAX_INJURY_ADJUSTMENT = 0.08
INJURY_SCALE = 0.02
MOTIVATION_BONUS = 0.05
KEY_PLAYER_IMPACT = 7.0

# (upper bound km, delta)
TRAVEL_BANDS: tuple[tuple[float, float], ...] = (
    (200.0, 0.0),
    (500.0, -0.02),
    (1000.0, -0.04),
    (2000.0, -0.06),
)
LONG_HAUL_DELTA = -0.08


@dataclass
class ContextFactors:
    form: float = 0.0
    injury: float = 0.0
    weather: float = 0.0
    travel: float = 0.0
    motivation: float = 0.0

    @property
    def total(self) -> float:
        return self.form + self.injury + self.weather + self.travel + self.motivation


@dataclass
class ContextResult:
    probability: float
    confidence: float
    factors: ContextFactors


class ContextLayer:
    """Adjusts a base probability for form, absences, conditions and stakes."""

    def adjust(self, base: StatisticalResult, game: GameData) -> ContextResult:
        factors = ContextFactors(
            form=form_adjustment(game),
            injury=injury_adjustment(game.injuries),
            weather=weather_adjustment(game.weather, game.sport),
            travel=travel_adjustment(game.travel_distance_km),
            motivation=MOTIVATION_BONUS if game.high_stakes else 0.0,
        )
        probability = clamp(base.probability + factors.total, 0.05, 0.95)
        logger.debug(
            "context_adjusted",
            extra={"game_id": game.id, "base": base.probability, "adjusted": probability},
        )
        return ContextResult(
            probability=probability,
            confidence=base.confidence,
            factors=factors,
        )


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------


def form_adjustment(game: GameData) -> float:
    diff = form_points(game.home_stats) - form_points(game.away_stats)
    return diff / 15.0 * MAX_FORM_ADJUSTMENT


def injury_adjustment(injuries: list[InjuryReport]) -> float:
    if not injuries:
        return 0.0
    home = sum(SEVERITY_WEIGHTS[i.severity] * i.impact / 10.0 for i in injuries if i.side != Side.AWAY)
    away = sum(SEVERITY_WEIGHTS[i.severity] * i.impact / 10.0 for i in injuries if i.side == Side.AWAY)
    return clamp((away - home) * INJURY_SCALE, -MAX_INJURY_ADJUSTMENT, MAX_INJURY_ADJUSTMENT)


def weather_adjustment(weather: WeatherData | None, sport: Sport) -> float:
    if weather is None or sport not in OUTDOOR_SPORTS:
        return 0.0
    impact = 0.0
    if weather.temperature < 5 or weather.temperature > 35:
        impact -= 0.02
    if weather.wind_speed > 30:
        impact -= 0.03
    if weather.precipitation > 50:
        impact -= 0.04
    return impact


def travel_adjustment(distance_km: float | None) -> float:
    if distance_km is None:
        return 0.0
    for upper, delta in TRAVEL_BANDS:
        if distance_km < upper:
            return delta
    return LONG_HAUL_DELTA


# ---------------------------------------------------------------------------
# Narrative helpers
# ---------------------------------------------------------------------------


def describe_form(game: GameData) -> str:
    home = "".join(game.home_stats.recent_form[:5]) or "-"
    away = "".join(game.away_stats.recent_form[:5]) or "-"
    return (
        f"{game.home_team}: {home} ({recent_wins(game.home_stats)} wins in last 5). "
        f"{game.away_team}: {away} ({recent_wins(game.away_stats)} wins in last 5)"
    )


def describe_injuries(injuries: list[InjuryReport]) -> str:
    if not injuries:
        return "No significant injuries reported. Both teams at full strength."
    key = [i for i in injuries if i.impact >= KEY_PLAYER_IMPACT]
    if key:
        noun = "player" if len(key) == 1 else "players"
        names = ", ".join(i.player for i in key)
        return f"Key absences: {names}. {len(key)} high-impact {noun} unavailable."
    noun = "injury" if len(injuries) == 1 else "injuries"
    return f"{len(injuries)} minor {noun} reported. Limited impact expected."


def describe_weather(weather: WeatherData | None) -> str | None:
    if weather is None:
        return None
    conditions = []
    if weather.temperature < 10:
        conditions.append("cold conditions")
    elif weather.temperature > 30:
        conditions.append("hot conditions")
    if weather.wind_speed > 25:
        conditions.append("strong winds")
    if weather.precipitation > 50:
        conditions.append("wet pitch")
    if not conditions:
        return f"Ideal playing conditions: {weather.temperature:.0f}°C."
    return f"{weather.temperature:.0f}°C with {', '.join(conditions)}. May favor defensive play."


def describe_motivation(motivation: float) -> str:
    if motivation >= MOTIVATION_BONUS:
        return "High-stakes match with significant implications. Both teams highly motivated."
    return "Standard fixture. Normal motivation levels expected."


POSITIVE_TERMS = ("strong", "dominant", "excellent", "impressive", "unbeaten", "confident")
NEGATIVE_TERMS = ("weak", "poor", "struggling", "injured", "suspended", "crisis")


def text_sentiment(text: str) -> float:
    """Keyword sentiment of free text (news, previews) in [-1, 1]."""
    lowered = text.lower()
    pos = sum(lowered.count(t) for t in POSITIVE_TERMS)
    neg = sum(lowered.count(t) for t in NEGATIVE_TERMS)
    if pos + neg == 0:
        return 0.0
    return (pos - neg) / (pos + neg)
