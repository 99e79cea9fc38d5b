"""Layer 1: statistical foundation.

Runs the sport-appropriate submodels and combines them with a
confidence-weighted average:

  SOCCER   Poisson expected goals, xG ratio (when xG is available), Elo
  others   Elo, efficiency rating
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from gambo.layers.base import (
    clamp,
    goals_per_game,
    logistic,
    per_game,
    recent_wins,
    safe_rate,
    win_rate,
)
from gambo.types import GameData, Sport, TeamStats

logger = logging.getLogger(__name__)

LEAGUE_AVG_GOALS = 2.7
AWAY_GOAL_FACTOR = 0.85
ELO_BASE = 1500.0
ELO_K = 32.0
ELO_HOME_ADVANTAGE = 100.0
ELO_LOG_SCALE = math.log(10) / 400.0
XG_HOME_FACTOR = 1.15
XG_AWAY_FACTOR = 0.9
DEFAULT_TOTAL_LINE = 2.5


@dataclass
class SubModel:
    """One statistical submodel's verdict on a home win."""

    name: str
    prediction: float
    confidence: float
    parameters: dict[str, float] = field(default_factory=dict)


@dataclass
class StatisticalResult:
    probability: float
    confidence: float
    expected_value: float
    models: list[SubModel]
    btts_probability: Optional[float] = None
    over_probability: Optional[float] = None


class StatisticalLayer:
    """Base probability of a home win from season statistics."""

    def predict(self, game: GameData) -> StatisticalResult:
        if game.sport == Sport.SOCCER:
            models = [self.poisson_model(game)]
            if game.home_stats.xg is not None and game.away_stats.xg is not None:
                models.append(self.xg_model(game))
            models.append(self.elo_model(game))
        else:
            models = [self.elo_model(game), self.efficiency_model(game)]

        probability, confidence = combine_models(models)
        expected_value = probability * game.odds.home_win - 1.0

        btts = over = None
        if game.sport == Sport.SOCCER:
            btts = self.btts_probability(game)
            line = game.odds.over_under.line if game.odds.over_under else DEFAULT_TOTAL_LINE
            over = self.over_probability(game, line)

        return StatisticalResult(
            probability=probability,
            confidence=confidence,
            expected_value=expected_value,
            models=models,
            btts_probability=btts,
            over_probability=over,
        )

    # ------------------------------------------------------------------
    # Submodels
    # ------------------------------------------------------------------

    def poisson_model(self, game: GameData) -> SubModel:
        home, away = game.home_stats, game.away_stats
        home_expected = (
            (home.attack_strength or 1.0)
            * (away.defense_strength or 1.0)
            * (home.home_advantage or 1.0)
            * LEAGUE_AVG_GOALS
        )
        away_expected = (
            (away.attack_strength or 1.0)
            * (home.defense_strength or 1.0)
            * AWAY_GOAL_FACTOR
            * LEAGUE_AVG_GOALS
        )
        # Logistic on the goal difference stands in for the full score matrix
        return SubModel(
            name="POISSON",
            prediction=logistic(home_expected - away_expected),
            confidence=0.75,
            parameters={
                "home_expected_goals": home_expected,
                "away_expected_goals": away_expected,
            },
        )

    def xg_model(self, game: GameData) -> SubModel:
        home_xg = per_game(game.home_stats.xg or 0.0, game.home_stats.games_played) * XG_HOME_FACTOR
        away_xg = per_game(game.away_stats.xg or 0.0, game.away_stats.games_played) * XG_AWAY_FACTOR
        total = home_xg + away_xg
        return SubModel(
            name="XG",
            prediction=home_xg / total if total > 0 else 0.5,
            confidence=0.8,
            parameters={"home_xg": home_xg, "away_xg": away_xg},
        )

    def elo_model(self, game: GameData) -> SubModel:
        home_elo = elo_rating(game.home_stats)
        away_elo = elo_rating(game.away_stats)
        diff = home_elo + ELO_HOME_ADVANTAGE - away_elo
        return SubModel(
            name="ELO",
            # 1 / (1 + 10^(-diff/400)) in overflow-safe form
            prediction=logistic(diff * ELO_LOG_SCALE),
            confidence=0.7,
            parameters={"home_elo": home_elo, "away_elo": away_elo, "elo_difference": diff},
        )

    def efficiency_model(self, game: GameData) -> SubModel:
        home_eff = efficiency(game.home_stats)
        away_eff = efficiency(game.away_stats)
        total = home_eff + away_eff
        return SubModel(
            name="EFFICIENCY",
            prediction=clamp(home_eff / total, 0.0, 1.0) if total > 0 else 0.5,
            confidence=0.65,
            parameters={"home_efficiency": home_eff, "away_efficiency": away_eff},
        )

    # ------------------------------------------------------------------
    # Secondary markets
    # ------------------------------------------------------------------

    def btts_probability(self, game: GameData) -> float:
        """Both teams to score, treating scoring rates as independent."""
        home = goals_per_game(game.home_stats)
        away = goals_per_game(game.away_stats)
        return min(home * away * 1.5, 0.95)

    def over_probability(self, game: GameData, line: float = DEFAULT_TOTAL_LINE) -> float:
        expected_total = goals_per_game(game.home_stats) + goals_per_game(game.away_stats)
        return logistic(expected_total - line)


def combine_models(models: list[SubModel]) -> tuple[float, float]:
    """Confidence-weighted probability and mean confidence."""
    total_conf = sum(m.confidence for m in models)
    if total_conf <= 0:
        return 0.5, 0.0
    probability = sum(m.prediction * m.confidence for m in models) / total_conf
    return probability, total_conf / len(models)


def elo_rating(stats: TeamStats) -> float:
    return ELO_BASE + ELO_K * (win_rate(stats) - 0.5) * stats.games_played


def efficiency(stats: TeamStats) -> float:
    """Points per game, goal difference and recent form blended into one rating."""
    gp = stats.games_played
    ppg = 3 * safe_rate(stats.wins, gp) + safe_rate(stats.draws, gp)
    gd_per_game = per_game(stats.goals_for - stats.goals_against, gp)
    window = min(len(stats.recent_form), 5)
    form = recent_wins(stats) / window if window else 0.5
    return ppg * 0.5 + gd_per_game * 0.3 + form * 0.2
