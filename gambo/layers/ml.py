"""Layer 3: fixed-weight model ensemble.

Three archetype scorers read the same feature vector and are blended
with weights proportional to their historical accuracy. The scorers are
closed-form stand-ins for trained models; swapping one for a fitted model
only needs a new ``score`` callable.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable

from gambo.layers.base import clamp, goals_per_game, per_game, recent_wins, win_rate
from gambo.types import GameData, Side

logger = logging.getLogger(__name__)

Features = dict[str, float]


@dataclass(frozen=True)
class Archetype:
    name: str
    accuracy: float
    score: Callable[[Features], float]


def _nonlinear(f: Features) -> float:
    return (
        f["statistical_probability"] * 0.4
        + f["contextual_probability"] * 0.3
        + f["home_win_rate"] * 0.2
        + math.sin(f["home_goals_per_game"]) * 0.1
    )


def _linear_interaction(f: Features) -> float:
    return (
        f["statistical_probability"] * 0.35
        + f["contextual_probability"] * 0.35
        + (f["home_win_rate"] - f["away_win_rate"]) * 0.15
        + (f["home_goals_per_game"] - f["away_goals_per_game"]) * 0.15
    )


def _decision_ensemble(f: Features) -> float:
    return (
        f["statistical_probability"] * 0.33
        + f["contextual_probability"] * 0.33
        + f["home_win_rate"] * 0.17
        + f["home_recent_wins"] * 0.02
        + f["h2h_home_wins"] * 0.03 / max(f["h2h_games"], 1.0)
    )


ARCHETYPES: tuple[Archetype, ...] = (
    Archetype("neural_network", 0.72, _nonlinear),
    Archetype("gradient_boost", 0.68, _linear_interaction),
    Archetype("random_forest", 0.65, _decision_ensemble),
)


@dataclass
class MLResult:
    probability: float
    confidence: float
    ensemble_weights: dict[str, float]
    predictions: dict[str, float]
    features: Features = field(default_factory=dict)


class MLLayer:
    """Accuracy-weighted blend of the archetype scorers."""

    def __init__(self, archetypes: tuple[Archetype, ...] = ARCHETYPES) -> None:
        self.archetypes = archetypes

    def predict(
        self,
        game: GameData,
        statistical_probability: float,
        contextual_probability: float,
    ) -> MLResult:
        features = extract_features(game, statistical_probability, contextual_probability)
        total_accuracy = sum(a.accuracy for a in self.archetypes)
        weights = {a.name: a.accuracy / total_accuracy for a in self.archetypes}
        predictions = {a.name: clamp(a.score(features), 0.0, 1.0) for a in self.archetypes}

        probability = sum(predictions[name] * weights[name] for name in predictions)
        confidence = total_accuracy / len(self.archetypes)
        return MLResult(
            probability=probability,
            confidence=confidence,
            ensemble_weights=weights,
            predictions=predictions,
            features=features,
        )


def extract_features(
    game: GameData,
    statistical_probability: float,
    contextual_probability: float,
) -> Features:
    home, away = game.home_stats, game.away_stats
    opening = game.odds.opening_odds
    return {
        "statistical_probability": statistical_probability,
        "contextual_probability": contextual_probability,
        "home_win_rate": win_rate(home),
        "away_win_rate": win_rate(away),
        "home_goals_per_game": goals_per_game(home),
        "away_goals_per_game": goals_per_game(away),
        "home_goals_conceded": per_game(home.goals_against, home.games_played),
        "away_goals_conceded": per_game(away.goals_against, away.games_played),
        "home_xg": per_game(home.xg or 0.0, home.games_played),
        "away_xg": per_game(away.xg or 0.0, away.games_played),
        "home_possession": home.possession or 0.0,
        "home_recent_wins": float(recent_wins(home)),
        "away_recent_wins": float(recent_wins(away)),
        "h2h_games": float(len(game.head_to_head)),
        "h2h_home_wins": float(sum(1 for h in game.head_to_head if h.winner == Side.HOME)),
        "injury_count": float(len(game.injuries)),
        "home_odds": game.odds.home_win,
        "away_odds": game.odds.away_win,
        "odds_movement": game.odds.home_win - opening.home_win if opening else 0.0,
    }
