"""Rule-based narrative for a prediction: risks, key factors, analysis text."""

from __future__ import annotations

from gambo.layers.base import goals_per_game, win_rate
from gambo.layers.contextual import (
    ContextResult,
    describe_form,
    describe_injuries,
    describe_motivation,
    describe_weather,
)
from gambo.layers.market import MarketResult, describe_market
from gambo.layers.statistical import StatisticalResult
from gambo.market.efficiency import LineMovementAnalysis
from gambo.types import GameData, PredictionAnalysis, Recommendation, Sport

RECOMMENDATION_TEXT: dict[Recommendation, str] = {
    Recommendation.NO_BET: "No value detected in market",
    Recommendation.PASS: "Insufficient confidence or marginal value",
    Recommendation.SMALL_STAKE: "Marginal value",
    Recommendation.RECOMMENDED: "Good value opportunity",
    Recommendation.STRONG_BET: "High value and confidence",
}


def identify_risks(
    game: GameData,
    context: ContextResult,
    market: MarketResult,
    movement: LineMovementAnalysis | None = None,
) -> list[str]:
    risks = []
    if len(game.injuries) > 2:
        risks.append("Multiple key injuries affecting team strength")
    if abs(context.factors.form) < 0.02:
        risks.append("Recent form inconsistent, unpredictable performance")
    if market.sharp_money and market.edge < 0:
        risks.append("Sharp money betting against our position")
    if game.weather is not None and game.weather.precipitation > 70:
        risks.append("Severe weather could lead to unpredictable conditions")
    if movement is not None and movement.steam_move:
        risks.append("Steam move in progress, price may not hold")
    if not risks:
        risks.append("Low risk - all indicators aligned")
    return risks


def key_factors(
    statistical: StatisticalResult,
    context: ContextResult,
    market: MarketResult,
) -> list[str]:
    factors = [
        f"Statistical models: {statistical.confidence * 100:.0f}% confidence "
        f"({', '.join(m.name for m in statistical.models)})",
        f"Recent form impact: {abs(context.factors.form) * 100:.1f}%",
    ]
    if context.factors.injury:
        factors.append(f"Injury adjustment: {context.factors.injury * 100:+.1f}%")
    if context.factors.travel:
        factors.append(f"Travel fatigue: {context.factors.travel * 100:+.1f}%")
    factors.append(f"Value rating: {market.value_rating:+.1f}")
    return factors


def build_analysis(
    game: GameData,
    statistical: StatisticalResult,
    context: ContextResult,
    market: MarketResult,
    recommendation: Recommendation,
    risks: list[str],
) -> PredictionAnalysis:
    home, away = game.home_stats, game.away_stats
    summary = (
        f"{game.home_team} ({win_rate(home) * 100:.0f}% win rate) host "
        f"{game.away_team} ({win_rate(away) * 100:.0f}% win rate). "
        f"Home side averaging {goals_per_game(home):.1f} goals per game, visitors "
        f"{goals_per_game(away):.1f}."
    )

    stat_lines = [f"{m.name}: {m.prediction * 100:.1f}%" for m in statistical.models]
    if game.sport == Sport.SOCCER and statistical.btts_probability is not None:
        stat_lines.append(f"BTTS: {statistical.btts_probability * 100:.1f}%")

    context_parts = [describe_form(game), describe_injuries(game.injuries)]
    weather = describe_weather(game.weather)
    if weather:
        context_parts.append(weather)
    context_parts.append(describe_motivation(context.factors.motivation))

    return PredictionAnalysis(
        summary=summary,
        statistical="; ".join(stat_lines),
        contextual=" ".join(context_parts),
        market=describe_market(market),
        risk="; ".join(risks),
        verdict=f"{recommendation.value.replace('_', ' ')} - {RECOMMENDATION_TEXT[recommendation]}",
    )
