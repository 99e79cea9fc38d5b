"""Tests for the four probability layers.

Tests cover:
  - Statistical submodels (Poisson, Elo, xG, efficiency) and neutral rates
  - Context factors (form, signed injuries, weather, travel, motivation)
  - Model ensemble weighting
  - Market layer edge, line movement and Kelly sizing
"""

import math

import pytest

from gambo.layers import ContextLayer, LayerResult, MarketLayer, MLLayer, StatisticalLayer
from gambo.layers.contextual import (
    MAX_INJURY_ADJUSTMENT,
    form_adjustment,
    injury_adjustment,
    text_sentiment,
    travel_adjustment,
    weather_adjustment,
)
from gambo.layers.market import line_movement, money_flow
from gambo.layers.ml import ARCHETYPES
from gambo.portfolio import fractional_kelly, kelly_criterion
from gambo.tests.factories import make_game
from gambo.types import (
    InjuryReport,
    InjurySeverity,
    LineMovement,
    OddsData,
    OpeningOdds,
    Side,
    Sport,
    TeamStats,
    WeatherData,
)


# ============================================================
# Layer 1: statistical foundation
# ============================================================

class TestStatisticalLayer:

    def setup_method(self):
        self.layer = StatisticalLayer()

    def test_soccer_uses_poisson_and_elo(self, game):
        result = self.layer.predict(game)
        names = [m.name for m in result.models]
        assert names == ["POISSON", "ELO"], f"Unexpected submodels: {names}"

        poisson, elo = result.models
        assert poisson.prediction == pytest.approx(0.59989, abs=1e-4)
        assert elo.prediction == pytest.approx(0.96574, abs=1e-4)
        assert result.probability == pytest.approx(0.77650, abs=1e-4)
        assert result.confidence == pytest.approx(0.725)

    def test_xg_model_only_with_both_sides(self, game):
        with_xg = game.model_copy(update={
            "home_stats": game.home_stats.model_copy(update={"xg": 36.0}),
            "away_stats": game.away_stats.model_copy(update={"xg": 18.0}),
        })
        names = [m.name for m in self.layer.predict(with_xg).models]
        assert "XG" in names

        home_only = game.model_copy(update={
            "home_stats": game.home_stats.model_copy(update={"xg": 36.0}),
        })
        assert "XG" not in [m.name for m in self.layer.predict(home_only).models]

    def test_other_sports_use_elo_and_efficiency(self):
        game = make_game(sport=Sport.BASKETBALL, draw_odds=None)
        names = [m.name for m in self.layer.predict(game).models]
        assert names == ["ELO", "EFFICIENCY"]

    def test_zero_games_played_is_neutral_not_nan(self):
        game = make_game(home_stats=TeamStats(), away_stats=TeamStats())
        result = self.layer.predict(game)
        elo = next(m for m in result.models if m.name == "ELO")
        # Equal 1500 ratings, only home advantage separates them
        assert elo.parameters["home_elo"] == elo.parameters["away_elo"] == 1500.0
        assert not math.isnan(result.probability)
        assert 0.0 < result.probability < 1.0

    def test_zero_games_efficiency_is_finite(self):
        game = make_game(sport=Sport.HOCKEY, draw_odds=None, home_stats=TeamStats(), away_stats=TeamStats())
        result = self.layer.predict(game)
        assert all(not math.isnan(m.prediction) for m in result.models)

    def test_secondary_markets(self, game):
        result = self.layer.predict(game)
        # 2.0 x 0.75 goals per game x 1.5 exceeds the cap
        assert result.btts_probability == pytest.approx(0.95)
        assert result.over_probability == pytest.approx(1 / (1 + math.exp(-0.25)), abs=1e-9)

    def test_no_secondary_markets_outside_soccer(self):
        result = self.layer.predict(make_game(sport=Sport.TENNIS, draw_odds=None))
        assert result.btts_probability is None
        assert result.over_probability is None

    def test_expected_value(self, game):
        result = self.layer.predict(game)
        assert result.expected_value == pytest.approx(result.probability * 1.3 - 1)

    def test_elo_saturates_instead_of_overflowing(self):
        game = make_game(
            home_stats=TeamStats(games_played=5000, losses=5000),
            away_stats=TeamStats(games_played=5000, wins=5000),
        )
        elo = self.layer.elo_model(game)
        assert elo.parameters["elo_difference"] == pytest.approx(-159_900.0)
        assert 0.0 <= elo.prediction < 1e-6

    def test_result_satisfies_layer_protocol(self, game):
        assert isinstance(self.layer.predict(game), LayerResult)


# ============================================================
# Layer 2: context
# ============================================================

class TestContextLayer:

    def test_form_adjustment(self, game):
        # 13 points against 1 over the last five
        assert form_adjustment(game) == pytest.approx(0.08)

    def test_home_injuries_hurt_away_injuries_help(self):
        home = [InjuryReport(player="Striker", severity=InjurySeverity.SEVERE, impact=10.0)]
        away = [InjuryReport(player="Keeper", severity=InjurySeverity.SEVERE, impact=10.0, side=Side.AWAY)]
        assert injury_adjustment(home) == pytest.approx(-0.02)
        assert injury_adjustment(away) == pytest.approx(0.02)
        assert injury_adjustment([]) == 0.0

    def test_injury_adjustment_is_capped(self):
        crisis = [
            InjuryReport(player=f"P{i}", severity=InjurySeverity.SEVERE, impact=10.0)
            for i in range(10)
        ]
        assert injury_adjustment(crisis) == pytest.approx(-MAX_INJURY_ADJUSTMENT)

    def test_weather_only_for_outdoor_sports(self):
        storm = WeatherData(temperature=2.0, wind_speed=40.0, precipitation=80.0)
        assert weather_adjustment(storm, Sport.SOCCER) == pytest.approx(-0.09)
        assert weather_adjustment(storm, Sport.BASKETBALL) == 0.0
        assert weather_adjustment(None, Sport.SOCCER) == 0.0

    @pytest.mark.parametrize("distance,expected", [
        (None, 0.0), (150.0, 0.0), (300.0, -0.02), (800.0, -0.04), (1500.0, -0.06), (5000.0, -0.08),
    ])
    def test_travel_bands(self, distance, expected):
        assert travel_adjustment(distance) == pytest.approx(expected)

    def test_adjusted_probability(self, game):
        base = StatisticalLayer().predict(game)
        result = ContextLayer().adjust(base, game)
        assert result.probability == pytest.approx(base.probability + 0.08)
        assert result.confidence == base.confidence

    def test_motivation_bonus(self, game):
        base = StatisticalLayer().predict(game)
        plain = ContextLayer().adjust(base, game)
        derby = ContextLayer().adjust(base, game.model_copy(update={"high_stakes": True}))
        assert derby.factors.motivation == pytest.approx(0.05)
        assert derby.probability == pytest.approx(min(0.95, plain.probability + 0.05))

    def test_clamped_to_bounds(self, game):
        base = StatisticalLayer().predict(game)
        boosted = game.model_copy(update={"high_stakes": True, "injuries": [
            InjuryReport(player=f"A{i}", severity=InjurySeverity.SEVERE, impact=10.0, side=Side.AWAY)
            for i in range(10)
        ]})
        result = ContextLayer().adjust(base, boosted)
        assert result.probability <= 0.95

    def test_text_sentiment(self):
        assert text_sentiment("Strong, dominant display") == 1.0
        assert text_sentiment("struggling side in crisis") == -1.0
        assert text_sentiment("nothing to report") == 0.0


# ============================================================
# Layer 3: model ensemble
# ============================================================

class TestMLLayer:

    def test_accuracy_weighted_blend(self, game):
        result = MLLayer().predict(game, 0.7765, 0.8565)
        assert sum(result.ensemble_weights.values()) == pytest.approx(1.0)
        assert result.ensemble_weights["neural_network"] == pytest.approx(0.72 / 2.05)
        assert result.confidence == pytest.approx(2.05 / 3)
        blended = sum(result.predictions[a.name] * result.ensemble_weights[a.name] for a in ARCHETYPES)
        assert result.probability == pytest.approx(blended)
        assert result.probability == pytest.approx(0.8159, abs=1e-3)

    def test_archetype_scores_are_clamped(self, game):
        result = MLLayer().predict(game, 1.0, 1.0)
        assert all(0.0 <= p <= 1.0 for p in result.predictions.values())

    def test_features_include_market_drift(self, game):
        with_opening = game.model_copy(update={
            "odds": OddsData(home_win=1.3, away_win=9.0, opening_odds=OpeningOdds(home_win=1.5, away_win=7.0)),
        })
        features = MLLayer().predict(with_opening, 0.5, 0.5).features
        assert features["odds_movement"] == pytest.approx(-0.2)


# ============================================================
# Layer 4: market
# ============================================================

class TestMarketLayer:

    def test_edge_and_implied_probability(self):
        result = MarketLayer().analyze(OddsData(home_win=2.0, away_win=2.0), 0.55)
        assert result.probability == pytest.approx(0.5)
        assert result.edge == pytest.approx(0.05)
        assert result.fair_odds == pytest.approx(1 / 0.55)
        assert result.value_rating == pytest.approx(10.0)

    def test_line_movement_classification(self):
        def odds(opening, current):
            return OddsData(home_win=current, away_win=3.0, opening_odds=OpeningOdds(home_win=opening, away_win=3.0))

        assert line_movement(OddsData(home_win=2.0, away_win=2.0)) == LineMovement.NEUTRAL
        assert line_movement(odds(2.0, 2.02)) == LineMovement.NEUTRAL
        assert line_movement(odds(2.0, 2.2)) == LineMovement.SHARP
        assert line_movement(odds(2.0, 1.9)) == LineMovement.PUBLIC
        assert line_movement(odds(2.0, 1.7)) == LineMovement.SHARP

    def test_money_flow_and_confidence(self):
        drifting = OddsData(home_win=2.3, away_win=3.0, opening_odds=OpeningOdds(home_win=2.0, away_win=3.0))
        assert money_flow(drifting) == (30.0, 70.0)
        result = MarketLayer().analyze(drifting, 0.5)
        assert result.confidence == pytest.approx(0.3)
        assert result.sharp_money

    def test_layer_kelly_cap(self):
        stake = MarketLayer().kelly_stake(0.9, 3.0, bankroll=1000.0)
        assert stake == pytest.approx(50.0), f"Expected the 5% cap, got {stake}"


# ============================================================
# Kelly criterion
# ============================================================

class TestKelly:

    def test_known_value(self):
        # p=0.6 at evens: f* = (0.6 - 0.4) / 1
        assert kelly_criterion(0.6, 2.0) == pytest.approx(0.2)

    @pytest.mark.parametrize("p,odds", [(0.4, 2.0), (0.5, 2.0), (0.2, 3.0), (0.0, 5.0)])
    def test_zero_without_edge(self, p, odds):
        assert kelly_criterion(p, odds) == 0.0
        assert fractional_kelly(p, odds) == 0.0

    def test_degenerate_odds(self):
        assert kelly_criterion(0.9, 1.0) == 0.0
        assert kelly_criterion(0.9, 0.5) == 0.0

    def test_fractional_cap(self):
        assert fractional_kelly(0.9, 3.0) == pytest.approx(0.10)
        assert fractional_kelly(0.55, 2.0, fraction=0.25) == pytest.approx(0.025)
