"""Sequential Bayesian fusion over (home, draw, away).

Each evidence item rescales the outcome vector and the vector is
renormalized before the next item is applied:

  shift    = 1 + (likelihood - 1) * strength
  matching outcome  x shift
  opposite outcome  x 1 / shift
  third outcome     x 1 / sqrt(shift)

Application is order-dependent; callers pass evidence in a fixed order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from gambo.bayesian.evidence import BayesianPrior, Evidence
from gambo.types import BetSignal, Side

logger = logging.getLogger(__name__)

MIN_SHIFT = 0.01
MAX_SHIFT = 100.0
MIN_LIKELIHOOD = 0.01
CLEAR_FAVORITE = 0.4


@dataclass
class FusedProbability:
    home: float
    draw: float
    away: float
    confidence: float

    @property
    def favorite(self) -> Side:
        best = max(self.home, self.draw, self.away)
        if best == self.home:
            return Side.HOME
        if best == self.away:
            return Side.AWAY
        return Side.DRAW


@dataclass
class PosteriorPredictive:
    mean: float
    variance: float
    lower: float      # 2.5th percentile
    upper: float      # 97.5th percentile
    samples: int


@dataclass
class ModelComparison:
    bayes_factor: float
    posterior_accuracy: float
    edge_significance: float
    signal: BetSignal


def _clip_probability(p: float) -> float:
    return max(0.001, min(0.999, p))


class BayesianFusion:
    """Fuses layer evidence into an outcome distribution.

    Args:
        noise_std: Gaussian noise applied to likelihoods during
            posterior-predictive sampling.
        samples: Default number of Monte Carlo draws.
        prior_model_accuracy: Prior belief that the model beats the market.
    """

    def __init__(
        self,
        noise_std: float = 0.05,
        samples: int = 500,
        prior_model_accuracy: float = 0.70,
    ) -> None:
        self.noise_std = noise_std
        self.samples = samples
        self.prior_model_accuracy = prior_model_accuracy

    def update(self, prior: BayesianPrior, evidence: list[Evidence]) -> FusedProbability:
        home, draw, away = prior.home_win_rate, prior.draw_rate, prior.away_win_rate
        confidence = prior.confidence

        for ev in evidence:
            home, draw, away = self._apply_evidence((home, draw, away), ev)
            alignment = 1.0 if max(home, draw, away) > CLEAR_FAVORITE else 0.8
            confidence = confidence * alignment + ev.strength * 0.1

        return FusedProbability(
            home=home,
            draw=draw,
            away=away,
            confidence=max(0.01, min(0.99, confidence)),
        )

    def _apply_evidence(
        self,
        current: tuple[float, float, float],
        ev: Evidence,
    ) -> tuple[float, float, float]:
        strength = max(0.0, min(1.0, ev.strength))
        shift = 1.0 + (ev.likelihood - 1.0) * strength
        shift = max(MIN_SHIFT, min(MAX_SHIFT, shift))
        inverse = 1.0 / shift
        partial = 1.0 / math.sqrt(shift)

        if ev.direction == Side.HOME:
            ratios = (shift, partial, inverse)
        elif ev.direction == Side.AWAY:
            ratios = (inverse, partial, shift)
        else:
            ratios = (partial, shift, partial)

        updated = [p * r for p, r in zip(current, ratios)]
        total = sum(updated)
        if total <= 0:
            return current
        return updated[0] / total, updated[1] / total, updated[2] / total

    # ------------------------------------------------------------------
    # Posterior predictive
    # ------------------------------------------------------------------

    def posterior_predictive(
        self,
        prior: BayesianPrior,
        evidence: list[Evidence],
        rng: np.random.Generator,
        samples: Optional[int] = None,
    ) -> PosteriorPredictive:
        """Monte Carlo spread of the home probability under likelihood noise."""
        n = samples or self.samples
        draws = np.empty(n)
        for i in range(n):
            noisy = [
                Evidence(
                    type=ev.type,
                    likelihood=self._add_noise(ev.likelihood, rng),
                    strength=ev.strength,
                    direction=ev.direction,
                )
                for ev in evidence
            ]
            draws[i] = self.update(prior, noisy).home

        ordered = np.sort(draws)
        lower = ordered[int(math.floor(n * 0.025))]
        upper = ordered[min(int(math.floor(n * 0.975)), n - 1)]
        return PosteriorPredictive(
            mean=float(draws.mean()),
            variance=float(draws.var()),
            lower=float(lower),
            upper=float(upper),
            samples=n,
        )

    def _add_noise(self, value: float, rng: np.random.Generator) -> float:
        # Box-Muller; 1 - U keeps the log argument in (0, 1]
        u1 = 1.0 - rng.random()
        u2 = rng.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return max(MIN_LIKELIHOOD, value + z0 * self.noise_std)

    # ------------------------------------------------------------------
    # Model vs market
    # ------------------------------------------------------------------

    def compare_models(
        self,
        model_probability: float,
        market_probability: float,
        prior_accuracy: Optional[float] = None,
    ) -> ModelComparison:
        """Bayes-factor test of the model against the market price."""
        prior_acc = self.prior_model_accuracy if prior_accuracy is None else prior_accuracy
        p_model = _clip_probability(model_probability)
        p_market = _clip_probability(market_probability)

        bayes_factor = (p_model / (1 - p_model)) / (p_market / (1 - p_market))
        posterior = (bayes_factor * prior_acc) / (bayes_factor * prior_acc + (1 - prior_acc))
        significance = (p_model - p_market) * posterior

        if significance > 0.10 and posterior > 0.75:
            signal = BetSignal.STRONG
        elif significance > 0.05 and posterior > 0.65:
            signal = BetSignal.MODERATE
        elif significance > 0.02 and posterior > 0.55:
            signal = BetSignal.WEAK
        else:
            signal = BetSignal.NO_BET

        return ModelComparison(
            bayes_factor=bayes_factor,
            posterior_accuracy=posterior,
            edge_significance=significance,
            signal=signal,
        )
