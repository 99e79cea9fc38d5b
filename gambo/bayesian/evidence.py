"""Evidence construction: turn layer outputs into directional likelihoods.

Each ``Evidence`` item says "this observation is ``likelihood`` times more
consistent with ``direction`` than with the alternative", discounted by
``strength``. A likelihood of 1.0 is uninformative.

Builders always emit likelihood >= 1 and encode the sign of a signal in its
direction, so a negative form swing strengthens AWAY rather than weakening it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from gambo.layers.base import clamp
from gambo.layers.contextual import ContextResult
from gambo.layers.market import MarketResult
from gambo.layers.ml import MLResult
from gambo.layers.statistical import StatisticalResult
from gambo.types import Side

logger = logging.getLogger(__name__)

PRIOR_DRAW_RATE = 0.25
MIN_OUTCOME_MASS = 0.01


class EvidenceType(str, Enum):
    FORM = "FORM"
    H2H = "H2H"
    INJURY = "INJURY"
    MARKET = "MARKET"
    STATISTICAL = "STATISTICAL"
    TACTICAL = "TACTICAL"


@dataclass(frozen=True)
class BayesianPrior:
    """Prior over (home, draw, away) plus how strongly it is believed."""

    home_win_rate: float
    draw_rate: float
    away_win_rate: float
    confidence: float


@dataclass(frozen=True)
class Evidence:
    type: EvidenceType
    likelihood: float
    strength: float              # reliability, 0-1
    direction: Side


def build_prior(statistical: StatisticalResult) -> BayesianPrior:
    """Prior from the statistical layer with a fixed draw rate."""
    home = clamp(statistical.probability, MIN_OUTCOME_MASS, 1.0)
    draw = PRIOR_DRAW_RATE
    away = max(MIN_OUTCOME_MASS, 1.0 - home - draw)
    total = home + draw + away
    return BayesianPrior(
        home_win_rate=home / total,
        draw_rate=draw / total,
        away_win_rate=away / total,
        confidence=clamp(statistical.confidence, 0.01, 0.99),
    )


def _signed(
    evidence_type: EvidenceType,
    signal: float,
    strength: float,
) -> Evidence:
    return Evidence(
        type=evidence_type,
        likelihood=1.0 + abs(signal),
        strength=strength,
        direction=Side.HOME if signal >= 0 else Side.AWAY,
    )


def build_evidence(
    prior: BayesianPrior,
    statistical: StatisticalResult,
    context: ContextResult,
    ml: MLResult,
    market: MarketResult,
) -> list[Evidence]:
    """One evidence item per layer signal, in a fixed order."""
    stat_ratio = statistical.probability / max(prior.home_win_rate, MIN_OUTCOME_MASS)
    tactical_ratio = ml.probability / max(context.probability, MIN_OUTCOME_MASS)
    return [
        Evidence(
            type=EvidenceType.STATISTICAL,
            likelihood=stat_ratio,
            strength=clamp(statistical.confidence, 0.0, 1.0),
            direction=Side.HOME,
        ),
        _signed(EvidenceType.FORM, context.factors.form, 0.8),
        _signed(EvidenceType.INJURY, context.factors.injury, 0.7),
        Evidence(
            type=EvidenceType.TACTICAL,
            likelihood=tactical_ratio,
            strength=clamp(ml.confidence, 0.0, 1.0),
            direction=Side.HOME,
        ),
        _signed(EvidenceType.MARKET, market.edge, 0.9 if market.sharp_money else 0.5),
    ]
