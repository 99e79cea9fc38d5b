"""Bayesian evidence fusion over match outcomes.

Uses the statistical layer as the prior, then updates with evidence from
form, injuries, the model ensemble and the market.
"""

from .evidence import BayesianPrior, Evidence, EvidenceType, build_evidence, build_prior
from .fusion import (
    BayesianFusion,
    FusedProbability,
    ModelComparison,
    PosteriorPredictive,
)

__all__ = [
    "BayesianFusion",
    "BayesianPrior",
    "Evidence",
    "EvidenceType",
    "FusedProbability",
    "ModelComparison",
    "PosteriorPredictive",
    "build_evidence",
    "build_prior",
]
