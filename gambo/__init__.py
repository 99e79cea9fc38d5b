"""Gambo engine: layered sports-betting probability aggregation.

Four probability layers (statistics, context, model ensemble, market) are
fused with Bayesian evidence updating and a market-efficiency read, then
turned into a recommendation and stake. Qualified predictions can be combined
into correlation-aware multi-leg bundles, and settled results feed back into
the layer weights.
"""

from .bundles import BundleGenerator, LegacySelectionStrategy, PortfolioSelectionStrategy
from .config import EngineConfig, FeatureFlags, LayerWeights, Thresholds, setup_logging
from .engine import GamboEngine, recommend, validate_game
from .errors import GamboError, InsufficientDataError, NoCombinationFoundError, ValidationError
from .learning import AdaptiveLearningSystem, ModelWeights, ModelWeightStore, PredictionRecord
from .types import (
    BundleOutcome,
    BundleRequest,
    BundleType,
    GameData,
    GeneratedBundle,
    PredictionOutput,
    Recommendation,
    Sport,
)

__all__ = [
    "AdaptiveLearningSystem",
    "BundleGenerator",
    "BundleOutcome",
    "BundleRequest",
    "BundleType",
    "EngineConfig",
    "FeatureFlags",
    "GamboEngine",
    "GamboError",
    "GameData",
    "GeneratedBundle",
    "InsufficientDataError",
    "LayerWeights",
    "LegacySelectionStrategy",
    "ModelWeightStore",
    "ModelWeights",
    "NoCombinationFoundError",
    "PortfolioSelectionStrategy",
    "PredictionOutput",
    "PredictionRecord",
    "Recommendation",
    "Sport",
    "Thresholds",
    "ValidationError",
    "recommend",
    "setup_logging",
]
