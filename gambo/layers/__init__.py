"""Four-layer probability aggregator: statistics, context, model ensemble, market."""

from .base import LayerResult
from .contextual import ContextFactors, ContextLayer, ContextResult
from .market import MarketLayer, MarketResult
from .ml import MLLayer, MLResult
from .statistical import StatisticalLayer, StatisticalResult

__all__ = [
    "LayerResult",
    "StatisticalLayer",
    "StatisticalResult",
    "ContextLayer",
    "ContextResult",
    "ContextFactors",
    "MLLayer",
    "MLResult",
    "MarketLayer",
    "MarketResult",
]
