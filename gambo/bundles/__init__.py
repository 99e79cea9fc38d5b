"""Bundle generation: leg selection strategies and the async orchestrator."""

from .generator import NO_BUNDLE_MESSAGE, BundleGenerator, bundle_name, qualifies
from .strategies import (
    LegacySelectionStrategy,
    PortfolioSelectionStrategy,
    Selection,
    SelectionStrategy,
    legacy_score,
    to_asset,
)

__all__ = [
    "BundleGenerator",
    "LegacySelectionStrategy",
    "NO_BUNDLE_MESSAGE",
    "PortfolioSelectionStrategy",
    "Selection",
    "SelectionStrategy",
    "bundle_name",
    "legacy_score",
    "qualifies",
    "to_asset",
]
