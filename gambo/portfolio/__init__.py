"""Correlation-aware selection and sizing of bundle legs."""

from .correlation import average_correlation, correlation, correlation_matrix
from .kelly import fractional_kelly, kelly_criterion
from .optimizer import (
    OptimizedPortfolio,
    PortfolioOptimizer,
    calculate_kelly_stakes,
    diversification_score,
    portfolio_metrics,
    quality_score,
    sharpe_ratio,
)

__all__ = [
    "OptimizedPortfolio",
    "PortfolioOptimizer",
    "average_correlation",
    "calculate_kelly_stakes",
    "correlation",
    "correlation_matrix",
    "diversification_score",
    "fractional_kelly",
    "kelly_criterion",
    "portfolio_metrics",
    "quality_score",
    "sharpe_ratio",
]
