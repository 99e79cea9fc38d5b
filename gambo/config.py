"""Engine configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pythonjsonlogger import jsonlogger

from gambo.errors import ValidationError

# ---------------------------------------------------------------------------
# Model version
# ---------------------------------------------------------------------------
MODEL_VERSION = os.environ.get("GAMBO_MODEL_VERSION", "2.0.0")

# ---------------------------------------------------------------------------
# Layer weights (initial ModelWeights, must sum to 1)
# ---------------------------------------------------------------------------
WEIGHT_STATISTICAL = float(os.environ.get("GAMBO_WEIGHT_STATISTICAL", "0.25"))
WEIGHT_CONTEXTUAL = float(os.environ.get("GAMBO_WEIGHT_CONTEXTUAL", "0.25"))
WEIGHT_MACHINE_LEARNING = float(os.environ.get("GAMBO_WEIGHT_ML", "0.35"))
WEIGHT_MARKET = float(os.environ.get("GAMBO_WEIGHT_MARKET", "0.15"))

# ---------------------------------------------------------------------------
# Recommendation thresholds
# ---------------------------------------------------------------------------
MIN_CONFIDENCE = float(os.environ.get("GAMBO_MIN_CONFIDENCE", "65"))
MIN_EDGE = float(os.environ.get("GAMBO_MIN_EDGE", "0.02"))
MAX_RISK = float(os.environ.get("GAMBO_MAX_RISK", "0.15"))

PROBABILITY_FLOOR = 0.05
PROBABILITY_CEILING = 0.95
MARKET_EDGE_TRIGGER = 0.05       # |edge| beyond which the market weight adjusts the final probability
MARKET_AGREEMENT_EDGE = 0.02     # |edge| below which the market validates the model
MARKET_CONFLICT_EDGE = 0.10      # |edge| above which the market conflicts with the model

# ---------------------------------------------------------------------------
# Bayesian fusion / Monte Carlo
# ---------------------------------------------------------------------------
POSTERIOR_SAMPLES = int(os.environ.get("GAMBO_POSTERIOR_SAMPLES", "500"))
POSTERIOR_NOISE = float(os.environ.get("GAMBO_POSTERIOR_NOISE", "0.05"))
PRIOR_MODEL_ACCURACY = float(os.environ.get("GAMBO_PRIOR_MODEL_ACCURACY", "0.70"))
BAYESIAN_BLEND = 0.4             # Share of the Bayesian home probability in the final blend
_seed = os.environ.get("GAMBO_RANDOM_SEED")
RANDOM_SEED: Optional[int] = int(_seed) if _seed else None

# ---------------------------------------------------------------------------
# Market detector
# ---------------------------------------------------------------------------
DEFAULT_PUBLIC_PCT = float(os.environ.get("GAMBO_DEFAULT_PUBLIC_PCT", "60"))
STEAM_MOVE_THRESHOLD = 0.02      # Relative change per transition counted as a steam move
STEAM_WINDOW = 5                 # Transitions inspected for steam
STEAM_MIN_MOVES = 3
REVERSE_PUBLIC_HIGH = 65.0
REVERSE_PUBLIC_LOW = 35.0

# ---------------------------------------------------------------------------
# Portfolio optimizer
# ---------------------------------------------------------------------------
MAX_CORRELATION = float(os.environ.get("GAMBO_MAX_CORRELATION", "0.6"))
FRACTIONAL_KELLY = float(os.environ.get("GAMBO_FRACTIONAL_KELLY", "0.25"))
MAX_KELLY_STAKE = 0.10           # Fraction of bankroll per asset
RETURN_TOLERANCE = 0.20          # Allowed |ER - target| / target
MAX_CANDIDATE_POOL = int(os.environ.get("GAMBO_MAX_CANDIDATE_POOL", "20"))
MIN_BUNDLE_EXPECTED_RETURN = 1.01

# ---------------------------------------------------------------------------
# Legacy bundle selection
# ---------------------------------------------------------------------------
LEGACY_ODDS_TOLERANCE = 0.15
LEGACY_RELAXED_TOLERANCE = 0.30

# ---------------------------------------------------------------------------
# Adaptive learning
# ---------------------------------------------------------------------------
LEARNING_RATE = float(os.environ.get("GAMBO_LEARNING_RATE", "0.01"))
LEARNING_HISTORY_CAP = 10_000
LEARNING_MIN_RECORDS = 100
LEARNING_WINDOW = 500
CALIBRATION_MIN_RECORDS = 50
CALIBRATION_BINS = 10
DRIFT_WINDOW = 200
MIN_MODEL_WEIGHT = 0.01

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("GAMBO_LOG_LEVEL", "INFO")


def setup_logging() -> None:
    """Configure structured JSON logging."""
    handler = logging.StreamHandler(sys.stdout)
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(LOG_LEVEL)

    # numpy emits nothing useful at INFO
    logging.getLogger("numpy").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Engine configuration
# ---------------------------------------------------------------------------


class LayerWeights(BaseModel):
    """Initial per-layer weights. Must sum to 1."""

    statistical: float = Field(WEIGHT_STATISTICAL, ge=0.0, le=1.0)
    contextual: float = Field(WEIGHT_CONTEXTUAL, ge=0.0, le=1.0)
    machine_learning: float = Field(WEIGHT_MACHINE_LEARNING, ge=0.0, le=1.0)
    market: float = Field(WEIGHT_MARKET, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> "LayerWeights":
        total = self.statistical + self.contextual + self.machine_learning + self.market
        if abs(total - 1.0) > 1e-6:
            raise ValidationError(f"layer weights must sum to 1, got {total:.4f}")
        return self


class Thresholds(BaseModel):
    min_confidence: float = Field(MIN_CONFIDENCE, ge=0.0, le=100.0)
    min_edge: float = MIN_EDGE
    max_risk: float = MAX_RISK


class FeatureFlags(BaseModel):
    """Optional pipeline stages."""

    bayesian_fusion: bool = True
    sharp_money_tracking: bool = True
    posterior_sampling: bool = True
    ensemble_learning: bool = True   # read weights from the learned store instead of layer_weights


class EngineConfig(BaseModel):
    """Top-level engine configuration."""

    model_version: str = MODEL_VERSION
    layer_weights: LayerWeights = Field(default_factory=LayerWeights)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    posterior_samples: int = Field(POSTERIOR_SAMPLES, ge=1)
    posterior_noise: float = Field(POSTERIOR_NOISE, ge=0.0)
    prior_model_accuracy: float = Field(PRIOR_MODEL_ACCURACY, gt=0.0, lt=1.0)
    random_seed: Optional[int] = RANDOM_SEED
    default_public_pct: float = Field(DEFAULT_PUBLIC_PCT, ge=0.0, le=100.0)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from the module-level environment constants."""
        return cls()
