"""Weight learning and calibration tracking."""

from .adaptive import (
    AdaptiveLearningSystem,
    DriftReport,
    DriftSeverity,
    HistoryStats,
    ModelPerformance,
)
from .calibration import (
    CalibrationBin,
    CalibrationCurve,
    PredictionRecord,
    brier_score,
    calibration_curve,
    log_loss,
)
from .weights import MODEL_NAMES, ModelWeights, ModelWeightStore

__all__ = [
    "AdaptiveLearningSystem",
    "CalibrationBin",
    "CalibrationCurve",
    "DriftReport",
    "DriftSeverity",
    "HistoryStats",
    "MODEL_NAMES",
    "ModelPerformance",
    "ModelWeightStore",
    "ModelWeights",
    "PredictionRecord",
    "brier_score",
    "calibration_curve",
    "log_loss",
]
