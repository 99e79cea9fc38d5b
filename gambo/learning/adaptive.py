"""Adaptive learning: tune layer weights from settled predictions.

Keeps a bounded history of ``PredictionRecord``s and, on request, takes one
gradient step on the layer weights using the most recent records:

  error_r     = predicted_r - outcome_r
  grad_m      = mean_r( error_r * w_m,r * p_m,r )
  w_m        <- max(floor, w_m - lr * grad_m), then renormalized

where ``p_m,r`` is layer m's own probability when the record carries it and
the ensemble prediction otherwise. Also reports calibration, per-layer
performance and concept drift.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional

from gambo.config import (
    CALIBRATION_BINS,
    CALIBRATION_MIN_RECORDS,
    DRIFT_WINDOW,
    LEARNING_HISTORY_CAP,
    LEARNING_MIN_RECORDS,
    LEARNING_RATE,
    LEARNING_WINDOW,
    MIN_MODEL_WEIGHT,
)
from gambo.learning.calibration import (
    DEFAULT_BRIER,
    DEFAULT_LOG_LOSS,
    CalibrationCurve,
    PredictionRecord,
    brier_score,
    calibration_curve,
)
from gambo.learning.weights import MODEL_NAMES, ModelWeights, ModelWeightStore

logger = logging.getLogger(__name__)


class DriftSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass
class ModelPerformance:
    model_id: str
    accuracy: float = 0.5
    calibration: float = 0.5               # 1 - Brier
    sharpe_ratio: float = 0.0
    roi: float = 0.0                        # percent, unit stakes
    bets_placed: int = 0
    bets_won: int = 0
    total_stake: float = 0.0
    total_return: float = 0.0
    recent_performance: float = 0.5        # win rate over the last 100


@dataclass
class DriftReport:
    drift_detected: bool
    severity: DriftSeverity
    recommendation: str
    performance_drop: float = 0.0
    calibration_drift: float = 0.0


@dataclass
class HistoryStats:
    total_predictions: int
    overall_accuracy: float
    avg_confidence: float
    profitability: float                   # percent, unit stakes


class AdaptiveLearningSystem:
    """Online learner for the layer weights held in a ``ModelWeightStore``."""

    def __init__(
        self,
        store: ModelWeightStore,
        learning_rate: float = LEARNING_RATE,
        history_cap: int = LEARNING_HISTORY_CAP,
    ) -> None:
        self.store = store
        self.learning_rate = learning_rate
        self._history: deque[PredictionRecord] = deque(maxlen=history_cap)
        self._history_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._history)

    def record_prediction(self, record: PredictionRecord) -> None:
        with self._history_lock:
            self._history.append(record)

    def history(self) -> list[PredictionRecord]:
        with self._history_lock:
            return list(self._history)

    def current_weights(self) -> ModelWeights:
        return self.store.snapshot()

    # ------------------------------------------------------------------
    # Weight learning
    # ------------------------------------------------------------------

    def update_model_weights(self) -> Optional[ModelWeights]:
        """One gradient step over the recent window.

        Returns the new weights, or None when there is not enough history.
        """
        history = self.history()
        if len(history) < LEARNING_MIN_RECORDS:
            logger.info(
                "weight_update_skipped",
                extra={"records": len(history), "required": LEARNING_MIN_RECORDS},
            )
            return None

        gradients = model_gradients(history[-LEARNING_WINDOW:])

        def step(current: ModelWeights) -> ModelWeights:
            raw = {
                name: max(MIN_MODEL_WEIGHT, getattr(current, name) - self.learning_rate * gradients[name])
                for name in MODEL_NAMES
            }
            return ModelWeights.from_mapping(raw)

        return self.store.update(step)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def calibration(self, n_bins: int = CALIBRATION_BINS) -> CalibrationCurve:
        history = self.history()
        if len(history) < CALIBRATION_MIN_RECORDS:
            return CalibrationCurve(bins=[], brier_score=DEFAULT_BRIER, log_loss=DEFAULT_LOG_LOSS)
        return calibration_curve(history, n_bins)

    def evaluate_model_performance(self, model_id: str, window: int = 1000) -> ModelPerformance:
        relevant = [r for r in self.history() if r.model_weights.get(model_id, 0.0) > 0][-window:]
        if not relevant:
            return ModelPerformance(model_id=model_id)

        n = len(relevant)
        wins = sum(1 for r in relevant if r.actual_outcome)
        total_return = sum(r.odds for r in relevant if r.actual_outcome)
        returns = [r.odds - 1.0 if r.actual_outcome else -1.0 for r in relevant]
        mean = sum(returns) / n
        std = math.sqrt(sum((x - mean) ** 2 for x in returns) / n)
        recent = relevant[-100:]

        return ModelPerformance(
            model_id=model_id,
            accuracy=wins / n,
            calibration=1.0 - brier_score(relevant),
            sharpe_ratio=mean / std if std > 0 else 0.0,
            roi=(total_return - n) / n * 100,
            bets_placed=n,
            bets_won=wins,
            total_stake=float(n),
            total_return=total_return,
            recent_performance=sum(1 for r in recent if r.actual_outcome) / len(recent),
        )

    def detect_concept_drift(self, window: int = DRIFT_WINDOW) -> DriftReport:
        """Compare the latest window against the one before it."""
        history = self.history()
        if len(history) < window * 2:
            return DriftReport(
                drift_detected=False,
                severity=DriftSeverity.LOW,
                recommendation="Insufficient data for drift detection",
            )

        recent = history[-window:]
        previous = history[-2 * window:-window]
        drop = _win_rate(previous) - _win_rate(recent)
        brier_rise = brier_score(recent) - brier_score(previous)

        if drop > 0.05 or brier_rise > 0.03:
            if drop > 0.10 or brier_rise > 0.06:
                severity = DriftSeverity.HIGH
                text = "Significant concept drift detected. Recommend model retraining with recent data."
            elif drop > 0.07 or brier_rise > 0.04:
                severity = DriftSeverity.MEDIUM
                text = "Moderate concept drift detected. Consider updating model parameters."
            else:
                severity = DriftSeverity.LOW
                text = "Minor concept drift detected. Monitor closely and prepare for retraining."
            logger.warning(
                "concept_drift_detected",
                extra={"severity": severity.value, "accuracy_drop": drop, "brier_rise": brier_rise},
            )
            return DriftReport(True, severity, text, drop, brier_rise)

        return DriftReport(False, DriftSeverity.LOW, "Model performance is stable", drop, brier_rise)

    def history_stats(self) -> HistoryStats:
        history = self.history()
        if not history:
            return HistoryStats(0, 0.0, 0.0, 0.0)
        n = len(history)
        total_return = sum(r.odds for r in history if r.actual_outcome)
        return HistoryStats(
            total_predictions=n,
            overall_accuracy=_win_rate(history),
            avg_confidence=sum(r.predicted_probability for r in history) / n,
            profitability=(total_return - n) / n * 100,
        )

    def export_learning_data(self) -> dict[str, Any]:
        """JSON-friendly dump of weights, calibration, performance and drift."""
        drift = self.detect_concept_drift()
        return {
            "weights": self.current_weights().as_dict(),
            "calibration": asdict(self.calibration()),
            "performance": {m: asdict(self.evaluate_model_performance(m)) for m in MODEL_NAMES},
            "drift": {**asdict(drift), "severity": drift.severity.value},
            "history": asdict(self.history_stats()),
        }


def model_gradients(records: list[PredictionRecord]) -> dict[str, float]:
    gradients = {name: 0.0 for name in MODEL_NAMES}
    if not records:
        return gradients
    for r in records:
        error = r.predicted_probability - r.outcome
        for name in MODEL_NAMES:
            weight = r.model_weights.get(name, 0.0)
            p_model = r.model_probabilities.get(name, r.predicted_probability)
            gradients[name] += error * weight * p_model
    return {name: g / len(records) for name, g in gradients.items()}


def _win_rate(records: list[PredictionRecord]) -> float:
    return sum(1 for r in records if r.actual_outcome) / len(records) if records else 0.0
