"""Calibration metrics: Brier score, log loss, reliability bins.

Measures whether predicted probabilities match realised win frequencies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

DEFAULT_BRIER = 0.25
DEFAULT_LOG_LOSS = 0.69
LOG_LOSS_CLIP = 0.001


@dataclass
class PredictionRecord:
    """A settled prediction used for learning."""

    prediction_id: str
    predicted_probability: float
    actual_outcome: bool
    odds: float
    model_weights: dict[str, float]        # weights in force when predicted
    features: dict[str, float] = field(default_factory=dict)
    model_probabilities: dict[str, float] = field(default_factory=dict)  # each layer's own estimate
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def outcome(self) -> float:
        return 1.0 if self.actual_outcome else 0.0


@dataclass
class CalibrationBin:
    predicted_probability: float           # bin center
    actual_frequency: float
    count: int


@dataclass
class CalibrationCurve:
    bins: list[CalibrationBin]
    brier_score: float
    log_loss: float


def brier_score(records: Sequence[PredictionRecord]) -> float:
    """Mean squared error of the probabilities. Lower is better."""
    if not records:
        return DEFAULT_BRIER
    return sum((r.predicted_probability - r.outcome) ** 2 for r in records) / len(records)


def log_loss(records: Sequence[PredictionRecord]) -> float:
    if not records:
        return DEFAULT_LOG_LOSS
    total = 0.0
    for r in records:
        p = max(LOG_LOSS_CLIP, min(1 - LOG_LOSS_CLIP, r.predicted_probability))
        total -= math.log(p) if r.actual_outcome else math.log(1 - p)
    return total / len(records)


def calibration_curve(records: Sequence[PredictionRecord], n_bins: int = 10) -> CalibrationCurve:
    """Binned predicted-vs-actual frequencies; empty bins are omitted."""
    buckets: dict[int, list[PredictionRecord]] = {i: [] for i in range(n_bins)}
    for r in records:
        idx = min(max(int(r.predicted_probability * n_bins), 0), n_bins - 1)
        buckets[idx].append(r)

    bins = []
    for i in range(n_bins):
        if buckets[i]:
            wins = sum(1 for r in buckets[i] if r.actual_outcome)
            bins.append(CalibrationBin(
                predicted_probability=(i + 0.5) / n_bins,
                actual_frequency=wins / len(buckets[i]),
                count=len(buckets[i]),
            ))

    return CalibrationCurve(
        bins=bins,
        brier_score=brier_score(records),
        log_loss=log_loss(records),
    )
