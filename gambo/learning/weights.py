"""Layer weights shared by every prediction and the learner that tunes them.

``ModelWeights`` is immutable. ``ModelWeightStore`` owns the current value:
readers take a snapshot, the learner builds a new ``ModelWeights`` and swaps
it in under the store's lock, so a prediction never sees a half-applied
update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from gambo.config import LayerWeights
from gambo.errors import ValidationError

logger = logging.getLogger(__name__)

MODEL_NAMES: tuple[str, ...] = ("statistical", "contextual", "machine_learning", "market")


@dataclass(frozen=True)
class ModelWeights:
    statistical: float = 0.25
    contextual: float = 0.25
    machine_learning: float = 0.35
    market: float = 0.15

    @classmethod
    def from_layer_weights(cls, lw: LayerWeights) -> "ModelWeights":
        return cls(
            statistical=lw.statistical,
            contextual=lw.contextual,
            machine_learning=lw.machine_learning,
            market=lw.market,
        )

    @classmethod
    def from_mapping(cls, values: dict[str, float]) -> "ModelWeights":
        """Build from raw values and renormalize to sum 1."""
        if any(values.get(name, 0.0) < 0 for name in MODEL_NAMES):
            raise ValidationError(f"negative model weight in {values}")
        total = sum(values.get(name, 0.0) for name in MODEL_NAMES)
        if total <= 0:
            raise ValidationError("model weights sum to zero")
        return cls(**{name: values.get(name, 0.0) / total for name in MODEL_NAMES})

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    @property
    def total(self) -> float:
        return self.statistical + self.contextual + self.machine_learning + self.market


class ModelWeightStore:
    """Lock-guarded holder of the current ``ModelWeights``."""

    def __init__(self, initial: Optional[ModelWeights] = None) -> None:
        self._initial = initial or ModelWeights()
        self._current = self._initial
        self._lock = threading.Lock()
        self.version = 0

    def snapshot(self) -> ModelWeights:
        # Reference reads are atomic; the object itself never changes
        return self._current

    def update(self, fn: Callable[[ModelWeights], ModelWeights]) -> ModelWeights:
        """Compute a replacement from the current weights and swap it in.

        Only one update runs at a time. ``fn`` must not mutate its argument.
        """
        with self._lock:
            new = fn(self._current)
            if abs(new.total - 1.0) > 1e-6:
                raise ValidationError(f"model weights must sum to 1, got {new.total:.6f}")
            self._current = new
            self.version += 1
        logger.info("model_weights_updated", extra={"version": self.version, **new.as_dict()})
        return new

    def reset(self) -> None:
        with self._lock:
            self._current = self._initial
            self.version += 1
