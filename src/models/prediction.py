"""
Prediction and model-state models for gesture detection.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ModelState(str, Enum):
    """Lifecycle of the inference backend. Leaves LOADING exactly once."""
    LOADING = "loading"
    READY_REAL = "ready_real"
    READY_SIMULATED = "ready_simulated"

    @property
    def is_ready(self) -> bool:
        return self is not ModelState.LOADING


@dataclass(frozen=True)
class Prediction:
    """
    The latest accepted gesture prediction.

    Attributes:
        label: Human-readable gesture name.
        label_index: Position of the label in the configured label list.
        confidence: Classifier confidence in [0, 1].
        timestamp: Unix timestamp when the prediction was recorded.
    """
    label: str
    label_index: int
    confidence: float
    timestamp: Optional[float] = None

    @property
    def confidence_pct(self) -> int:
        """Confidence rounded to a whole percentage."""
        return int(round(self.confidence * 100))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "label_index": self.label_index,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DetectionStatus:
    """
    Read-only projection of the detection state for presentation consumers.

    Attributes:
        model_state: Current ModelState.
        detecting: Whether the detection loop is running.
        prediction: Latest accepted prediction, or None.
        error: Current user-visible error text, or None.
    """
    model_state: ModelState
    detecting: bool
    prediction: Optional[Prediction]
    error: Optional[str]

    @property
    def confidence(self) -> float:
        return self.prediction.confidence if self.prediction else 0.0

    @property
    def is_simulated(self) -> bool:
        return self.model_state is ModelState.READY_SIMULATED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_state": self.model_state.value,
            "detecting": self.detecting,
            "prediction": self.prediction.label if self.prediction else None,
            "confidence": self.confidence,
            "error": self.error,
        }
