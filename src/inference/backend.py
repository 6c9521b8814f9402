"""
Inference backend interface.

A backend turns a preprocessed frame tensor (or nothing, for the simulated
backend) into at most one Detection per tick.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .scope import TensorScope


class InferenceError(RuntimeError):
    """The backend failed while executing a forward pass."""


class ModelLoadError(RuntimeError):
    """The model resource could not be acquired or instantiated."""


@dataclass(frozen=True)
class Detection:
    label_index: int
    confidence: float


class InferenceBackend(ABC):
    """
    Base class for the two backend variants (simulated and TFLite).
    """

    def __init__(self, num_labels: int):
        if num_labels <= 0:
            raise ValueError("num_labels must be positive")
        self.num_labels = num_labels

    @abstractmethod
    def infer(self, tensor: Optional[np.ndarray], scope: Optional[TensorScope] = None) -> Optional[Detection]:
        """
        Run one inference step.

        Returns:
            A Detection, or None when nothing was detected this tick.

        Raises:
            InferenceError: If the forward pass fails.
        """

    def close(self) -> None:
        """Release backend resources."""


def top_class(scores: Sequence[float]) -> Tuple[int, float]:
    """
    Return (index, score) of the highest score. The first index wins ties.

    Returns (-1, -1.0) for an empty vector.
    """
    values = np.asarray(scores, dtype=np.float64).reshape(-1)
    if values.size == 0:
        return -1, -1.0
    idx = int(np.argmax(values))
    return idx, float(values[idx])


def decode_scores(scores: Sequence[float], num_labels: int, threshold: float = 0.5) -> Optional[Detection]:
    """
    Decode a probability vector into a Detection.

    The top score must be strictly above `threshold` and its index must fall
    inside the label list; anything else is "no detection", not an error.
    """
    idx, score = top_class(scores)
    if idx < 0 or not score > threshold or idx >= num_labels:
        return None
    return Detection(label_index=idx, confidence=score)


def to_probabilities(scores: Sequence[float]) -> np.ndarray:
    """
    Return scores usable as confidences in [0, 1].

    Vectors already inside [0, 1] pass through unchanged. Anything else is
    treated as logits and normalized with a numerically stable softmax.
    """
    values = np.asarray(scores, dtype=np.float64).reshape(-1)
    if values.size == 0:
        return values
    if np.all(values >= -1e-6) and np.all(values <= 1.0 + 1e-6):
        return np.clip(values, 0.0, 1.0)
    shifted = np.exp(values - values.max())
    return shifted / shifted.sum()
