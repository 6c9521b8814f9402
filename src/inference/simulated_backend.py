"""
Simulated backend (demo mode).

Installed when no real model can be loaded so the loop and the presentation
layer can run without a model file.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .backend import Detection, InferenceBackend
from .scope import TensorScope


@dataclass(frozen=True)
class SimulatedConfig:
    detection_probability: float = 0.05
    min_confidence: float = 0.85
    max_confidence: float = 0.99


class SimulatedBackend(InferenceBackend):
    """Emits a random label on roughly `detection_probability` of ticks."""

    def __init__(self, num_labels: int, cfg: Optional[SimulatedConfig] = None, rng: Optional[random.Random] = None):
        super().__init__(num_labels)
        self.cfg = cfg or SimulatedConfig()
        self._rng = rng or random.Random()

    def infer(self, tensor: Optional[np.ndarray] = None, scope: Optional[TensorScope] = None) -> Optional[Detection]:
        if not self._rng.random() < self.cfg.detection_probability:
            return None

        label_index = min(int(self._rng.random() * self.num_labels), self.num_labels - 1)
        span = self.cfg.max_confidence - self.cfg.min_confidence
        confidence = self.cfg.min_confidence + self._rng.random() * span
        return Detection(label_index=label_index, confidence=confidence)
