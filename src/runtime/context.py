from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from inference.backend import InferenceBackend
from inference.simulated_backend import SimulatedBackend
from inference.tflite_backend import TFLiteBackend
from models.prediction import DetectionStatus, ModelState
from runtime.state import ErrorReporter, PredictionStore


@dataclass
class DetectionContext:
    """Holds detection state for the loop and presentation; avoids global singletons."""

    labels: Tuple[str, ...]
    predictions: PredictionStore = field(default_factory=PredictionStore)
    errors: ErrorReporter = field(default_factory=ErrorReporter)
    detecting: bool = False

    _backend: Optional[InferenceBackend] = field(default=None, init=False, repr=False)
    _backend_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self):
        self.labels = tuple(self.labels)
        if not self.labels:
            raise ValueError("labels must not be empty")

    @classmethod
    def from_labels(cls, labels: Sequence[str], error_ttl: float = 5.0) -> "DetectionContext":
        return cls(labels=tuple(labels), errors=ErrorReporter(default_ttl=error_ttl))

    @property
    def backend(self) -> Optional[InferenceBackend]:
        return self._backend

    @property
    def model_state(self) -> ModelState:
        # Derived from the installed backend, never stored.
        backend = self._backend
        if backend is None:
            return ModelState.LOADING
        if isinstance(backend, SimulatedBackend):
            return ModelState.READY_SIMULATED
        if isinstance(backend, TFLiteBackend):
            return ModelState.READY_REAL
        raise TypeError(f"Unsupported backend: {type(backend).__name__}")

    def install_backend(self, backend: InferenceBackend) -> None:
        """Install the one and only backend. LOADING never comes back."""
        if not isinstance(backend, (SimulatedBackend, TFLiteBackend)):
            raise TypeError(f"Unsupported backend: {type(backend).__name__}")
        with self._backend_lock:
            if self._backend is not None:
                raise RuntimeError("A model backend is already installed")
            self._backend = backend

    def label_for(self, index: int) -> str:
        return self.labels[index]

    def snapshot(self) -> DetectionStatus:
        return DetectionStatus(
            model_state=self.model_state,
            detecting=self.detecting,
            prediction=self.predictions.current,
            error=self.errors.message,
        )
