"""
Prediction and error state shared with presentation consumers.

Both stores are written by the detection loop (and by start/stop commands
from the web thread), so each guards its fields with a lock.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Union

from models.prediction import Prediction

_DEFAULT_TTL = object()


class PredictionStore:
    """Holds the latest accepted prediction. No smoothing across ticks."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._lock = threading.Lock()
        self._prediction: Optional[Prediction] = None
        self._clock = clock

    @property
    def current(self) -> Optional[Prediction]:
        with self._lock:
            return self._prediction

    def record(self, label_index: int, label: str, confidence: float) -> Prediction:
        """Overwrite the current prediction unconditionally."""
        prediction = Prediction(
            label=label,
            label_index=label_index,
            confidence=float(confidence),
            timestamp=self._clock(),
        )
        with self._lock:
            self._prediction = prediction
        return prediction

    def clear(self) -> None:
        with self._lock:
            self._prediction = None


class ErrorReporter:
    """
    Holds one user-visible error message.

    A new error replaces the current one and restarts its expiry. Errors
    raised with ttl=None never expire on their own.
    """

    def __init__(self, default_ttl: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._message: Optional[str] = None
        self._expires_at: Optional[float] = None
        self.default_ttl = default_ttl
        self._clock = clock

    def raise_error(self, message: str, ttl: Union[float, None, object] = _DEFAULT_TTL) -> None:
        """Show `message` for `ttl` seconds (default_ttl when omitted); ttl=None keeps it until replaced."""
        if ttl is _DEFAULT_TTL:
            ttl = self.default_ttl
        with self._lock:
            self._message = message
            self._expires_at = None if ttl is None else self._clock() + float(ttl)

    @property
    def message(self) -> Optional[str]:
        with self._lock:
            if self._expires_at is not None and self._clock() >= self._expires_at:
                self._message = None
                self._expires_at = None
            return self._message

    @property
    def is_persistent(self) -> bool:
        with self._lock:
            return self._message is not None and self._expires_at is None

    def clear(self) -> None:
        with self._lock:
            self._message = None
            self._expires_at = None
