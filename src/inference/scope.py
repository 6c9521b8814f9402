"""
Per-tick ownership of tensor buffers.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np


class TensorScope:
    """
    Owns every buffer created during one tick and drops them on exit.

    Example:
        with TensorScope() as scope:
            tensor = preprocessor.preprocess(frame, scope)
            detection = backend.infer(tensor, scope)
        # scope.live == 0 here, even if infer() raised
    """

    def __init__(self) -> None:
        self._buffers: List[np.ndarray] = []
        self.allocated = 0
        self.released = 0

    @property
    def live(self) -> int:
        """Number of buffers still held."""
        return len(self._buffers)

    def track(self, buffer: np.ndarray) -> np.ndarray:
        """Register a buffer with the scope and return it."""
        self._buffers.append(buffer)
        self.allocated += 1
        return buffer

    def release(self) -> None:
        self.released += len(self._buffers)
        self._buffers.clear()

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def track(scope: Optional[TensorScope], buffer: np.ndarray) -> np.ndarray:
    """Register `buffer` with `scope` when one is given."""
    if scope is not None:
        scope.track(buffer)
    return buffer
