"""
Cooperative detection loop.

Each tick runs once per display refresh: it checks the detecting flag, skips
work while the model is loading or the camera has no frame, otherwise runs
preprocess -> infer -> decode and records an accepted detection. A tick
re-requests itself from the RefreshScheduler only while detection is still
running, so stopping takes effect at the next tick boundary.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from inference.backend import Detection, InferenceError
from inference.scope import TensorScope
from inference.simulated_backend import SimulatedBackend
from inference.tflite_backend import TFLiteBackend
from models.frame import FrameData
from observation.base import ObservationSource
from runtime.context import DetectionContext
from .preprocess import FramePreprocessor
from .scheduler import RefreshScheduler

INFERENCE_FAILED_MESSAGE = "Inference failed. Check logs for details."


@dataclass
class LoopStats:
    """Runtime counters for the detection loop."""
    ticks: int = 0
    inferences: int = 0
    detections: int = 0
    skipped_idle: int = 0
    skipped_loading: int = 0
    skipped_no_frame: int = 0
    buffers_allocated: int = 0
    buffers_released: int = 0

    @property
    def live_buffers(self) -> int:
        return self.buffers_allocated - self.buffers_released

    def to_dict(self) -> dict:
        return {
            "ticks": self.ticks,
            "inferences": self.inferences,
            "detections": self.detections,
            "skipped_idle": self.skipped_idle,
            "skipped_loading": self.skipped_loading,
            "skipped_no_frame": self.skipped_no_frame,
            "buffers_allocated": self.buffers_allocated,
            "buffers_released": self.buffers_released,
        }


class DetectionLoop:
    """
    Idle/Running state machine over ctx.detecting.

    Example:
        loop = DetectionLoop(ctx, source, FramePreprocessor(), scheduler)
        loop.start()
        while True:
            source.read()
            scheduler.pump()
    """

    def __init__(
        self,
        ctx: DetectionContext,
        source: ObservationSource,
        preprocessor: FramePreprocessor,
        scheduler: RefreshScheduler,
    ):
        self.ctx = ctx
        self.source = source
        self.preprocessor = preprocessor
        self.scheduler = scheduler
        self.stats = LoopStats()
        self._lock = threading.Lock()
        self._scheduled = False
        self._session = 0

    @property
    def running(self) -> bool:
        return self.ctx.detecting

    def start(self) -> None:
        """Enter Running. Always clears the last prediction, even if already running."""
        self._next_session()
        self.ctx.predictions.clear()
        if not self.ctx.detecting:
            self.ctx.detecting = True
            logging.info("Detection started")
        self._schedule()

    def stop(self) -> None:
        """Enter Idle and clear the prediction. The pending tick exits on its own."""
        self._next_session()
        was_running = self.ctx.detecting
        self.ctx.detecting = False
        self.ctx.predictions.clear()
        if was_running:
            logging.info("Detection stopped")

    def toggle(self) -> bool:
        """Flip between Idle and Running; returns the new running state."""
        if self.ctx.detecting:
            self.stop()
        else:
            self.start()
        return self.ctx.detecting

    def _next_session(self) -> None:
        with self._lock:
            self._session += 1

    def _schedule(self) -> None:
        with self._lock:
            if self._scheduled:
                return
            self._scheduled = True
        self.scheduler.request(self.tick)

    def tick(self) -> bool:
        """
        Run one unit of work.

        Returns:
            True if another tick was scheduled.
        """
        with self._lock:
            self._scheduled = False
            session = self._session
        self.stats.ticks += 1

        if not self.ctx.detecting:
            self.stats.skipped_idle += 1
            return False

        try:
            detection = self._run_inference()
        except (InferenceError, ValueError) as e:
            logging.error(f"Inference error: {e}")
            self.ctx.detecting = False
            self.ctx.errors.raise_error(INFERENCE_FAILED_MESSAGE, ttl=None)
            return False

        # A start() or stop() issued mid-tick discards the in-flight result.
        if detection is not None:
            self._record(detection, session)

        if not self.ctx.detecting:
            return False
        self._schedule()
        return True

    def _record(self, detection: Detection, session: int) -> None:
        label = self.ctx.label_for(detection.label_index)
        with self._lock:
            if session != self._session or not self.ctx.detecting:
                return
            self.ctx.predictions.record(detection.label_index, label, detection.confidence)
        self.stats.detections += 1
        logging.debug(f"Detected {label} ({detection.confidence:.2f})")

    def _run_inference(self) -> Optional[Detection]:
        backend = self.ctx.backend
        if backend is None:
            self.stats.skipped_loading += 1
            return None

        frame_data = self.source.current_frame()
        if frame_data is None:
            self.stats.skipped_no_frame += 1
            return None

        if isinstance(backend, SimulatedBackend):
            detection = backend.infer(None)
        elif isinstance(backend, TFLiteBackend):
            detection = self._infer_frame(backend, frame_data)
        else:
            raise TypeError(f"Unsupported backend: {type(backend).__name__}")

        self.stats.inferences += 1
        return detection

    def _infer_frame(self, backend: TFLiteBackend, frame_data: FrameData) -> Optional[Detection]:
        scope = TensorScope()
        try:
            with scope:
                tensor = self.preprocessor.preprocess(frame_data.frame, scope, input_size=backend.input_size)
                return backend.infer(tensor, scope)
        finally:
            self.stats.buffers_allocated += scope.allocated
            self.stats.buffers_released += scope.released
