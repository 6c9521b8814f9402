"""
Refresh driver for the sign detector.

The engine owns the display cadence: on every refresh it pulls a camera frame,
pumps the RefreshScheduler (which runs the pending detection tick, if any) and
optionally draws the preview window.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import cv2
import numpy as np

from models.config import Config
from models.frame import FrameData
from models.prediction import DetectionStatus, ModelState
from observation import ObservationSource, create_source_from_config
from runtime.context import DetectionContext
from .detection_loop import DetectionLoop
from .preprocess import FramePreprocessor, PreprocessConfig
from .scheduler import RefreshScheduler

KEY_TOGGLE = ord(" ")
KEY_QUIT = ord("q")


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.

    Attributes:
        refresh_rate: Display refreshes per second.
        max_consecutive_failures: Max frame read failures before stopping.
        stats_log_interval: Seconds between loop statistics log messages.
        display: Show the OpenCV preview window.
        window_name: Title of the preview window.
    """
    refresh_rate: int = 30
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    display: bool = False
    window_name: str = "Sign Detector"


@dataclass
class EngineStats:
    refreshes: int = 0
    consecutive_failures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


class PipelineEngine:
    """
    Main refresh loop.

    Example:
        engine = PipelineEngine(source, ctx, loop, scheduler, PipelineConfig(display=True))
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        ctx: DetectionContext,
        loop: DetectionLoop,
        scheduler: RefreshScheduler,
        config: PipelineConfig,
    ):
        self.source = source
        self.ctx = ctx
        self.loop = loop
        self.scheduler = scheduler
        self.config = config
        self.stats = EngineStats()
        self._running = False
        self._callbacks: List[Callable[[Optional[FrameData], DetectionStatus], None]] = []

    def add_callback(self, callback: Callable[[Optional[FrameData], DetectionStatus], None]) -> None:
        """
        Add a callback run after every refresh.

        Args:
            callback: Function taking (frame_data, status) as arguments.
        """
        self._callbacks.append(callback)

    @property
    def refresh_interval(self) -> float:
        return 1.0 / max(1, self.config.refresh_rate)

    def run(self) -> None:
        """Open the camera and refresh until stopped, 'q' is pressed, or the camera fails."""
        self._running = True
        self.stats = EngineStats()

        try:
            self.source.open()
            logging.info(f"Pipeline started: source={self.source.source_id}")

            while self._running:
                started = time.monotonic()
                if not self.refresh():
                    break
                if not self.config.display:
                    remaining = self.refresh_interval - (time.monotonic() - started)
                    if remaining > 0:
                        time.sleep(remaining)

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the engine to stop after the current refresh."""
        self._running = False

    def refresh(self) -> bool:
        """
        Run one display refresh.

        Returns False when the engine should stop.
        """
        frame_data = self.source.read()
        if frame_data is None:
            self.stats.consecutive_failures += 1
            if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                logging.error(
                    f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                )
                return False
        else:
            self.stats.consecutive_failures = 0

        self.scheduler.pump()
        self.stats.refreshes += 1

        status = self.ctx.snapshot()
        for callback in self._callbacks:
            try:
                callback(frame_data, status)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        self._handle_periodic_tasks()

        if self.config.display:
            return self._handle_display(frame_data, status)
        return True

    def _handle_display(self, frame_data: Optional[FrameData], status: DetectionStatus) -> bool:
        """
        Draw the preview and handle keys.

        Returns False if the user pressed 'q'.
        """
        if frame_data is not None:
            cv2.imshow(self.config.window_name, draw_status(frame_data.frame.copy(), status))
        wait_ms = max(1, int(self.refresh_interval * 1000))
        key = cv2.waitKey(wait_ms) & 0xFF
        if key == KEY_QUIT:
            return False
        if key == KEY_TOGGLE:
            # Mirrors a disabled start button while the model is loading.
            if status.model_state is ModelState.LOADING:
                logging.info("Model still loading; ignoring toggle")
            else:
                self.loop.toggle()
        return True

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(f"Pipeline stats: refreshes={self.stats.refreshes}, loop={self.loop.stats.to_dict()}")
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False
        self.loop.stop()

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        if self.config.display:
            cv2.destroyAllWindows()

        logging.info("Pipeline stopped")


def draw_status(frame: np.ndarray, status: DetectionStatus) -> np.ndarray:
    """Draw model state, prediction and error text on the frame."""
    COLOR_OK = (0, 200, 0)
    COLOR_WAIT = (0, 200, 255)
    COLOR_ERROR = (0, 0, 255)
    COLOR_TEXT = (255, 255, 255)
    font = cv2.FONT_HERSHEY_SIMPLEX

    if status.model_state is ModelState.LOADING:
        header, header_color = "Loading Model...", COLOR_WAIT
    elif status.is_simulated:
        header, header_color = "Demo Mode", COLOR_OK
    else:
        header, header_color = "Model Ready", COLOR_OK
    cv2.putText(frame, header, (10, 25), font, 0.6, header_color, 2)

    hint = "Detecting - show a gesture" if status.detecting else "Press SPACE to start"
    cv2.putText(frame, hint, (10, 50), font, 0.5, COLOR_TEXT, 1)

    if status.detecting:
        h, w = frame.shape[:2]
        cv2.rectangle(frame, (8, 8), (w - 8, h - 8), (255, 160, 60), 2)

    if status.error:
        cv2.putText(frame, status.error, (10, 80), font, 0.5, COLOR_ERROR, 2)

    if status.prediction is not None:
        h, w = frame.shape[:2]
        label = f"{status.prediction.label}  {status.prediction.confidence_pct}%"
        (tw, th), _ = cv2.getTextSize(label, font, 0.9, 2)
        cv2.rectangle(frame, (10, h - th - 30), (10 + tw + 10, h - 10), (40, 40, 40), -1)
        cv2.putText(frame, label, (15, h - 20), font, 0.9, COLOR_TEXT, 2)
        bar_w = int((w - 20) * status.prediction.confidence)
        cv2.rectangle(frame, (10, h - 6), (10 + bar_w, h - 2), COLOR_OK, -1)

    return frame


def create_engine_from_config(
    config: Config,
    ctx: DetectionContext,
    display: bool = False,
) -> PipelineEngine:
    """
    Factory function to build the camera source, detection loop and engine.

    Args:
        config: Typed application config.
        ctx: DetectionContext shared with the model loader and the web API.
        display: Enable the preview window.
    """
    source = create_source_from_config(config.camera.to_dict(), source_id="main-camera")
    width, height = config.model.input_size
    preprocessor = FramePreprocessor(PreprocessConfig(input_size=(int(width), int(height))))
    scheduler = RefreshScheduler()
    loop = DetectionLoop(ctx, source, preprocessor, scheduler)

    pipeline_config = PipelineConfig(
        refresh_rate=config.detection.refresh_rate,
        stats_log_interval=config.detection.stats_log_interval,
        display=display,
    )
    return PipelineEngine(source, ctx, loop, scheduler, pipeline_config)
