"""
OpenCV-based camera source.

Wraps cv2.VideoCapture on the host's default camera (device 0) or any device
index/path given in config.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for the OpenCV camera source.

    Attributes:
        device_id: Camera index (int) or device/file path (str).
        buffer_size: OpenCV capture buffer size (keeps the feed live).
        max_retries: Maximum attempts to open the device.
        flip_horizontal: Mirror frames, as a selfie preview does.
        warmup: Seconds to wait after opening before the first read.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    flip_horizontal: bool = False
    warmup: float = 0.5

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the camera config dict.

        Args:
            camera_cfg: Camera configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        resolution = camera_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)

        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
        )


class OpenCVSource(ObservationSource):
    """
    Camera source backed by cv2.VideoCapture.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(640, 480))
        with OpenCVSource(config) as source:
            source.read()
            frame_data = source.current_frame()
    """

    # Reopen attempts on consecutive read failures before giving up on a refresh.
    MAX_REOPENS = 3

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cam = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._cam.device_id

    def open(self) -> None:
        if self._is_open:
            return

        self._connect()
        self._is_open = True
        self._frame_index = 0
        self._current = None
        logging.info(f"Camera opened: source_id={self.source_id}, device={self.device_id}")

    def _connect(self) -> None:
        """Open the capture device, backing off between attempts."""
        self._release()
        attempts = max(1, self._cam.max_retries)

        for attempt in range(attempts):
            if attempt:
                delay = min(2 ** attempt, 10)
                logging.info(f"Camera {self.device_id} unavailable, retry {attempt + 1}/{attempts} in {delay}s")
                time.sleep(delay)
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._cap = cap
                break
            cap.release()
        else:
            raise RuntimeError(f"Failed to open camera {self.device_id} after {attempts} attempts")

        self._configure_capture()
        if self._cam.warmup > 0:
            time.sleep(self._cam.warmup)
        self._read_failures = 0

    def _configure_capture(self) -> None:
        cap = self._cap
        if self._cam.resolution:
            width, height = self._cam.resolution
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        if self._cam.fps:
            cap.set(cv2.CAP_PROP_FPS, self._cam.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, self._cam.buffer_size)
        logging.info(
            f"Camera negotiated {cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x{cap.get(cv2.CAP_PROP_FRAME_HEIGHT)} "
            f"@ {cap.get(cv2.CAP_PROP_FPS)} fps"
        )

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def _read_raw(self) -> Optional[np.ndarray]:
        ok, frame = self._cap.read()
        return frame if ok and frame is not None else None

    def _grab(self) -> Optional[FrameData]:
        if self._cap is None:
            return None

        frame = self._read_raw()
        if frame is None:
            self._read_failures += 1
            if self._read_failures > self.MAX_REOPENS:
                logging.error(f"Camera {self.device_id}: {self._read_failures} consecutive read failures")
                return None
            logging.warning(f"Camera read failed ({self._read_failures}), reopening device")
            try:
                self._connect()
            except RuntimeError as e:
                logging.error(f"Camera reopen failed: {e}")
                return None
            frame = self._read_raw()
            if frame is None:
                return None

        self._read_failures = 0
        if self._cam.flip_horizontal:
            frame = cv2.flip(frame, 1)

        self._frame_index += 1
        return FrameData(frame=frame, timestamp=time.time(), frame_index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        self._release()
        self._is_open = False
        self._current = None
        logging.info(f"Camera closed: source_id={self.source_id}")
