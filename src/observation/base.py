"""
FrameSource interface for the camera feed.

The detection loop never reads the device directly. The engine pulls frames
with read() once per display refresh and the loop asks for current_frame(),
which is None until the device has delivered pixel data.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for frame sources.

    Attributes:
        source_id: Identifier for this source (e.g., "front-camera").
        resolution: Target resolution as (width, height). None = device default.
        fps: Target frames per second. None = device default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the device
        3. Call read() once per refresh to pull a new frame
        4. Call current_frame() from the detection loop
        5. Call close() to release the device

    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            source.read()
            frame_data = source.current_frame()
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._current: Optional[FrameData] = None

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_ready(self) -> bool:
        """True once the device is open and has produced pixel data."""
        return self._is_open and self._current is not None

    @property
    def frame_index(self) -> int:
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open the device.

        Raises:
            RuntimeError: If the source cannot be opened.
        """

    @abstractmethod
    def _grab(self) -> Optional[FrameData]:
        """Capture one frame from the device, or None if none is available."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call multiple times."""

    def read(self) -> Optional[FrameData]:
        """
        Pull a new frame from the device and make it the current frame.

        Returns:
            The new FrameData, or None if the device produced nothing. A failed
            read keeps the previous current frame.
        """
        if not self._is_open:
            return None
        frame_data = self._grab()
        if frame_data is not None:
            self._current = frame_data
        return frame_data

    def current_frame(self) -> Optional[FrameData]:
        """
        Return the most recent frame, or None while the device is not ready.

        Callers treat None as "skip this tick".
        """
        if not self.is_ready:
            return None
        return self._current

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
