"""
Typed models for the sign detector application.

Use the from_dict adapters to convert from raw config dicts.
"""

from .frame import FrameData
from .prediction import DetectionStatus, ModelState, Prediction
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DetectionConfig,
    WebConfig,
    DEFAULT_LABELS,
)

__all__ = [
    # Frame
    "FrameData",
    # Prediction
    "Prediction",
    "ModelState",
    "DetectionStatus",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DetectionConfig",
    "WebConfig",
    "DEFAULT_LABELS",
]
