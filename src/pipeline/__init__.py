"""
Pipeline module for the sign detector.

The pipeline orchestrates the detection flow:
- Frame acquisition from the camera source
- Preprocessing into the classifier's input tensor
- One inference per display refresh via the DetectionLoop
- Prediction and error state updates for presentation
"""

from .detection_loop import DetectionLoop, LoopStats, INFERENCE_FAILED_MESSAGE
from .engine import PipelineEngine, PipelineConfig, create_engine_from_config
from .preprocess import FramePreprocessor, PreprocessConfig
from .scheduler import RefreshScheduler

__all__ = [
    "DetectionLoop",
    "LoopStats",
    "INFERENCE_FAILED_MESSAGE",
    "PipelineEngine",
    "PipelineConfig",
    "create_engine_from_config",
    "FramePreprocessor",
    "PreprocessConfig",
    "RefreshScheduler",
]
