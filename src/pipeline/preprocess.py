"""
Frame preprocessing for the classifier input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from inference.scope import TensorScope, track


@dataclass(frozen=True)
class PreprocessConfig:
    """
    Attributes:
        input_size: Model input as (width, height).
        swap_rb: Convert OpenCV BGR frames to the RGB order the model expects.
    """
    input_size: Tuple[int, int] = (224, 224)
    swap_rb: bool = True


class FramePreprocessor:
    """
    BGR uint8 frame -> float32 tensor of shape [1, H, W, 3] in [0, 1].

    Every intermediate buffer is registered with the caller's TensorScope, so
    nothing outlives the tick that created it.
    """

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or PreprocessConfig()

    def preprocess(
        self,
        frame: np.ndarray,
        scope: TensorScope,
        input_size: Optional[Tuple[int, int]] = None,
    ) -> np.ndarray:
        if frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError(f"Expected an HxWx3 frame, got shape {frame.shape}")

        width, height = input_size or self.config.input_size

        if self.config.swap_rb:
            image = track(scope, cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        else:
            image = frame
        resized = track(scope, cv2.resize(image, (width, height), interpolation=cv2.INTER_LINEAR))
        normalized = track(scope, resized.astype(np.float32) / 255.0)
        return track(scope, np.expand_dims(normalized, axis=0))
