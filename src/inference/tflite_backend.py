"""
TFLite inference backend.

Uses whichever TFLite interpreter package is installed: ai-edge-litert,
tflite-runtime or full TensorFlow.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np

from .backend import Detection, InferenceBackend, InferenceError, ModelLoadError, decode_scores, to_probabilities
from .scope import TensorScope, track


@dataclass(frozen=True)
class TFLiteConfig:
    model_path: str
    threshold: float = 0.5
    num_threads: Optional[int] = None
    delegate_library: Optional[str] = None


def _interpreter_api() -> Tuple[Any, Any]:
    """Return (Interpreter, load_delegate) from the first available package."""
    try:
        from ai_edge_litert.interpreter import Interpreter, load_delegate  # type: ignore
        return Interpreter, load_delegate
    except ImportError:
        pass
    try:
        from tflite_runtime.interpreter import Interpreter, load_delegate  # type: ignore
        return Interpreter, load_delegate
    except ImportError:
        pass
    try:
        import tensorflow as tf  # type: ignore
    except ImportError as e:
        raise ModelLoadError(
            "TFLite interpreter not available. Install with `pip install ai-edge-litert` "
            "(or tflite-runtime / tensorflow)."
        ) from e
    return tf.lite.Interpreter, tf.lite.experimental.load_delegate


def create_interpreter(cfg: TFLiteConfig) -> Any:
    """
    Configure the execution engine and instantiate an interpreter for the model.

    Raises:
        ModelLoadError: If the file is missing, malformed, or the engine is unavailable.
    """
    if not os.path.isfile(cfg.model_path):
        raise ModelLoadError(f"Model file not found: {cfg.model_path}")

    interpreter_cls, load_delegate = _interpreter_api()

    kwargs: dict = {"model_path": cfg.model_path}
    if cfg.num_threads:
        kwargs["num_threads"] = int(cfg.num_threads)
    if cfg.delegate_library:
        try:
            kwargs["experimental_delegates"] = [load_delegate(cfg.delegate_library)]
        except (OSError, ValueError, RuntimeError) as e:
            raise ModelLoadError(f"Failed to load delegate {cfg.delegate_library}: {e}") from e

    try:
        interpreter = interpreter_cls(**kwargs)
        interpreter.allocate_tensors()
    except (OSError, ValueError, RuntimeError) as e:
        raise ModelLoadError(f"Failed to load model {cfg.model_path}: {e}") from e
    return interpreter


class TFLiteBackend(InferenceBackend):
    """Real classifier: one forward pass per tick, argmax + threshold decode."""

    def __init__(self, interpreter: Any, num_labels: int, threshold: float = 0.5):
        super().__init__(num_labels)
        self.threshold = threshold
        self._interpreter = interpreter
        self._input_details = interpreter.get_input_details()
        self._output_details = interpreter.get_output_details()
        if not self._input_details or not self._output_details:
            raise ModelLoadError("Model declares no input or output tensors")

    @classmethod
    def from_config(cls, cfg: TFLiteConfig, num_labels: int) -> "TFLiteBackend":
        return cls(create_interpreter(cfg), num_labels=num_labels, threshold=cfg.threshold)

    @property
    def input_shape(self) -> List[int]:
        return [int(d) for d in self._input_details[0]["shape"]]

    @property
    def output_shape(self) -> List[int]:
        return [int(d) for d in self._output_details[0]["shape"]]

    @property
    def input_size(self) -> Optional[Tuple[int, int]]:
        """Spatial input as (width, height) for NHWC models, else None."""
        shape = self.input_shape
        if len(shape) != 4:
            return None
        return (shape[2], shape[1])

    def infer(self, tensor: Optional[np.ndarray], scope: Optional[TensorScope] = None) -> Optional[Detection]:
        if tensor is None:
            raise InferenceError("TFLite backend requires an input tensor")

        try:
            self._interpreter.set_tensor(self._input_details[0]["index"], tensor)
            self._interpreter.invoke()
            output = track(scope, self._interpreter.get_tensor(self._output_details[0]["index"]))
        except (ValueError, RuntimeError, IndexError, KeyError) as e:
            raise InferenceError(f"Forward pass failed: {e}") from e

        scores = to_probabilities(self._dequantize(output))
        if scores.size != self.num_labels:
            logging.debug(f"Output width {scores.size} differs from label count {self.num_labels}")
        return decode_scores(scores, self.num_labels, self.threshold)

    def _dequantize(self, output: np.ndarray) -> np.ndarray:
        """Map a quantized output tensor back to real values; float outputs pass through."""
        scale, zero_point = self._output_details[0].get("quantization") or (0.0, 0)
        if not scale:
            if np.issubdtype(output.dtype, np.integer):
                return output.astype(np.float32) / np.iinfo(output.dtype).max
            return output.astype(np.float32)
        return (output.astype(np.float32) - zero_point) * scale
