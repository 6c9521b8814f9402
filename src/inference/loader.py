"""
Model acquisition with fallback to the simulated backend.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from models.config import Config
from runtime.context import DetectionContext
from .backend import InferenceBackend
from .simulated_backend import SimulatedBackend, SimulatedConfig
from .tflite_backend import TFLiteBackend, TFLiteConfig

DEMO_MODE_MESSAGE = "Model file not found. Running in demo mode."


class ModelLoader:
    """
    Installs exactly one backend into the context, once.

    load() never raises for acquisition failures: any problem with the model
    file or the interpreter installs a SimulatedBackend and posts a
    self-clearing advisory instead.
    """

    def __init__(
        self,
        ctx: DetectionContext,
        config: Config,
        backend_factory: Optional[Callable[[], InferenceBackend]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ctx = ctx
        self.config = config
        self._backend_factory = backend_factory or self._create_tflite_backend
        self._sleep = sleep
        self._thread: Optional[threading.Thread] = None

    def _create_tflite_backend(self) -> InferenceBackend:
        model_cfg = self.config.model
        return TFLiteBackend.from_config(
            TFLiteConfig(
                model_path=model_cfg.path,
                threshold=self.config.detection.threshold,
                num_threads=model_cfg.num_threads,
                delegate_library=model_cfg.delegate_library,
            ),
            num_labels=len(self.ctx.labels),
        )

    def _create_simulated_backend(self) -> InferenceBackend:
        det = self.config.detection
        lo, hi = det.simulated_confidence
        return SimulatedBackend(
            num_labels=len(self.ctx.labels),
            cfg=SimulatedConfig(
                detection_probability=det.simulated_probability,
                min_confidence=float(lo),
                max_confidence=float(hi),
            ),
        )

    def load(self) -> InferenceBackend:
        settle = self.config.model.settle_delay
        if settle > 0:
            self._sleep(settle)

        logging.info(f"Loading TFLite model from {self.config.model.path}")
        try:
            backend = self._backend_factory()
        except Exception as e:
            logging.warning(f"Failed to load model, falling back to simulation mode: {e}")
            backend = self._create_simulated_backend()
            self.ctx.install_backend(backend)
            self.ctx.errors.raise_error(DEMO_MODE_MESSAGE, ttl=self.config.detection.error_ttl)
            return backend

        self.ctx.install_backend(backend)
        logging.info("Model loaded successfully")
        if isinstance(backend, TFLiteBackend):
            logging.info(f"Inputs: {backend.input_shape}")
            logging.info(f"Outputs: {backend.output_shape}")
        return backend

    def load_async(self) -> threading.Thread:
        """Run load() on a daemon thread and return it."""
        if self._thread is not None:
            raise RuntimeError("Model loading already started")
        self._thread = threading.Thread(target=self.load, name="model-loader", daemon=True)
        self._thread.start()
        return self._thread
