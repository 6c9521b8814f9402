"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import time

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.frame import FrameData  # noqa: E402
from observation.base import ObservationConfig, ObservationSource  # noqa: E402


class StaticSource(ObservationSource):
    """Frame source that serves one synthetic frame once opened."""

    def __init__(self, frame=None, ready=True):
        super().__init__(ObservationConfig(source_id="test-camera"))
        self._frame = frame if frame is not None else np.full((480, 640, 3), 128, dtype=np.uint8)
        self._is_open = ready
        self.grabs = 0
        if ready:
            self.read()

    def open(self) -> None:
        self._is_open = True

    def _grab(self):
        self.grabs += 1
        self._frame_index += 1
        return FrameData(frame=self._frame, timestamp=time.time(), frame_index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        self._is_open = False
        self._current = None


class FakeInterpreter:
    """Stands in for a TFLite interpreter and returns a fixed output vector."""

    def __init__(self, output, input_shape=(1, 224, 224, 3), fail_on_invoke=None, output_dtype=np.float32, quantization=None):
        self.output = np.asarray(output, dtype=output_dtype).reshape(1, -1)
        self.quantization = quantization
        self.input_shape = np.array(input_shape)
        self.fail_on_invoke = fail_on_invoke
        self.inputs = []
        self.invocations = 0

    def allocate_tensors(self):
        pass

    def get_input_details(self):
        return [{"index": 0, "shape": self.input_shape, "dtype": np.float32}]

    def get_output_details(self):
        details = {"index": 1, "shape": np.array(self.output.shape), "dtype": self.output.dtype}
        if self.quantization is not None:
            details["quantization"] = self.quantization
        return [details]

    def set_tensor(self, index, value):
        if tuple(value.shape) != tuple(self.input_shape):
            raise ValueError(f"Cannot set tensor: got shape {value.shape}, expected {tuple(self.input_shape)}")
        self.inputs.append(value.shape)

    def invoke(self):
        self.invocations += 1
        if self.fail_on_invoke is not None:
            raise self.fail_on_invoke

    def get_tensor(self, index):
        return self.output.copy()


class SequenceRandom:
    """random.Random stand-in that replays fixed draws, then repeats the last one."""

    def __init__(self, values):
        self._values = list(values)
        self._pos = 0
        self.calls = 0

    def random(self):
        self.calls += 1
        value = self._values[min(self._pos, len(self._values) - 1)]
        self._pos += 1
        return value


@pytest.fixture
def static_source():
    return StaticSource()


@pytest.fixture
def labels():
    return ("Hello", "Thank You", "Yes")


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  path: "models/model.tflite"
  settle_delay: 1.0
  input_size: [224, 224]

detection:
  threshold: 0.5
  simulated_probability: 0.05

labels: ["Hello", "Yes", "No"]

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [640, 480],
            "fps": 30,
        },
        "model": {
            "path": "models/model.tflite",
            "settle_delay": 1.0,
            "input_size": [224, 224],
        },
        "detection": {
            "threshold": 0.5,
            "simulated_probability": 0.05,
            "simulated_confidence": [0.85, 0.99],
            "error_ttl": 5.0,
            "refresh_rate": 30,
        },
        "labels": ["Hello", "Thank You", "Yes", "No"],
        "web": {"enabled": False, "port": 5000},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
