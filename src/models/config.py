"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


DEFAULT_LABELS: Tuple[str, ...] = (
    "Hello", "Thank You", "Yes", "No", "I Love You",
    "Please", "Sorry", "Help", "Good Morning", "Good Night",
    "Excuse Me", "How are you", "Nice to meet you", "Goodbye", "See you later",
)


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    flip_horizontal: bool = False
    buffer_size: int = 1
    max_retries: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            flip_horizontal=d.get("flip_horizontal", False),
            buffer_size=d.get("buffer_size", 1),
            max_retries=d.get("max_retries", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "flip_horizontal": self.flip_horizontal,
            "buffer_size": self.buffer_size,
            "max_retries": self.max_retries,
        }


@dataclass
class ModelConfig:
    """
    Model acquisition configuration.

    Attributes:
        path: Well-known location of the TFLite model file.
        settle_delay: Seconds to wait before loading, so the camera and
            interpreter libraries finish initializing.
        input_size: Spatial model input as [width, height].
        num_threads: Interpreter thread count (None = library default).
        delegate_library: Optional path to a TFLite delegate shared library.
    """
    path: str = "models/model.tflite"
    settle_delay: float = 1.0
    input_size: List[int] = field(default_factory=lambda: [224, 224])
    num_threads: Optional[int] = None
    delegate_library: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "models/model.tflite"),
            settle_delay=float(d.get("settle_delay", 1.0)),
            input_size=d.get("input_size", [224, 224]),
            num_threads=d.get("num_threads"),
            delegate_library=d.get("delegate_library"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "path": self.path,
            "settle_delay": self.settle_delay,
            "input_size": self.input_size,
        }
        if self.num_threads is not None:
            d["num_threads"] = self.num_threads
        if self.delegate_library is not None:
            d["delegate_library"] = self.delegate_library
        return d


@dataclass
class DetectionConfig:
    """Detection loop configuration."""
    threshold: float = 0.5
    simulated_probability: float = 0.05
    simulated_confidence: List[float] = field(default_factory=lambda: [0.85, 0.99])
    error_ttl: float = 5.0
    refresh_rate: int = 30
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            threshold=float(d.get("threshold", 0.5)),
            simulated_probability=float(d.get("simulated_probability", 0.05)),
            simulated_confidence=d.get("simulated_confidence", [0.85, 0.99]),
            error_ttl=float(d.get("error_ttl", 5.0)),
            refresh_rate=d.get("refresh_rate", 30),
            stats_log_interval=float(d.get("stats_log_interval", 60.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold": self.threshold,
            "simulated_probability": self.simulated_probability,
            "simulated_confidence": self.simulated_confidence,
            "error_ttl": self.error_ttl,
            "refresh_rate": self.refresh_rate,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class WebConfig:
    """Status/control API configuration."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "127.0.0.1"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    web: WebConfig = field(default_factory=WebConfig)
    labels: Tuple[str, ...] = DEFAULT_LABELS
    log_path: str = "logs/sign_detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        labels = d.get("labels")
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            labels=tuple(labels) if labels else DEFAULT_LABELS,
            log_path=d.get("log_path", "logs/sign_detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "web": self.web.to_dict(),
            "labels": list(self.labels),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
