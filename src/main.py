"""
Sign detector: real-time sign gesture classification from the default camera.

Loads the TFLite model in the background (falling back to demo mode when it
is unavailable), runs the detection loop once per display refresh, and serves
the detection status over a small HTTP API.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the preview window (SPACE toggles detection, q quits)
    --no-web: Do not start the status/control API
    --autostart: Start detection without waiting for a toggle
"""

import os
import sys
import argparse
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from inference.loader import ModelLoader
from models.config import Config
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config
from runtime.context import DetectionContext
from web.app import create_app


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'detection', 'labels', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    camera = config.get('camera', {}) or {}
    device_id = camera.get('device_id', 0)
    if not isinstance(device_id, (int, str)) or isinstance(device_id, bool):
        return False, "camera.device_id must be an integer (index) or string (path)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        resolution = camera['resolution']
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, "camera.resolution values must be positive integers"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"

    model = config.get('model', {}) or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path must be a non-empty string"
    if 'settle_delay' in model and (not _is_number(model['settle_delay']) or model['settle_delay'] < 0):
        return False, "model.settle_delay must be a non-negative number"
    if 'input_size' in model:
        input_size = model['input_size']
        if not isinstance(input_size, list) or len(input_size) != 2:
            return False, "model.input_size must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in input_size):
            return False, "model.input_size values must be positive integers"
    if model.get('num_threads') is not None:
        if not isinstance(model['num_threads'], int) or model['num_threads'] <= 0:
            return False, "model.num_threads must be a positive integer"

    detection = config.get('detection', {}) or {}
    if 'threshold' in detection:
        threshold = detection['threshold']
        if not _is_number(threshold) or not (0 <= threshold < 1):
            return False, "detection.threshold must be between 0 and 1"
    if 'simulated_probability' in detection:
        p = detection['simulated_probability']
        if not _is_number(p) or not (0 <= p <= 1):
            return False, "detection.simulated_probability must be between 0 and 1"
    if 'simulated_confidence' in detection:
        bounds = detection['simulated_confidence']
        if (
            not isinstance(bounds, list) or len(bounds) != 2
            or not all(_is_number(b) for b in bounds)
            or not (0 <= bounds[0] <= bounds[1] <= 1)
        ):
            return False, "detection.simulated_confidence must be [min, max] within [0, 1]"
    if 'error_ttl' in detection and (not _is_number(detection['error_ttl']) or detection['error_ttl'] <= 0):
        return False, "detection.error_ttl must be a positive number"
    if 'refresh_rate' in detection:
        if not isinstance(detection['refresh_rate'], int) or detection['refresh_rate'] <= 0:
            return False, "detection.refresh_rate must be a positive integer"

    labels = config.get('labels')
    if not isinstance(labels, list) or not labels:
        return False, "labels must be a non-empty list"
    if not all(isinstance(label, str) and label for label in labels):
        return False, "labels must be non-empty strings"
    if len(set(labels)) != len(labels):
        return False, "labels must be unique"

    web = config.get('web', {}) or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be a valid TCP port"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Sign Detector - real-time sign gesture detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the preview window')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the status/control API')
    parser.add_argument('--autostart', action='store_true',
                        help='Start detection immediately (it idles until the model is ready)')
    args = parser.parse_args()

    raw_config = load_config(args.config)

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    config = Config.from_dict(raw_config)
    setup_logging(config.log_path, config.log_level)
    logging.info(f"Starting Sign Detector with {len(config.labels)} labels")

    ctx = DetectionContext.from_labels(config.labels, error_ttl=config.detection.error_ttl)
    engine = create_engine_from_config(config, ctx, display=args.display)

    loader = ModelLoader(ctx, config)
    loader.load_async()

    if args.autostart:
        engine.loop.start()

    if config.web.enabled and not args.no_web:
        app = create_app(ctx, engine.loop)

        def run_web_app():
            uvicorn.run(
                app,
                host=config.web.host,
                port=config.web.port,
                log_level="warning",
            )

        web_thread = threading.Thread(target=run_web_app, daemon=True)
        web_thread.start()
        logging.info(f"Web API started on http://{config.web.host}:{config.web.port}/api/status")

    try:
        engine.run()
    except RuntimeError as e:
        logging.error(f"Camera error: {e}")
        sys.exit(1)
    finally:
        backend = ctx.backend
        if backend is not None:
            backend.close()
        logging.info("Sign Detector stopped")


if __name__ == "__main__":
    main()
