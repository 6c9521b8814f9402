"""
Logging setup.

The model loader and the web API run on their own threads, so records carry
the thread name.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s - %(threadName)s - %(levelname)s - %(message)s"

# uvicorn logs every /api/status poll at INFO.
NOISY_LOGGERS = ("uvicorn.access",)


def setup_logging(
    log_path: Optional[str],
    log_level: str,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure root logging to stderr and, when log_path is set, to a file.

    Args:
        log_path: Log file path; its directory is created if missing.
        log_level: Level name such as "INFO".
        quiet: Logger names capped at WARNING.
    """
    handlers: list = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT, handlers=handlers)
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
