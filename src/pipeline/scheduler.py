"""
Display-refresh scheduler.

Callbacks requested now run on the next pump(), the way a browser runs
animation-frame callbacks on the next repaint. Callbacks requested while a
pump is running wait for the following one.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Deque


class RefreshScheduler:
    def __init__(self):
        self._lock = threading.Lock()
        self._pending: Deque[Callable[[], None]] = deque()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def request(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._pending.append(callback)

    def pump(self) -> int:
        """Run every callback queued before this call. Returns how many ran."""
        with self._lock:
            batch = list(self._pending)
            self._pending.clear()
        for callback in batch:
            callback()
        if batch:
            logging.debug(f"Refresh ran {len(batch)} callback(s)")
        return len(batch)
