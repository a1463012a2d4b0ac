"""
Fixed-window request limiter keyed by client address.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

# Expired windows are swept once this many clients are tracked.
MAX_TRACKED_CLIENTS = 10_000


@dataclass
class _Window:
    count: int
    reset_at: float


class RequestRateLimiter:
    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        """Count a request for ``key``; False once the window is exhausted."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                if len(self._windows) >= MAX_TRACKED_CLIENTS:
                    self._prune(now)
                window = _Window(count=0, reset_at=now + self.window_seconds)
                self._windows[key] = window
            window.count += 1
            return window.count <= self.max_requests

    def _prune(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now > w.reset_at]
        for key in expired:
            del self._windows[key]
