# app/core/rate_limit.py
"""Per-client fixed-window rate limiting for the proxy endpoints."""

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from app.core.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SEC


@dataclass
class RateWindow:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """
    Counts requests per client key inside discrete windows.

    A client may burst up to ``2 * max_requests`` across a window boundary;
    that is a property of fixed windows and is accepted here.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_SEC,
        timer: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = int(max_requests)
        self.window_seconds = float(window_seconds)
        self.timer = timer
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def check(self, client_key: str) -> bool:
        """Record one request for *client_key* and return whether it is allowed."""
        now = self.timer()
        with self._lock:
            window = self._windows.get(client_key)
            if window is None or now >= window.reset_at:
                self._windows[client_key] = RateWindow(
                    count=1, reset_at=now + self.window_seconds
                )
                return True

            if window.count >= self.max_requests:
                return False

            window.count += 1
            return True

    def window(self, client_key: str) -> Optional[RateWindow]:
        with self._lock:
            window = self._windows.get(client_key)
            return replace(window) if window is not None else None

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
