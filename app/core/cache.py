# app/core/cache.py
"""
In-memory result cache with per-entry TTL, plus the background sweeper
that evicts expired entries off the request path.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar

from cachetools import LRUCache

from app.core.config import (
    CACHE_CLEANUP_INTERVAL_SEC,
    GEOCODER_CACHE_SIZE,
    GEOCODER_CACHE_TTL_SEC,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


@dataclass(frozen=True)
class CacheStats:
    size: int
    keys: List[str]


class TTLCache(Generic[T]):
    """
    Thread-safe key -> value store where each entry carries its own TTL.

    Expired entries are never returned; they are dropped lazily on read and
    in bulk by :meth:`cleanup`. The backing ``LRUCache`` caps memory when
    far more distinct keys are written than are ever read back.
    """

    def __init__(
        self,
        default_ttl: float = GEOCODER_CACHE_TTL_SEC,
        maxsize: int = GEOCODER_CACHE_SIZE,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = float(default_ttl)
        self.timer = timer
        self._entries: LRUCache = LRUCache(maxsize=maxsize)
        self._lock = threading.Lock()

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        entry = CacheEntry(
            value=value,
            stored_at=self.timer(),
            ttl=self.default_ttl if ttl is None else float(ttl),
        )
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str, default: Any = None) -> Any:
        now = self.timer()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.expired(now):
                del self._entries[key]
                return default
            return entry.value

    def has(self, key: str) -> bool:
        now = self.timer()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.expired(now):
                del self._entries[key]
                return False
            return True

    def touch(self, key: str, ttl: Optional[float] = None) -> bool:
        """Restart an entry's clock, optionally with a new TTL."""
        now = self.timer()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.stored_at = now
            if ttl:
                entry.ttl = float(ttl)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        """Evict every expired entry; returns how many were removed."""
        now = self.timer()
        with self._lock:
            dead = [k for k, e in self._entries.items() if e.expired(now)]
            for k in dead:
                del self._entries[k]
        return len(dead)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._entries), keys=list(self._entries.keys()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheSweeper:
    """Runs ``cache.cleanup()`` on a daemon thread until stopped."""

    def __init__(self, cache: TTLCache, interval: float = CACHE_CLEANUP_INTERVAL_SEC):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.cache = cache
        self.interval = float(interval)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="geocache-sweeper", daemon=True
        )
        self._thread.start()
        log.info("Cache sweeper started (interval=%.0fs)", self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        log.info("Cache sweeper stopped")

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                removed = self.cache.cleanup()
            except Exception:
                log.exception("Cache sweep failed")
                continue
            if removed:
                log.debug("Cache sweep evicted %d expired entries", removed)
