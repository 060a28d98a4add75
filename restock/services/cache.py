from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional


class TTLCache:
    """Holds one value for ``ttl_seconds``; expiry needs no invalidation."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: Any = None
        self._stored_at: Optional[float] = None

    def get(self) -> Any:
        with self._lock:
            if self._stored_at is None:
                return None
            if self._clock() - self._stored_at >= self.ttl_seconds:
                self._value = None
                self._stored_at = None
                return None
            return self._value

    def set(self, value: Any) -> None:
        with self._lock:
            self._value = value
            self._stored_at = self._clock()

    def age(self) -> Optional[float]:
        with self._lock:
            if self._stored_at is None:
                return None
            return self._clock() - self._stored_at

    def clear(self) -> None:
        with self._lock:
            self._value = None
            self._stored_at = None


class NullCache:
    ttl_seconds = 0.0

    def get(self) -> Any:
        return None

    def set(self, value: Any) -> None:
        return None

    def age(self) -> Optional[float]:
        return None

    def clear(self) -> None:
        return None


def make_cache(ttl_seconds: float):
    if ttl_seconds <= 0:
        return NullCache()
    return TTLCache(ttl_seconds)
