"""Time-bounded cache for loaded documents."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional


class TTLCache:
    """Thread-safe key/value cache whose entries expire after ``ttl`` seconds."""

    def __init__(self, ttl: float = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get an object from cache if it hasn't expired.

        Args:
            key: Cache key

        Returns:
            Cached object or None if not found or expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            obj, stored_at = entry
            if self._clock() - stored_at > self.ttl:
                del self._entries[key]
                return None
            return obj

    def set(self, key: str, obj: Any) -> None:
        with self._lock:
            self._entries[key] = (obj, self._clock())

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value or load, store and return a fresh one.

        Loader errors propagate and nothing is stored.
        """
        obj = self.get(key)
        if obj is not None:
            return obj
        obj = loader()
        self.set(key, obj)
        return obj

    def invalidate(self, pattern: Optional[str] = None) -> None:
        """Invalidate cache entries.

        Args:
            pattern: Optional substring to match keys (if None, clears all)
        """
        with self._lock:
            if pattern is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if pattern in k]:
                del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
