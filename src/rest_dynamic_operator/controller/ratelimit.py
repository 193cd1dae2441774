"""Rate limiters deciding how long a failed item waits before it is retried."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable, Protocol

from ..constants import (
    RETRY_BASE_DELAY,
    RETRY_BUCKET_BURST,
    RETRY_BUCKET_QPS,
    RETRY_MAX_DELAY,
)


class RateLimiter(Protocol):
    def when(self, item: Hashable) -> float:
        """Return the delay in seconds before the item may be retried."""
        ...

    def forget(self, item: Hashable) -> None:
        """Stop tracking the item."""
        ...

    def num_requeues(self, item: Hashable) -> int:
        ...


class ItemExponentialFailureRateLimiter:
    """Per-item exponential backoff: base * 2^failures, capped at max_delay."""

    def __init__(self, base_delay: float = RETRY_BASE_DELAY, max_delay: float = RETRY_MAX_DELAY) -> None:
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._failures: dict[Hashable, int] = {}
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> float:
        with self._lock:
            exp = self._failures.get(item, 0)
            self._failures[item] = exp + 1
        # Large exponents overflow before the cap applies
        if exp > 62:
            return self.max_delay
        return min(self.base_delay * (2 ** exp), self.max_delay)

    def forget(self, item: Hashable) -> None:
        with self._lock:
            self._failures.pop(item, None)

    def num_requeues(self, item: Hashable) -> int:
        with self._lock:
            return self._failures.get(item, 0)


class BucketRateLimiter:
    """Global token bucket shared by all items.

    Tokens refill at ``qps`` per second up to ``burst``. Each call reserves
    one token and returns how long the caller must wait for it.
    """

    def __init__(
        self,
        qps: float = RETRY_BUCKET_QPS,
        burst: int = RETRY_BUCKET_BURST,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.qps = qps
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    def when(self, item: Hashable) -> float:
        with self._lock:
            now = self._clock()
            self._tokens = min(float(self.burst), self._tokens + (now - self._last) * self.qps)
            self._last = now
            self._tokens -= 1.0
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.qps

    def forget(self, item: Hashable) -> None:
        pass

    def num_requeues(self, item: Hashable) -> int:
        return 0


class MaxOfRateLimiter:
    """Waits for the longest delay any of its limiters asks for."""

    def __init__(self, *limiters: Any) -> None:
        self.limiters = limiters

    def when(self, item: Hashable) -> float:
        return max(limiter.when(item) for limiter in self.limiters)

    def forget(self, item: Hashable) -> None:
        for limiter in self.limiters:
            limiter.forget(item)

    def num_requeues(self, item: Hashable) -> int:
        return max(limiter.num_requeues(item) for limiter in self.limiters)


def default_controller_rate_limiter() -> MaxOfRateLimiter:
    return MaxOfRateLimiter(ItemExponentialFailureRateLimiter(), BucketRateLimiter())
