"""Rate limited work queue with per-key exclusivity."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Hashable

from .. import metrics
from .ratelimit import RateLimiter, default_controller_rate_limiter

logger = logging.getLogger(__name__)


def _key(item: Any) -> Hashable:
    return getattr(item, "key", item)


class RateLimitingQueue:
    """FIFO work queue modelled on the client-go workqueue.

    - an item already waiting in the queue is not queued twice;
    - an item added while it is processed is queued again once ``done``;
    - at most one item per ``item.key`` is handed out at a time, and items
      for a busy key keep their FIFO position until the key is released;
    - delayed items are moved into the queue by a single background thread.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rate_limiter = rate_limiter or default_controller_rate_limiter()
        self._clock = clock
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._delay_cond = threading.Condition(self._lock)
        self._queue: deque[Any] = deque()
        self._dirty: set[Any] = set()
        self._processing: set[Any] = set()
        self._busy_keys: set[Hashable] = set()
        self._waiting: list[tuple[float, int, Any]] = []
        self._seq = itertools.count()
        self._shutting_down = False
        self._delay_thread = threading.Thread(target=self._delay_loop, name="queue-delay", daemon=True)
        self._delay_thread.start()

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def _update_depth(self) -> None:
        metrics.queue_depth.set(len(self._queue))

    def _add_locked(self, item: Any) -> None:
        if item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            return
        self._queue.append(item)
        self._update_depth()
        self._cond.notify_all()

    def add(self, item: Any) -> None:
        with self._lock:
            if self._shutting_down:
                return
            self._add_locked(item)

    def add_after(self, item: Any, delay: float) -> None:
        """Queue the item once ``delay`` seconds have passed."""
        if delay <= 0:
            self.add(item)
            return
        with self._lock:
            if self._shutting_down:
                return
            heapq.heappush(self._waiting, (self._clock() + delay, next(self._seq), item))
            self._delay_cond.notify()

    def add_rate_limited(self, item: Any) -> None:
        self.add_after(item, self.rate_limiter.when(item))

    def forget(self, item: Any) -> None:
        self.rate_limiter.forget(item)

    def num_requeues(self, item: Any) -> int:
        return self.rate_limiter.num_requeues(item)

    def _pop_eligible_locked(self) -> Any | None:
        for idx, item in enumerate(self._queue):
            if _key(item) in self._busy_keys:
                continue
            del self._queue[idx]
            self._dirty.discard(item)
            self._processing.add(item)
            self._busy_keys.add(_key(item))
            self._update_depth()
            return item
        return None

    def get(self, timeout: float | None = None) -> tuple[Any | None, bool]:
        """Block until an item can be processed.

        Returns:
            ``(item, False)`` for work, ``(None, True)`` once the queue is shut
            down and empty, ``(None, False)`` when the timeout expires
        """
        deadline = None if timeout is None else self._clock() + timeout
        with self._lock:
            while True:
                item = self._pop_eligible_locked()
                if item is not None:
                    return item, False
                if self._shutting_down and not self._queue:
                    return None, True
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return None, False
                self._cond.wait(remaining)

    def done(self, item: Any) -> None:
        """Release an item handed out by ``get``, requeueing it if it was re-added meanwhile."""
        with self._lock:
            self._processing.discard(item)
            self._busy_keys.discard(_key(item))
            if item in self._dirty:
                self._queue.append(item)
                self._update_depth()
            self._cond.notify_all()

    def shut_down(self) -> None:
        """Stop accepting items; ``get`` reports shutdown once the queue is empty."""
        with self._lock:
            self._shutting_down = True
            self._waiting.clear()
            self._cond.notify_all()
            self._delay_cond.notify_all()

    def shut_down_with_drain(self, timeout: float | None = None) -> bool:
        """Shut down and wait for queued and in-flight items to finish.

        Returns:
            False if the timeout expired before the queue drained
        """
        self.shut_down()
        deadline = None if timeout is None else self._clock() + timeout
        with self._lock:
            while self._queue or self._processing:
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.warning(f"Queue drain timed out with {len(self._processing)} items in flight")
                    return False
                self._cond.wait(remaining)
        return True

    @property
    def shutting_down(self) -> bool:
        with self._lock:
            return self._shutting_down

    def _delay_loop(self) -> None:
        with self._lock:
            while not self._shutting_down:
                if not self._waiting:
                    self._delay_cond.wait()
                    continue
                ready_at = self._waiting[0][0]
                now = self._clock()
                if ready_at <= now:
                    _, _, item = heapq.heappop(self._waiting)
                    self._add_locked(item)
                    continue
                self._delay_cond.wait(ready_at - now)
