"""
In-Memory Rate Limiter
======================
Sliding window rate limiter held in process memory.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

import structlog

from .base import RateLimiter
from .models import RateLimitInfo

logger = structlog.get_logger(__name__)


class InMemoryRateLimiter(RateLimiter):
    """
    Sliding window limiter backed by a lock-protected dict of deques.

    Keys whose newest event has left its window are swept lazily, at most
    once per ``sweep_interval``. Suitable for single-instance deployments
    and tests; use RedisRateLimiter when several instances share limits.
    """

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._events: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    async def check(self, key: str, window_seconds: int, max_count: int) -> RateLimitInfo:
        now = self._clock()
        window_start = now - window_seconds

        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)

            events = self._events.get(key)
            while events and events[0] <= window_start:
                events.popleft()

            if len(events or ()) >= max_count:
                oldest = events[0] if events else now
                return RateLimitInfo.denied(max_count, oldest, window_seconds, now)

            if events is None:
                events = self._events[key] = deque()
            events.append(now)
            self._windows[key] = window_seconds
            return RateLimitInfo.granted(max_count, len(events), events[0], window_seconds)

    async def reset(self, key: str) -> None:
        with self._lock:
            self._events.pop(key, None)
            self._windows.pop(key, None)

    async def purge_expired(self) -> int:
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        stale = [
            key for key, events in self._events.items()
            if not events or events[-1] <= now - self._windows.get(key, 0)
        ]
        for key in stale:
            del self._events[key]
            self._windows.pop(key, None)
        self._last_sweep = now
        if stale:
            logger.debug("Rate limit keys expired", count=len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._events)
