"""
Rate Limiter Base
=================
Contract shared by all sliding-window limiter backends.
"""

from abc import ABC, abstractmethod

from .models import RateLimitInfo


class RateLimiter(ABC):
    """
    Trailing-window event counter keyed by an arbitrary string.

    A denied event is never recorded, so a blocked caller does not
    extend its own lockout.
    """

    @abstractmethod
    async def check(self, key: str, window_seconds: int, max_count: int) -> RateLimitInfo:
        """
        Record an event for ``key`` if the window has room.

        Args:
            key: Counter key (e.g. phone number or client IP)
            window_seconds: Trailing window size
            max_count: Events allowed within the window

        Returns:
            RateLimitInfo with decision and quota
        """

    async def allow(self, key: str, window_seconds: int, max_count: int) -> bool:
        """Boolean shortcut for :meth:`check`."""
        info = await self.check(key, window_seconds, max_count)
        return info.allowed

    async def reset(self, key: str) -> None:
        """Forget all events for ``key``."""
        raise NotImplementedError

    async def purge_expired(self) -> int:
        """Drop counters whose window has passed; returns how many keys."""
        return 0
