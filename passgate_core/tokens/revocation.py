"""
Revocation Registry
===================
Revoked token identifiers (``jti``), kept until the token would have expired.

The in-memory registry is per process: it is lost on restart and invisible
to other instances. Multi-instance deployments must use RedisRevocationRegistry.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict

import structlog
from redis.exceptions import RedisError

from ..exceptions import RevocationUnavailable

logger = structlog.get_logger(__name__)


class RevocationRegistry(ABC):
    """Set of revoked token identifiers with per-entry expiry."""

    @abstractmethod
    async def revoke(self, jti: str, expires_at: datetime) -> bool:
        """
        Mark ``jti`` revoked until ``expires_at``.

        Returns:
            True if this call added the entry, False if it was already revoked
        """

    @abstractmethod
    async def is_revoked(self, jti: str) -> bool:
        """True if ``jti`` has been revoked."""

    async def purge_expired(self) -> int:
        """Drop entries past their expiry; returns how many."""
        return 0


class InMemoryRevocationRegistry(RevocationRegistry):
    """
    Lock-protected dict of ``jti -> expiry``.

    Expired entries are swept lazily, at most once per ``sweep_interval``.
    """

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._entries: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    async def revoke(self, jti: str, expires_at: datetime) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            if jti in self._entries:
                return False
            self._entries[jti] = expires_at.timestamp()
            return True

    async def is_revoked(self, jti: str) -> bool:
        with self._lock:
            return jti in self._entries

    async def purge_expired(self) -> int:
        with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        expired = [jti for jti, exp in self._entries.items() if exp <= now]
        for jti in expired:
            del self._entries[jti]
        self._last_sweep = now
        if expired:
            logger.debug("Revocation entries expired", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisRevocationRegistry(RevocationRegistry):
    """
    Registry shared through Redis.

    Each entry is a key with a TTL matching the token's remaining lifetime,
    so Redis garbage-collects it.
    """

    def __init__(self, redis_client, prefix: str = "revoked", clock: Callable[[], float] = time.time):
        self.redis = redis_client
        self.prefix = prefix
        self._clock = clock

    def _key(self, jti: str) -> str:
        return f"{self.prefix}:{jti}"

    async def revoke(self, jti: str, expires_at: datetime) -> bool:
        ttl = max(1, math.ceil(expires_at.timestamp() - self._clock()))
        try:
            added = await self.redis.set(self._key(jti), "1", nx=True, ex=ttl)
        except RedisError as e:
            logger.error("Revocation write failed", error=str(e))
            raise RevocationUnavailable(f"Revocation registry unavailable: {e}") from e
        return bool(added)

    async def is_revoked(self, jti: str) -> bool:
        try:
            return bool(await self.redis.exists(self._key(jti)))
        except RedisError as e:
            logger.error("Revocation lookup failed", error=str(e))
            raise RevocationUnavailable(f"Revocation registry unavailable: {e}") from e
