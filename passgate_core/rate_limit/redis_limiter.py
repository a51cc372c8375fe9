"""
Redis Rate Limiter
==================
Sliding window rate limiter using Redis sorted sets and a Lua script
so the trim, count and insert happen atomically.
"""

import secrets
import time
from typing import Callable

import structlog
from redis.exceptions import RedisError

from ..exceptions import RateLimiterUnavailable
from .base import RateLimiter
from .models import RateLimitInfo

logger = structlog.get_logger(__name__)

# Returns {allowed, count, oldest}; count includes the member just added,
# oldest is the earliest score still in the window (string keeps precision)
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
local allowed = 0

if count < limit then
    redis.call('ZADD', key, now, ARGV[4])
    redis.call('EXPIRE', key, math.ceil(window))
    count = count + 1
    allowed = 1
end

local head = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
if #head == 0 then
    return {allowed, count, ARGV[1]}
end
return {allowed, count, head[2]}
"""


class RedisRateLimiter(RateLimiter):
    """
    Redis-backed sliding window limiter.

    Shares counters across every instance pointed at the same Redis.
    Backend failures raise RateLimiterUnavailable; callers decide whether
    to fail open or closed.
    """

    def __init__(
        self,
        redis_client,
        prefix: str = "ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            redis_client: Async Redis client (redis.asyncio.Redis)
            prefix: Key namespace
            clock: Time source in Unix seconds
        """
        self.redis = redis_client
        self.prefix = prefix
        self._clock = clock
        self._script = redis_client.register_script(SLIDING_WINDOW_SCRIPT)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def check(self, key: str, window_seconds: int, max_count: int) -> RateLimitInfo:
        now = self._clock()
        stamp = f"{now:.6f}"

        try:
            allowed, count, oldest = await self._script(
                keys=[self._key(key)],
                args=[stamp, window_seconds, max_count, f"{stamp}:{secrets.token_hex(4)}"],
            )
        except RedisError as e:
            logger.error("Rate limit check failed", key=key, error=str(e))
            raise RateLimiterUnavailable(f"Rate limit backend unavailable: {e}") from e

        oldest = float(oldest)
        if int(allowed):
            return RateLimitInfo.granted(max_count, int(count), oldest, window_seconds)
        return RateLimitInfo.denied(max_count, oldest, window_seconds, now)

    async def reset(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            raise RateLimiterUnavailable(f"Rate limit backend unavailable: {e}") from e
