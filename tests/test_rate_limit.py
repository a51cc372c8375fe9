"""
Tests for sliding window limiters and the issuance/verification policies.
"""

from unittest.mock import AsyncMock, MagicMock

import fakeredis.aioredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from passgate_core.config import RateLimitConfig
from passgate_core.exceptions import RateLimitedError, RateLimiterUnavailable
from passgate_core.rate_limit import (
    InMemoryRateLimiter,
    IssuanceRateLimiter,
    RateLimiter,
    RedisRateLimiter,
    VerificationRateLimiter,
)


class UnavailableLimiter(RateLimiter):
    """Backend whose store is always down."""

    async def check(self, key, window_seconds, max_count):
        raise RateLimiterUnavailable("down")


@pytest.fixture
def redis_client():
    return fakeredis.aioredis.FakeRedis()


class TestInMemoryRateLimiter:
    """Tests for the in-process sliding window."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)

        first = await limiter.check("k", 60, 2)
        second = await limiter.check("k", 60, 2)
        third = await limiter.check("k", 60, 2)

        assert first.allowed and first.remaining == 1
        assert second.allowed and second.remaining == 0
        assert not third.allowed
        assert third.reset_at == int(clock.timestamp()) + 60
        assert third.retry_after == 60

    @pytest.mark.asyncio
    async def test_window_slides(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)

        assert await limiter.allow("k", 60, 1)
        clock.advance(30)
        assert not await limiter.allow("k", 60, 1)
        clock.advance(30)
        assert await limiter.allow("k", 60, 1)

    @pytest.mark.asyncio
    async def test_denied_events_are_not_recorded(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)

        assert await limiter.allow("k", 60, 1)
        for _ in range(5):
            clock.advance(10)
            assert not await limiter.allow("k", 60, 1)
        clock.advance(10)

        # Only the first event counts, so its window has passed
        assert await limiter.allow("k", 60, 1)

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)

        assert await limiter.allow("a", 60, 1)
        assert await limiter.allow("b", 60, 1)

    @pytest.mark.asyncio
    async def test_reset(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)
        await limiter.allow("k", 60, 1)

        await limiter.reset("k")

        assert await limiter.allow("k", 60, 1)

    @pytest.mark.asyncio
    async def test_purge_drops_idle_keys(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)
        await limiter.allow("short", 60, 5)
        await limiter.allow("long", 3600, 5)
        clock.advance(61)

        assert await limiter.purge_expired() == 1
        assert len(limiter) == 1
        assert not await limiter.allow("long", 3600, 1)

    @pytest.mark.asyncio
    async def test_check_sweeps_idle_keys(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)
        for i in range(1000):
            await limiter.allow(f"ip:{i}", 60, 5)
        clock.advance(3600)

        await limiter.allow("fresh", 60, 5)

        assert len(limiter) == 1

    @pytest.mark.asyncio
    async def test_denied_check_creates_no_key(self, clock):
        limiter = InMemoryRateLimiter(clock=clock.timestamp)

        assert not await limiter.allow("k", 60, 0)
        assert len(limiter) == 0


class TestRedisRateLimiter:
    """Tests for the Lua sliding window using fakeredis."""

    @pytest.mark.asyncio
    async def test_allows_then_blocks(self, redis_client, clock):
        limiter = RedisRateLimiter(redis_client, clock=clock.timestamp)

        first = await limiter.check("k", 60, 2)
        second = await limiter.check("k", 60, 2)
        third = await limiter.check("k", 60, 2)

        assert first.allowed and first.remaining == 1
        assert second.allowed and second.remaining == 0
        assert not third.allowed
        assert third.retry_after == 60

    @pytest.mark.asyncio
    async def test_window_slides(self, redis_client, clock):
        limiter = RedisRateLimiter(redis_client, clock=clock.timestamp)

        assert await limiter.allow("k", 60, 1)
        clock.advance(59)
        assert not await limiter.allow("k", 60, 1)
        clock.advance(1)
        assert await limiter.allow("k", 60, 1)

    @pytest.mark.asyncio
    async def test_reset(self, redis_client, clock):
        limiter = RedisRateLimiter(redis_client, clock=clock.timestamp)
        await limiter.allow("k", 60, 1)

        await limiter.reset("k")

        assert await limiter.allow("k", 60, 1)

    @pytest.mark.asyncio
    async def test_backend_error_raises_unavailable(self):
        client = MagicMock()
        client.register_script.return_value = AsyncMock(side_effect=RedisConnectionError("refused"))
        limiter = RedisRateLimiter(client)

        with pytest.raises(RateLimiterUnavailable):
            await limiter.check("k", 60, 1)


class TestIssuanceRateLimiter:
    """Tests for the per-target issuance policy."""

    @pytest.mark.asyncio
    async def test_cooldown(self, clock):
        policy = IssuanceRateLimiter(InMemoryRateLimiter(clock=clock.timestamp), RateLimitConfig())

        await policy.enforce("+15550001")
        with pytest.raises(RateLimitedError) as exc_info:
            await policy.enforce("+15550001")

        assert exc_info.value.retry_after == 60
        clock.advance(61)
        await policy.enforce("+15550001")

    @pytest.mark.asyncio
    async def test_hourly_cap(self, clock):
        config = RateLimitConfig(issue_hourly_max=3)
        policy = IssuanceRateLimiter(InMemoryRateLimiter(clock=clock.timestamp), config)

        for _ in range(3):
            await policy.enforce("+15550001")
            clock.advance(61)

        with pytest.raises(RateLimitedError):
            await policy.enforce("+15550001")

    @pytest.mark.asyncio
    async def test_client_ip_cap(self, clock):
        config = RateLimitConfig(issue_ip_hourly_max=2)
        policy = IssuanceRateLimiter(InMemoryRateLimiter(clock=clock.timestamp), config)

        await policy.enforce("+15550001", client_ip="10.0.0.1")
        await policy.enforce("+15550002", client_ip="10.0.0.1")
        with pytest.raises(RateLimitedError):
            await policy.enforce("+15550003", client_ip="10.0.0.1")

        # Without an IP only the per-target windows apply
        await policy.enforce("+15550004")

    @pytest.mark.asyncio
    async def test_fails_closed(self):
        policy = IssuanceRateLimiter(UnavailableLimiter())

        with pytest.raises(RateLimitedError):
            await policy.enforce("+15550001")


class TestVerificationRateLimiter:
    """Tests for the per-target verification policy."""

    @pytest.mark.asyncio
    async def test_window(self, clock):
        config = RateLimitConfig(verify_max=2, verify_window_seconds=300)
        policy = VerificationRateLimiter(InMemoryRateLimiter(clock=clock.timestamp), config)

        await policy.enforce("+15550001")
        await policy.enforce("+15550001")
        with pytest.raises(RateLimitedError):
            await policy.enforce("+15550001")

        clock.advance(300)
        await policy.enforce("+15550001")

    @pytest.mark.asyncio
    async def test_fails_closed_by_default(self):
        policy = VerificationRateLimiter(UnavailableLimiter())

        with pytest.raises(RateLimitedError):
            await policy.enforce("+15550001")

    @pytest.mark.asyncio
    async def test_fail_open_when_configured(self):
        policy = VerificationRateLimiter(UnavailableLimiter(), RateLimitConfig(verify_fail_closed=False))

        assert await policy.enforce("+15550001") is None
