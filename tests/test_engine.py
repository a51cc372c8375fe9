"""
Tests for the AuthCore facade and its builders.
"""

import fakeredis.aioredis
import pytest

from passgate_core import (
    AuthCore,
    Channel,
    ChannelRegistry,
    ConfigurationError,
    IVRCallAdapter,
    RevokedError,
    Settings,
    StaticChannelAdapter,
    TokenIdentity,
    build_auth_core,
    build_channels,
)
from passgate_core.audit import AuditLogger, verify_chain_integrity
from passgate_core.config import EskizConfig, FCMConfig, IVRConfig
from passgate_core.rate_limit import InMemoryRateLimiter, RedisRateLimiter
from passgate_core.tokens import InMemoryRevocationRegistry, RedisRevocationRegistry


class StubResolver:
    async def resolve(self, target):
        return "device-1"


@pytest.fixture
def settings(token_config):
    return Settings(service_name="auth-api", tokens=token_config)


@pytest.fixture
def sms():
    return StaticChannelAdapter(Channel.SMS)


class TestBuildChannels:
    """Tests for adapter wiring from settings."""

    def test_nothing_configured(self):
        assert build_channels(Settings()).channels() == []

    def test_all_configured(self):
        settings = Settings(
            eskiz=EskizConfig(token="static"),
            ivr=IVRConfig(api_url="https://ivr.example.com", api_key="key"),
            fcm=FCMConfig(server_key="server"),
        )

        registry = build_channels(settings, device_resolver=StubResolver())

        assert set(registry.channels()) == {Channel.SMS, Channel.CALL, Channel.PUSH}
        assert registry.get("sms").name == "eskiz"

    def test_push_needs_resolver(self):
        settings = Settings(fcm=FCMConfig(server_key="server"))

        assert build_channels(settings).channels() == []


class TestBuildAuthCore:
    """Tests for default wiring."""

    def test_requires_token_secrets(self):
        with pytest.raises(ConfigurationError):
            build_auth_core(Settings())

    def test_in_memory_defaults(self, settings):
        core = build_auth_core(settings)

        assert isinstance(core, AuthCore)
        assert isinstance(core.tokens.registry, InMemoryRevocationRegistry)
        assert isinstance(core.verification.issuance_limiter.backend, InMemoryRateLimiter)
        assert isinstance(core.verification.audit, AuditLogger)

    def test_redis_client(self, settings):
        core = build_auth_core(settings, redis_client=fakeredis.aioredis.FakeRedis())

        assert isinstance(core.tokens.registry, RedisRevocationRegistry)
        assert isinstance(core.verification.issuance_limiter.backend, RedisRateLimiter)
        assert core.verification.verification_limiter.backend is core.verification.issuance_limiter.backend

    def test_explicit_collaborators_win(self, settings, sms, audit_sink):
        registry = InMemoryRevocationRegistry()
        channels = ChannelRegistry([sms])

        core = build_auth_core(settings, channels=channels, audit=audit_sink, registry=registry)

        assert core.tokens.registry is registry
        assert core.channels is channels
        assert core.tokens.audit is audit_sink


class TestAuthCoreFlow:
    """End-to-end flow through the facade."""

    @pytest.mark.asyncio
    async def test_login_flow(self, settings, sms):
        audit = AuditLogger("auth-api")
        core = build_auth_core(settings, channels=ChannelRegistry([sms]), audit=audit)

        result = await core.issue_code("+998 90 123 45 67", "sms", metadata={"purpose": "login"})
        assert result.sent
        target, code = sms.outbox[-1]
        assert target == "+998901234567"

        assert await core.verify_code("+998901234567", code) is True

        pair = core.issue_token_pair(TokenIdentity(subject_id="u1", claims={"phone": target}))
        identity = await core.verify_access_token(pair.access)
        assert identity.subject_id == "u1"
        assert (await core.verify_refresh_token(pair.refresh)).subject_id == "u1"

        rotated = await core.rotate_tokens(pair.refresh)
        with pytest.raises(RevokedError):
            await core.rotate_tokens(pair.refresh)

        assert await core.revoke_token(rotated.refresh) is True
        with pytest.raises(RevokedError):
            await core.verify_access_token(rotated.access)

        events = audit.flush()
        actions = [e.action for e in events]
        assert actions[:2] == ["auth.otp.send", "auth.otp.verify"]
        assert "auth.token.issue" in actions
        assert "auth.refresh" in actions
        assert "auth.refresh.failed" in actions
        assert actions[-1] == "auth.logout"
        assert verify_chain_integrity(events) == (True, None)
        assert all(e.payload.get("phone") in (None, "***MASKED***") for e in events)

    @pytest.mark.asyncio
    async def test_purge_expired(self, token_config, sms, clock):
        from passgate_core.rate_limit import IssuanceRateLimiter
        from passgate_core.tokens import TokenService
        from passgate_core.verification import InMemoryVerificationCodeStore, VerificationCodeService

        store = InMemoryVerificationCodeStore()
        registry = InMemoryRevocationRegistry(clock=clock.timestamp)
        verification = VerificationCodeService(
            store=store,
            channels=ChannelRegistry([sms]),
            issuance_limiter=IssuanceRateLimiter(InMemoryRateLimiter(clock=clock.timestamp)),
            clock=clock,
        )
        tokens = TokenService(token_config, registry=registry, clock=clock)
        core = AuthCore(verification, tokens)

        await core.issue_code("+998901234567")
        await core.revoke_token(core.issue_token_pair(TokenIdentity("u1")).access)
        clock.advance(minutes=16)

        # the cooldown counter is idle, the hourly one is still inside its window
        assert await core.purge_expired() == {"codes": 1, "revocations": 1, "limiter_keys": 1}
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_start_and_close(self, settings, sms):
        ivr = IVRCallAdapter(IVRConfig(api_url="https://ivr.example.com", api_key="key"))
        core = build_auth_core(settings, channels=ChannelRegistry([sms, ivr]))

        assert await core.start() == {"sms": True, "call": True}
        await core.close()

        assert await core.channels.health_check_all() == {"sms": True, "call": False}
