"""
Auth Core
=========
Facade over the verification code and token engines.

Usage:
    from passgate_core import Settings, build_auth_core

    core = build_auth_core(Settings.from_env())
    await core.issue_code("+998901234567", "sms")
    if await core.verify_code("+998901234567", "1234"):
        pair = core.issue_token_pair(TokenIdentity(subject_id="u1"))
"""

from typing import Any, Dict, Optional, Union

import structlog

from .audit import AuditLogger, AuditSink
from .channels import (
    Channel,
    ChannelRegistry,
    DeviceTokenResolver,
    EskizSMSAdapter,
    FCMPushAdapter,
    IVRCallAdapter,
)
from .config import Settings
from .rate_limit import (
    InMemoryRateLimiter,
    IssuanceRateLimiter,
    RateLimiter,
    RedisRateLimiter,
    VerificationRateLimiter,
)
from .tokens import (
    InMemoryRevocationRegistry,
    RedisRevocationRegistry,
    RevocationRegistry,
    TokenIdentity,
    TokenPair,
    TokenService,
)
from .verification import (
    InMemoryVerificationCodeStore,
    IssueResult,
    VerificationCodeService,
    VerificationCodeStore,
)

logger = structlog.get_logger(__name__)


class AuthCore:
    """The operations collaborators call."""

    def __init__(
        self,
        verification: VerificationCodeService,
        tokens: TokenService,
        channels: Optional[ChannelRegistry] = None,
    ):
        self.verification = verification
        self.tokens = tokens
        self.channels = channels or verification.channels

    async def issue_code(
        self,
        target: str,
        channel: Union[Channel, str] = Channel.SMS,
        metadata: Optional[Dict[str, Any]] = None,
        client_ip: Optional[str] = None,
    ) -> IssueResult:
        return await self.verification.issue(target, channel, metadata, client_ip)

    async def verify_code(self, target: str, code: str) -> bool:
        return await self.verification.verify(target, code)

    def issue_token_pair(self, identity: TokenIdentity) -> TokenPair:
        return self.tokens.issue_pair(identity)

    async def rotate_tokens(self, refresh_token: str) -> TokenPair:
        return await self.tokens.rotate(refresh_token)

    async def revoke_token(self, token: str) -> bool:
        return await self.tokens.revoke(token)

    async def verify_access_token(self, token: str) -> TokenIdentity:
        return await self.tokens.verify_access(token)

    async def verify_refresh_token(self, token: str) -> TokenIdentity:
        return await self.tokens.verify_refresh(token)

    async def purge_expired(self) -> Dict[str, int]:
        """Drop expired codes, revocation entries and idle rate limit counters."""
        codes = await self.verification.purge_expired()
        revocations = await self.tokens.registry.purge_expired()

        backends = [self.verification.issuance_limiter.backend]
        if self.verification.verification_limiter is not None:
            backend = self.verification.verification_limiter.backend
            if backend is not backends[0]:
                backends.append(backend)
        limiter_keys = 0
        for backend in backends:
            limiter_keys += await backend.purge_expired()

        return {"codes": codes, "revocations": revocations, "limiter_keys": limiter_keys}

    async def start(self) -> Dict[str, bool]:
        """Initialize channel adapters; returns their health by channel name."""
        await self.channels.initialize_all()
        health = await self.channels.health_check_all()
        for channel, healthy in health.items():
            if not healthy:
                logger.warning("Channel adapter unhealthy after start", channel=channel)
        return health

    async def close(self) -> None:
        await self.channels.close_all()


def build_channels(
    settings: Settings,
    device_resolver: Optional[DeviceTokenResolver] = None,
) -> ChannelRegistry:
    """
    Build adapters for every channel with usable settings.

    SMS needs an Eskiz token or credentials, voice needs an IVR URL and
    key, push needs an FCM server key and a device token resolver.
    """
    registry = ChannelRegistry()
    if settings.eskiz.token or (settings.eskiz.email and settings.eskiz.password):
        registry.register(EskizSMSAdapter(settings.eskiz))
    if settings.ivr.api_url and settings.ivr.api_key:
        registry.register(IVRCallAdapter(settings.ivr))
    if settings.fcm.server_key and device_resolver is not None:
        registry.register(FCMPushAdapter(settings.fcm, device_resolver))

    if not registry.channels():
        logger.warning("No delivery channels configured")
    return registry


def build_auth_core(
    settings: Settings,
    *,
    store: Optional[VerificationCodeStore] = None,
    channels: Optional[ChannelRegistry] = None,
    audit: Optional[AuditSink] = None,
    limiter: Optional[RateLimiter] = None,
    registry: Optional[RevocationRegistry] = None,
    redis_client=None,
    device_resolver: Optional[DeviceTokenResolver] = None,
) -> AuthCore:
    """
    Wire an AuthCore from settings.

    Anything passed explicitly wins. Otherwise counters and revocations go
    to Redis when a client or ``settings.redis_url`` is available, and to
    process memory when not.

    Raises:
        ConfigurationError: Token secrets are missing or unusable
    """
    if redis_client is None and settings.redis_url and (limiter is None or registry is None):
        from redis import asyncio as aioredis

        redis_client = aioredis.from_url(settings.redis_url)

    if limiter is None:
        limiter = RedisRateLimiter(redis_client) if redis_client is not None else InMemoryRateLimiter()
    if registry is None:
        if redis_client is not None:
            registry = RedisRevocationRegistry(redis_client)
        else:
            logger.warning("Using in-memory revocation registry; revocations are per process")
            registry = InMemoryRevocationRegistry()

    if audit is None:
        audit = AuditLogger(settings.service_name)
    if channels is None:
        channels = build_channels(settings, device_resolver)

    verification = VerificationCodeService(
        store=store if store is not None else InMemoryVerificationCodeStore(),
        channels=channels,
        issuance_limiter=IssuanceRateLimiter(limiter, settings.rate_limit),
        verification_limiter=VerificationRateLimiter(limiter, settings.rate_limit),
        audit=audit,
        config=settings.otp,
    )
    tokens = TokenService(settings.tokens, registry=registry, audit=audit)

    logger.info(
        "Auth core built",
        service=settings.service_name,
        channels=[c.value for c in channels.channels()],
        limiter=type(limiter).__name__,
        registry=type(registry).__name__,
    )
    return AuthCore(verification, tokens, channels)
