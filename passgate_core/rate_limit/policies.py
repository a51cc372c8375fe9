"""
Rate Limit Policies
===================
The two independent throttles guarding the verification code engine.

Issuance limiting always fails closed: if the counter backend is down,
no code is sent, since failing open would allow SMS bombing.
"""

from typing import Optional

import structlog

from ..config import RateLimitConfig
from ..exceptions import RateLimitedError, RateLimiterUnavailable
from .base import RateLimiter
from .models import RateLimitInfo

logger = structlog.get_logger(__name__)

HOUR_SECONDS = 3600


class IssuanceRateLimiter:
    """Throttles code requests per target (and optionally per client IP)."""

    def __init__(self, backend: RateLimiter, config: Optional[RateLimitConfig] = None):
        self.backend = backend
        self.config = config or RateLimitConfig()

    async def enforce(self, target: str, client_ip: Optional[str] = None) -> None:
        """
        Record an issuance for ``target`` or raise.

        Raises:
            RateLimitedError: A window is full, or the backend is unavailable
        """
        cfg = self.config
        checks = [
            (f"otp:issue:cooldown:{target}", cfg.issue_cooldown_seconds, cfg.issue_cooldown_max,
             "Please wait before requesting a new code"),
            (f"otp:issue:hourly:{target}", HOUR_SECONDS, cfg.issue_hourly_max,
             "Too many code requests. Please try again later"),
        ]
        if client_ip:
            checks.append(
                (f"otp:issue:ip:{client_ip}", HOUR_SECONDS, cfg.issue_ip_hourly_max,
                 "Too many code requests. Please try again later"),
            )

        for key, window, limit, message in checks:
            try:
                info = await self.backend.check(key, window, limit)
            except RateLimiterUnavailable:
                logger.error("Issuance limiter unavailable, denying", key=key)
                raise RateLimitedError("Code requests are temporarily unavailable")
            if not info.allowed:
                logger.warning("Issuance rate limited", key=key, retry_after=info.retry_after)
                raise RateLimitedError(message, retry_after=info.retry_after)


class VerificationRateLimiter:
    """
    Throttles verification requests per target.

    Independent of the per-code attempts counter: this bounds calls per
    time window, the counter bounds guesses against one code.
    """

    def __init__(self, backend: RateLimiter, config: Optional[RateLimitConfig] = None):
        self.backend = backend
        self.config = config or RateLimitConfig()

    async def enforce(self, target: str) -> Optional[RateLimitInfo]:
        """
        Record a verification request for ``target`` or raise.

        Raises:
            RateLimitedError: Window is full, or the backend is unavailable
                and the policy fails closed
        """
        cfg = self.config
        key = f"otp:verify:{target}"
        try:
            info = await self.backend.check(key, cfg.verify_window_seconds, cfg.verify_max)
        except RateLimiterUnavailable:
            if cfg.verify_fail_closed:
                logger.error("Verification limiter unavailable, denying", key=key)
                raise RateLimitedError("Verification is temporarily unavailable")
            logger.warning("Verification limiter unavailable, allowing", key=key)
            return None

        if not info.allowed:
            logger.warning("Verification rate limited", key=key, retry_after=info.retry_after)
            raise RateLimitedError(
                "Too many verification attempts. Please try again later",
                retry_after=info.retry_after,
            )
        return info
