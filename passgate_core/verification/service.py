"""
Verification Code Service
=========================
Issues one-time codes through a delivery channel and validates them.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Union

import structlog

from ..audit import AuditAction, AuditSink, NullAuditSink, safe_record
from ..channels import Channel, ChannelRegistry
from ..config import OTPConfig
from ..exceptions import DeliveryError, RateLimitedError, ValidationError
from ..phone import mask_phone, require_phone
from ..rate_limit import IssuanceRateLimiter, VerificationRateLimiter
from .generator import codes_match, generate_code, is_well_formed
from .models import IssueResult, VerificationCode
from .store import VerificationCodeStore

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationCodeService:
    """
    One-time code engine.

    Only the most recently created, unexpired code for a target can be
    verified. Every verification call against it consumes one attempt,
    including the successful one; once ``max_attempts`` is reached the code
    is locked even if the right digits are supplied.
    """

    def __init__(
        self,
        store: VerificationCodeStore,
        channels: ChannelRegistry,
        issuance_limiter: IssuanceRateLimiter,
        verification_limiter: Optional[VerificationRateLimiter] = None,
        audit: Optional[AuditSink] = None,
        config: Optional[OTPConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.channels = channels
        self.issuance_limiter = issuance_limiter
        self.verification_limiter = verification_limiter
        self.audit = audit if audit is not None else NullAuditSink()
        self.config = config or OTPConfig()
        self._clock = clock

    async def issue(
        self,
        target: str,
        channel: Union[Channel, str] = Channel.SMS,
        metadata: Optional[Dict[str, Any]] = None,
        client_ip: Optional[str] = None,
    ) -> IssueResult:
        """
        Generate, persist and deliver a new code.

        Args:
            target: Phone number in E.164 format
            channel: Delivery channel (sms, call, push)
            metadata: Caller context stored with the record, never interpreted
            client_ip: Requesting client, throttled separately when given

        Returns:
            IssueResult; ``sent`` is False when the gateway answered but
            refused the message

        Raises:
            ValidationError: Malformed target or unknown channel
            RateLimitedError: Issuance throttled (or limiter unavailable)
            DeliveryError: Gateway unreachable, erroring or timed out.
                The record stays persisted.
        """
        try:
            phone = require_phone(target)
            channel = Channel(channel)
        except (ValidationError, ValueError) as e:
            safe_record(self.audit, AuditAction.OTP_SEND, {
                "phone": target, "channel": str(getattr(channel, "value", channel)),
                "sent": False, "reason": "invalid_request",
            })
            if isinstance(e, ValidationError):
                raise
            raise ValidationError(f"Unsupported channel: {channel}") from e

        try:
            adapter = self.channels.get(channel)
        except DeliveryError:
            safe_record(self.audit, AuditAction.OTP_SEND, {
                "phone": phone, "channel": channel.value, "sent": False, "reason": "channel_unavailable",
            })
            raise

        try:
            await self.issuance_limiter.enforce(phone, client_ip)
        except RateLimitedError:
            safe_record(self.audit, AuditAction.OTP_SEND, {
                "phone": phone, "channel": channel.value, "sent": False, "reason": "rate_limited",
            })
            raise

        now = self._clock()
        record = VerificationCode(
            id=str(uuid.uuid4()),
            channel=channel,
            target=phone,
            code=generate_code(self.config.code_length),
            expires_at=now + timedelta(minutes=self.config.expiry_minutes),
            created_at=now,
            attempts=0,
            meta=dict(metadata or {}),
        )
        await self.store.create(record)

        sent = False
        failure: Optional[str] = None
        try:
            sent = await asyncio.wait_for(
                adapter.send(phone, adapter.compose(record.code)),
                timeout=self.config.delivery_timeout_seconds,
            )
        except asyncio.TimeoutError:
            failure = "timeout"
        except DeliveryError as e:
            failure = e.message
        except Exception as e:
            logger.exception("Channel adapter raised unexpectedly", adapter=adapter.name)
            failure = f"unexpected: {type(e).__name__}"

        payload = {"phone": phone, "channel": channel.value, "sent": bool(sent), "record_id": record.id}
        if failure:
            payload["reason"] = failure
        safe_record(self.audit, AuditAction.OTP_SEND, payload)

        if failure:
            logger.warning(
                "Verification code delivery failed",
                channel=channel.value,
                target=mask_phone(phone),
                reason=failure,
            )
            raise DeliveryError(f"Failed to send code via {channel.value}", channel=channel.value)

        logger.info(
            "Verification code issued",
            record_id=record.id,
            channel=channel.value,
            target=mask_phone(phone),
            sent=bool(sent),
            expires_in=self.config.expiry_seconds,
        )
        return IssueResult(sent=bool(sent), expires_in_seconds=self.config.expiry_seconds)

    def _fail(self, phone: str, reason: str, **extra: Any) -> bool:
        safe_record(self.audit, AuditAction.OTP_VERIFY_FAILED, {"phone": phone, "reason": reason, **extra})
        logger.info("Verification failed", target=mask_phone(phone), reason=reason)
        return False

    async def verify(self, target: str, code: str) -> bool:
        """
        Check ``code`` against the latest valid code for ``target``.

        A wrong code and a missing/expired code both return False so callers
        cannot tell them apart.

        Raises:
            ValidationError: Malformed target or code
            RateLimitedError: Too many verification requests for the target
        """
        phone = require_phone(target)
        if not is_well_formed(code, self.config.code_length):
            self._fail(phone, "malformed_code")
            raise ValidationError("Invalid code format")

        if self.verification_limiter is not None:
            try:
                await self.verification_limiter.enforce(phone)
            except RateLimitedError:
                self._fail(phone, "rate_limited")
                raise

        record = await self.store.find_latest_valid(phone, self._clock())
        if record is None:
            return self._fail(phone, "not_found_or_expired")

        max_attempts = self.config.max_attempts
        if record.attempts >= max_attempts:
            return self._fail(phone, "max_attempts_exceeded", record_id=record.id)

        attempts = await self.store.increment_attempts(record.id)
        if attempts is None:
            return self._fail(phone, "not_found_or_expired", record_id=record.id)
        if attempts > max_attempts:
            # Another request took the last attempt first
            return self._fail(phone, "max_attempts_exceeded", record_id=record.id)

        if not codes_match(record.code, code):
            return self._fail(phone, "invalid_code", record_id=record.id, attempts=attempts)

        if not await self.store.delete(record.id):
            return self._fail(phone, "already_used", record_id=record.id)

        safe_record(self.audit, AuditAction.OTP_VERIFY, {
            "phone": phone, "channel": record.channel.value, "record_id": record.id,
        })
        logger.info("Verification code accepted", record_id=record.id, attempts=attempts)
        return True

    async def purge_expired(self) -> int:
        """Delete expired records; run periodically."""
        removed = await self.store.purge_expired(self._clock())
        logger.info("Expired verification codes purged", count=removed)
        return removed
