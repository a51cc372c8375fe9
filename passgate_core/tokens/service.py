"""
Token Service
=============
Access/refresh JWT pairs with one-time refresh rotation.

Security:
    - HS256 with separate secrets for access and refresh tokens, so a leaked
      access secret cannot mint refresh tokens (and vice versa)
    - Every token carries its own ``jti``; a pair shares a ``fam`` (lineage)
      claim that survives rotation
    - Rotating a refresh token revokes it and its access sibling before the
      new pair is issued, so a stolen refresh token works at most once
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
import structlog
from jwt.exceptions import InvalidTokenError

from ..audit import AuditAction, AuditSink, NullAuditSink, safe_record
from ..config import TokenConfig
from ..exceptions import (
    ConfigurationError,
    ExpiredError,
    InvalidError,
    RevokedError,
    TokenError,
    ValidationError,
)
from .models import TokenClaims, TokenIdentity, TokenPair, TokenType
from .revocation import InMemoryRevocationRegistry, RevocationRegistry

logger = structlog.get_logger(__name__)

MIN_SECRET_BYTES = 32
RESERVED_CLAIMS = frozenset({"sub", "role", "jti", "type", "fam", "sib", "iat", "exp", "nbf", "iss", "aud"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_token_id() -> str:
    """128-bit random token identifier."""
    return secrets.token_hex(16)


class TokenService:
    """
    Issues, verifies, rotates and revokes bearer tokens.

    Usage:
        service = TokenService(TokenConfig(access_secret=..., refresh_secret=...))
        pair = service.issue_pair(TokenIdentity(subject_id="u1", role="user"))
        identity = await service.verify_access(pair.access)
        new_pair = await service.rotate(pair.refresh)
    """

    def __init__(
        self,
        config: TokenConfig,
        registry: Optional[RevocationRegistry] = None,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Raises:
            ConfigurationError: Secrets missing, shorter than 32 bytes, or equal
        """
        if len(config.access_secret.encode()) < MIN_SECRET_BYTES:
            raise ConfigurationError("Access token secret must be at least 32 bytes")
        if len(config.refresh_secret.encode()) < MIN_SECRET_BYTES:
            raise ConfigurationError("Refresh token secret must be at least 32 bytes")
        if secrets.compare_digest(config.access_secret.encode(), config.refresh_secret.encode()):
            raise ConfigurationError("Access and refresh secrets must differ")

        self.config = config
        self.registry = registry if registry is not None else InMemoryRevocationRegistry()
        self.audit = audit if audit is not None else NullAuditSink()
        self._clock = clock

    def _secret(self, token_type: TokenType) -> str:
        if token_type is TokenType.ACCESS:
            return self.config.access_secret
        return self.config.refresh_secret

    def _ttl(self, token_type: TokenType) -> int:
        if token_type is TokenType.ACCESS:
            return self.config.access_ttl_seconds
        return self.config.refresh_ttl_seconds

    def _encode(
        self,
        identity: TokenIdentity,
        token_type: TokenType,
        jti: str,
        family: str,
        now: datetime,
        sibling: Optional[str] = None,
    ) -> tuple:
        expires_at = now + timedelta(seconds=self._ttl(token_type))
        payload: Dict[str, Any] = {
            k: v for k, v in identity.claims.items() if k not in RESERVED_CLAIMS
        }
        payload.update({
            "sub": identity.subject_id,
            "role": identity.role,
            "type": token_type.value,
            "jti": jti,
            "fam": family,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        })
        if sibling:
            payload["sib"] = sibling
        if self.config.issuer:
            payload["iss"] = self.config.issuer

        token = jwt.encode(payload, self._secret(token_type), algorithm=self.config.algorithm)
        return token, expires_at

    def _issue_pair(self, identity: TokenIdentity, family: Optional[str] = None) -> TokenPair:
        if not identity.subject_id:
            raise ValidationError("Token identity requires a subject_id")

        now = self._clock()
        family = family or generate_token_id()
        access_jti = generate_token_id()
        refresh_jti = generate_token_id()

        access, access_exp = self._encode(identity, TokenType.ACCESS, access_jti, family, now)
        refresh, refresh_exp = self._encode(
            identity, TokenType.REFRESH, refresh_jti, family, now, sibling=access_jti,
        )

        logger.info(
            "Token pair issued",
            subject_id=identity.subject_id,
            family=family,
            access_jti=access_jti,
            refresh_jti=refresh_jti,
        )
        return TokenPair(
            access=access,
            refresh=refresh,
            family=family,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
        )

    def issue_pair(self, identity: TokenIdentity) -> TokenPair:
        """
        Issue an access token and its refresh sibling, starting a new family.

        Args:
            identity: Subject, role and extra claims to embed

        Returns:
            TokenPair with independent ``jti`` values
        """
        pair = self._issue_pair(identity)
        safe_record(
            self.audit,
            AuditAction.TOKEN_ISSUE,
            {"family": pair.family, "role": identity.role},
            actor_id=identity.subject_id,
        )
        return pair

    def _decode(self, token: str, token_type: TokenType, verify_exp: bool = True) -> TokenClaims:
        # exp is checked against the service clock below, not the wall clock
        options = {
            "require": ["sub", "jti", "iat", "exp"],
            "verify_exp": False,
            "verify_iat": False,
        }
        try:
            payload = jwt.decode(
                token,
                self._secret(token_type),
                algorithms=[self.config.algorithm],
                options=options,
                issuer=self.config.issuer,
            )
        except InvalidTokenError as e:
            raise InvalidError(f"Invalid {token_type.value} token") from e

        if payload.get("type") != token_type.value:
            raise InvalidError(f"Invalid {token_type.value} token")

        try:
            exp = int(payload["exp"])
            iat = int(payload["iat"])
        except (TypeError, ValueError) as e:
            raise InvalidError(f"Invalid {token_type.value} token") from e

        if verify_exp and exp + self.config.leeway_seconds <= self._clock().timestamp():
            raise ExpiredError(f"{token_type.value.capitalize()} token expired")

        extra = {k: v for k, v in payload.items() if k not in RESERVED_CLAIMS}
        return TokenClaims(
            jti=payload["jti"],
            type=token_type,
            identity=TokenIdentity(
                subject_id=str(payload["sub"]),
                role=payload.get("role", "user"),
                claims=extra,
            ),
            family=payload.get("fam") or payload["jti"],
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
            sibling=payload.get("sib"),
        )

    async def _decode_active(self, token: str, token_type: TokenType) -> TokenClaims:
        claims = self._decode(token, token_type)
        if await self.registry.is_revoked(claims.jti):
            raise RevokedError(f"{token_type.value.capitalize()} token has been revoked")
        return claims

    async def decode_access(self, token: str) -> TokenClaims:
        """Verify an access token and return all of its claims."""
        return await self._decode_active(token, TokenType.ACCESS)

    async def decode_refresh(self, token: str) -> TokenClaims:
        """Verify a refresh token and return all of its claims."""
        return await self._decode_active(token, TokenType.REFRESH)

    async def verify_access(self, token: str) -> TokenIdentity:
        """
        Raises:
            ExpiredError, InvalidError, RevokedError
        """
        return (await self.decode_access(token)).identity

    async def verify_refresh(self, token: str) -> TokenIdentity:
        """
        Raises:
            ExpiredError, InvalidError, RevokedError
        """
        return (await self.decode_refresh(token)).identity

    def _retain_until(self, expires_at: datetime) -> datetime:
        # A token verifies until exp + leeway, so its revocation must outlive that
        return expires_at + timedelta(seconds=self.config.leeway_seconds)

    async def _revoke_sibling(self, claims: TokenClaims) -> None:
        if not claims.sibling:
            return
        sibling_exp = claims.issued_at + timedelta(seconds=self.config.access_ttl_seconds)
        retain_until = self._retain_until(sibling_exp)
        if retain_until > self._clock():
            await self.registry.revoke(claims.sibling, retain_until)

    async def rotate(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair, revoking the presented one.

        Raises:
            ExpiredError, InvalidError: The refresh token does not verify
            RevokedError: Already rotated or logged out (including a
                concurrent rotation that won the race)
        """
        try:
            claims = await self.decode_refresh(refresh_token)
            if not await self.registry.revoke(claims.jti, self._retain_until(claims.expires_at)):
                raise RevokedError("Refresh token has been revoked")
        except TokenError as e:
            safe_record(self.audit, AuditAction.TOKEN_REFRESH_FAILED, {"reason": e.code})
            logger.warning("Token rotation rejected", reason=e.code)
            raise

        await self._revoke_sibling(claims)
        pair = self._issue_pair(claims.identity, family=claims.family)

        safe_record(
            self.audit,
            AuditAction.TOKEN_REFRESH,
            {"family": claims.family, "revoked_jti": claims.jti},
            actor_id=claims.identity.subject_id,
        )
        logger.info("Token pair rotated", subject_id=claims.identity.subject_id, family=claims.family)
        return pair

    async def revoke(self, token: str) -> bool:
        """
        Revoke a token for logout.

        The signature is checked but expiry is not, so an already-expired
        token can still be presented. Revoking a refresh token also revokes
        its access sibling.

        Returns:
            True if a new revocation entry was written

        Raises:
            InvalidError: Not a token signed by this service
        """
        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
        except InvalidTokenError as e:
            raise InvalidError("Invalid token") from e

        try:
            token_type = TokenType(unverified.get("type"))
        except ValueError as e:
            raise InvalidError("Invalid token") from e

        claims = self._decode(token, token_type, verify_exp=False)

        revoked = False
        retain_until = self._retain_until(claims.expires_at)
        if retain_until > self._clock():
            revoked = await self.registry.revoke(claims.jti, retain_until)
        if token_type is TokenType.REFRESH:
            await self._revoke_sibling(claims)

        safe_record(
            self.audit,
            AuditAction.LOGOUT,
            {"type": token_type.value, "jti": claims.jti, "family": claims.family},
            actor_id=claims.identity.subject_id,
        )
        logger.info("Token revoked", jti=claims.jti, type=token_type.value, new_entry=revoked)
        return revoked
