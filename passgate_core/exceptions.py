"""
Passgate Exceptions
===================
Error taxonomy shared by the verification and token engines.
"""

from typing import Optional


class PassgateError(Exception):
    """Base exception for all passgate-core errors."""

    code = "passgate_error"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ConfigurationError(PassgateError):
    """Raised when the library is wired with unusable settings."""

    code = "configuration_error"


class ValidationError(PassgateError):
    """Raised when a target or code has the wrong shape (caller's fault)."""

    code = "validation_error"


class RateLimitedError(PassgateError):
    """Raised when a rate limit denies the request."""

    code = "rate_limited"

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class RateLimiterUnavailable(PassgateError):
    """Raised when a rate limit backend cannot be reached."""

    code = "rate_limiter_unavailable"


class DeliveryError(PassgateError):
    """Raised when a delivery channel fails to send. Retryable."""

    code = "delivery_failed"

    def __init__(self, message: str, channel: Optional[str] = None):
        super().__init__(message)
        self.channel = channel


class TokenError(PassgateError):
    """Base for token verification failures. Callers treat all as unauthenticated."""

    code = "token_error"


class ExpiredError(TokenError):
    """Token is past its expiry."""

    code = "token_expired"


class InvalidError(TokenError):
    """Token signature, structure or type is wrong."""

    code = "token_invalid"


class RevokedError(TokenError):
    """Token identifier is present in the revocation registry."""

    code = "token_revoked"


class RevocationUnavailable(PassgateError):
    """Raised when the revocation registry backend cannot be reached."""

    code = "revocation_unavailable"
