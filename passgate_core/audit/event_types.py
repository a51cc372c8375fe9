"""
Audit Actions
=============
Action names recorded by the verification and token engines.
"""

from enum import Enum


class AuditAction(str, Enum):
    """Audit actions emitted by passgate-core."""
    # Verification codes
    OTP_SEND = "auth.otp.send"
    OTP_VERIFY = "auth.otp.verify"
    OTP_VERIFY_FAILED = "auth.otp.verify.failed"

    # Tokens
    TOKEN_ISSUE = "auth.token.issue"
    TOKEN_REFRESH = "auth.refresh"
    TOKEN_REFRESH_FAILED = "auth.refresh.failed"
    LOGOUT = "auth.logout"
