"""
Verification Code Engine
========================
One-time numeric codes: generation, storage, delivery and validation.
"""

from ..channels.models import Channel
from .models import VerificationCode, IssueResult
from .generator import generate_code, codes_match, is_well_formed
from .store import VerificationCodeStore, InMemoryVerificationCodeStore
from .sql_store import SQLVerificationCodeStore, OtpCodeRow
from .service import VerificationCodeService

__all__ = [
    "Channel",
    "VerificationCode",
    "IssueResult",
    "generate_code",
    "codes_match",
    "is_well_formed",
    "VerificationCodeStore",
    "InMemoryVerificationCodeStore",
    "SQLVerificationCodeStore",
    "OtpCodeRow",
    "VerificationCodeService",
]
