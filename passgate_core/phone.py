"""
Target Utilities
================
Normalization and validation of verification targets (phone numbers).
"""

import re

from .exceptions import ValidationError

_E164_RE = re.compile(r'^\+[1-9]\d{1,14}$')
_SEPARATORS_RE = re.compile(r'[\s\-().]')


def normalize_target(target: str) -> str:
    """
    Normalize a target so issuance and verification compare identically.

    Trims, case-folds and drops common phone separators
    (spaces, dashes, dots, parentheses).

    Args:
        target: Raw target string

    Returns:
        Normalized target
    """
    if not isinstance(target, str):
        raise ValidationError("Target must be a string")
    return _SEPARATORS_RE.sub('', target.strip().casefold())


def validate_e164(phone: str) -> bool:
    """
    Validate E.164 phone number format.

    Args:
        phone: Phone number

    Returns:
        True if valid E.164 format
    """
    return bool(_E164_RE.match(phone))


def require_phone(target: str) -> str:
    """Normalize a target and reject anything that is not an E.164 number."""
    normalized = normalize_target(target)
    if not validate_e164(normalized):
        raise ValidationError("Invalid phone number format")
    return normalized


def mask_phone(phone: str) -> str:
    """Mask a phone number for logs: +998901234567 -> +998**...67"""
    if len(phone) <= 6:
        return "***"
    return phone[:4] + "**..." + phone[-2:]
