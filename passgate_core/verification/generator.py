"""
Code Generation
===============
Cryptographically random numeric codes and constant-time comparison.
"""

import hmac
import secrets


def generate_code(length: int = 4) -> str:
    """
    Generate a uniformly random numeric code.

    Args:
        length: Number of digits

    Returns:
        Zero-padded digit string
    """
    return str(secrets.randbelow(10 ** length)).zfill(length)


def is_well_formed(code: str, length: int) -> bool:
    """True if ``code`` is exactly ``length`` ASCII digits."""
    return isinstance(code, str) and len(code) == length and code.isascii() and code.isdigit()


def codes_match(stored: str, supplied: str) -> bool:
    """Compare codes in constant time."""
    return hmac.compare_digest(stored.encode(), supplied.encode())
