"""
Audit Masking
=============
Strips personal data and secrets from audit payloads before they are stored.
"""

import re
from typing import Any

SENSITIVE_KEYS = frozenset({"phone", "phone_e164", "email", "password", "code", "token", "target"})
MASKED = "***MASKED***"

_E164_RE = re.compile(r'^\+[1-9]\d{1,14}$')


def mask_value(value: Any) -> Any:
    """
    Recursively mask sensitive data.

    - dict keys in SENSITIVE_KEYS are replaced wholesale
    - E.164 strings become +998**...67
    - emails become u**r@example.com
    """
    if isinstance(value, str):
        if _E164_RE.match(value):
            return value[:4] + "**..." + value[-2:]
        if "@" in value:
            local, _, domain = value.partition("@")
            if len(local) > 2:
                return f"{local[0]}**{local[-1]}@{domain}"
            return f"***@{domain}"
        return value

    if isinstance(value, dict):
        return {
            key: MASKED if str(key).lower() in SENSITIVE_KEYS else mask_value(item)
            for key, item in value.items()
        }

    if isinstance(value, (list, tuple)):
        return [mask_value(item) for item in value]

    return value
