"""
Verification Models
===================
Records and results for one-time verification codes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

from ..channels.models import Channel


@dataclass
class VerificationCode:
    """A persisted one-time code for a target."""
    id: str
    channel: Channel
    target: str
    code: str
    expires_at: datetime
    created_at: datetime
    attempts: int = 0
    meta: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        # Invalid at or after expires_at
        return now >= self.expires_at


@dataclass
class IssueResult:
    """Outcome of a code issuance returned to the caller."""
    sent: bool
    expires_in_seconds: int
