"""
Token Models
============
Identities, claims and issued pairs for the token engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class TokenType(str, Enum):
    """Token families; each is signed with its own secret."""
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenIdentity:
    """The authenticated subject embedded in every token."""
    subject_id: str
    role: str = "user"
    claims: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a token."""
    jti: str
    type: TokenType
    identity: TokenIdentity
    family: str
    issued_at: datetime
    expires_at: datetime
    sibling: Optional[str] = None  # access jti paired with a refresh token


@dataclass(frozen=True)
class TokenPair:
    """A freshly issued access/refresh pair."""
    access: str
    refresh: str
    family: str
    access_expires_at: datetime
    refresh_expires_at: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"access": self.access, "refresh": self.refresh}
