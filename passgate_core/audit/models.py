"""
Audit Models
=============
Audit log entries as they leave the logger.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditEvent:
    """
    One hash-chained audit entry.

    ``sequence`` numbers events within a chain starting at 1; ``hash`` covers
    every other field plus ``previous_hash``. The payload is masked before the
    event is built.
    """
    id: str
    sequence: int
    timestamp: datetime
    service: str
    action: str
    hash: str
    actor_id: Optional[str] = None
    previous_hash: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "service": self.service,
            "action": self.action,
            "actor_id": self.actor_id,
            "payload": dict(self.payload),
            "hash": self.hash,
            "previous_hash": self.previous_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEvent":
        """Rebuild an event read back from storage, e.g. to re-verify a chain."""
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            id=data["id"],
            sequence=int(data["sequence"]),
            timestamp=timestamp,
            service=data["service"],
            action=data["action"],
            hash=data["hash"],
            actor_id=data.get("actor_id"),
            previous_hash=data.get("previous_hash"),
            payload=dict(data.get("payload") or {}),
        )
