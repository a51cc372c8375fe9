"""
Audit Hashing
=============
SHA-256 chaining of audit events and chain verification.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

import structlog

from .models import AuditEvent

logger = structlog.get_logger(__name__)


def compute_event_hash(
    previous_hash: Optional[str],
    sequence: int,
    timestamp: datetime,
    service: str,
    action: str,
    actor_id: Optional[str],
    payload: Dict[str, Any],
) -> str:
    """
    Hash one event together with the hash of the event before it.

    The canonical form is compact JSON with sorted keys, so the digest does
    not depend on dict ordering. Editing, reordering or dropping an event
    changes every digest after it.
    """
    canonical = json.dumps(
        [previous_hash, sequence, timestamp.isoformat(), service, action, actor_id, payload],
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_event(event: AuditEvent) -> str:
    """Recompute the digest an event should carry."""
    return compute_event_hash(
        event.previous_hash,
        event.sequence,
        event.timestamp,
        event.service,
        event.action,
        event.actor_id,
        event.payload,
    )


def verify_chain_integrity(events: Iterable[AuditEvent]) -> Tuple[bool, Optional[int]]:
    """
    Check a run of consecutive events, oldest first.

    The first event is trusted as the anchor of the run; every later one must
    link to its predecessor's hash and carry the next sequence number.

    Returns:
        (True, None) when intact, otherwise (False, index of the first bad event)
    """
    prev: Optional[AuditEvent] = None
    for index, event in enumerate(events):
        if prev is not None:
            if event.previous_hash != prev.hash or event.sequence != prev.sequence + 1:
                logger.warning("Audit chain link broken", event_id=event.id, index=index)
                return False, index

        if hash_event(event) != event.hash:
            logger.warning("Audit event hash mismatch", event_id=event.id, index=index)
            return False, index
        prev = event

    return True, None
