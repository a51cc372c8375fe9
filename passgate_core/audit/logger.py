"""
Audit Logger
=============
In-process audit sink with payload masking and hash chain support.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import structlog

from .event_types import AuditAction
from .hashing import compute_event_hash
from .masking import mask_value
from .models import AuditEvent

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLogger:
    """
    Buffers masked, hash-chained audit events.

    Implements the AuditSink protocol. Embedding services drain the buffer
    with :meth:`flush` and persist the events wherever they keep audit logs.
    """

    def __init__(
        self,
        service_name: str,
        max_buffer: int = 10000,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.service_name = service_name
        self.max_buffer = max_buffer
        self._clock = clock
        self._head: Optional[str] = None
        self._sequence = 0
        self._pending: List[AuditEvent] = []
        self._lock = threading.Lock()

    @property
    def head(self) -> Optional[str]:
        """Hash of the most recent event in the chain."""
        return self._head

    def set_previous_hash(self, hash_value: str, sequence: int = 0) -> None:
        """
        Continue an existing chain, typically from the last persisted event.

        Args:
            hash_value: Hash of the last persisted event
            sequence: Sequence number of that event
        """
        with self._lock:
            self._head = hash_value
            self._sequence = sequence

    def record(
        self,
        action: Union[AuditAction, str],
        payload: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        """
        Append an event to the chain.

        Args:
            action: Action name
            payload: Event data; sensitive fields are masked before hashing
            actor_id: Identity responsible for the action, if known
        """
        name = action.value if isinstance(action, AuditAction) else str(action)
        masked = mask_value(dict(payload or {}))
        when = self._clock()

        with self._lock:
            sequence = self._sequence + 1
            digest = compute_event_hash(
                self._head, sequence, when, self.service_name, name, actor_id, masked,
            )
            event = AuditEvent(
                id=uuid.uuid4().hex,
                sequence=sequence,
                timestamp=when,
                service=self.service_name,
                action=name,
                hash=digest,
                actor_id=actor_id,
                previous_hash=self._head,
                payload=masked,
            )
            self._head = digest
            self._sequence = sequence

            self._pending.append(event)
            overflow = len(self._pending) - self.max_buffer
            if overflow > 0:
                del self._pending[:overflow]

        if overflow > 0:
            logger.warning("Audit buffer full, oldest events dropped", dropped=overflow)
        logger.info("Audit event recorded", event_id=event.id, action=name, sequence=sequence)
        return event

    def flush(self) -> List[AuditEvent]:
        """Return buffered events and empty the buffer."""
        with self._lock:
            events, self._pending = self._pending, []
        return events
