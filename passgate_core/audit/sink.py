"""
Audit Sink
==========
Collaborator interface the engines record audit events through.
"""

from typing import Any, Dict, Optional, Protocol, Union, runtime_checkable

import structlog

from .event_types import AuditAction

logger = structlog.get_logger(__name__)


@runtime_checkable
class AuditSink(Protocol):
    """Fire-and-forget audit recorder."""

    def record(
        self,
        action: Union[AuditAction, str],
        payload: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> None:
        ...


class NullAuditSink:
    """Discards every event."""

    def record(self, action, payload, actor_id=None) -> None:
        return None


def safe_record(
    sink: AuditSink,
    action: Union[AuditAction, str],
    payload: Dict[str, Any],
    actor_id: Optional[str] = None,
) -> None:
    """Record an event; a failing sink is logged and never breaks the caller."""
    try:
        sink.record(action, payload, actor_id)
    except Exception as e:
        action_name = action.value if isinstance(action, AuditAction) else action
        logger.error("Audit sink failed", action=action_name, error=str(e))
