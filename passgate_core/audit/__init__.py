"""
Audit Module
============
Masked, hash-chained audit events for verification and token operations.
"""

from .event_types import AuditAction
from .models import AuditEvent
from .hashing import compute_event_hash, hash_event, verify_chain_integrity
from .masking import mask_value, SENSITIVE_KEYS
from .logger import AuditLogger
from .sink import AuditSink, NullAuditSink, safe_record

__all__ = [
    "AuditAction",
    "AuditEvent",
    "compute_event_hash",
    "hash_event",
    "verify_chain_integrity",
    "mask_value",
    "SENSITIVE_KEYS",
    "AuditLogger",
    "AuditSink",
    "NullAuditSink",
    "safe_record",
]
