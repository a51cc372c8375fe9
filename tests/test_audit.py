"""
Tests for audit masking, hash chaining and the sink guard.
"""

from passgate_core.audit import (
    AuditAction,
    AuditEvent,
    AuditLogger,
    AuditSink,
    NullAuditSink,
    mask_value,
    safe_record,
    verify_chain_integrity,
)
from passgate_core.audit.masking import MASKED


class TestMasking:
    """Tests for payload masking."""

    def test_sensitive_keys_replaced(self):
        masked = mask_value({"phone": "+998901234567", "code": "1234", "channel": "sms"})

        assert masked["phone"] == MASKED
        assert masked["code"] == MASKED
        assert masked["channel"] == "sms"

    def test_nested_values(self):
        masked = mask_value({"user": {"Email": "john@example.com", "note": "+998901234567"}})

        assert masked["user"]["Email"] == MASKED
        assert masked["user"]["note"] == "+998**...67"

    def test_email_strings(self):
        assert mask_value("john@example.com") == "j**n@example.com"
        assert mask_value("jo@example.com") == "***@example.com"

    def test_lists(self):
        assert mask_value(["+998901234567", 5]) == ["+998**...67", 5]


class TestAuditLogger:
    """Tests for the in-process audit logger."""

    def test_implements_sink(self):
        assert isinstance(AuditLogger("auth"), AuditSink)
        assert isinstance(NullAuditSink(), AuditSink)

    def test_record_masks_and_chains(self):
        audit = AuditLogger("auth")

        first = audit.record(AuditAction.OTP_SEND, {"phone": "+998901234567", "sent": True})
        second = audit.record("auth.logout", {"jti": "abc"}, actor_id="u1")

        assert first.payload["phone"] == MASKED
        assert first.action == "auth.otp.send"
        assert first.previous_hash is None
        assert second.previous_hash == first.hash
        assert second.actor_id == "u1"

    def test_chain_integrity(self):
        audit = AuditLogger("auth")
        for i in range(3):
            audit.record(AuditAction.TOKEN_ISSUE, {"n": i})
        events = audit.flush()

        assert verify_chain_integrity(events) == (True, None)

        events[1].payload["n"] = 99
        assert verify_chain_integrity(events) == (False, 1)

    def test_dropped_event_breaks_chain(self):
        audit = AuditLogger("auth")
        for i in range(3):
            audit.record(AuditAction.TOKEN_ISSUE, {"n": i})
        events = audit.flush()

        assert verify_chain_integrity([events[0], events[2]]) == (False, 1)

    def test_resume_chain(self):
        audit = AuditLogger("auth")
        audit.set_previous_hash("f" * 64, sequence=41)

        event = audit.record(AuditAction.LOGOUT, {})

        assert event.previous_hash == "f" * 64
        assert event.sequence == 42
        assert audit.head == event.hash

    def test_sequence_gap_breaks_chain(self):
        audit = AuditLogger("auth")
        first = audit.record(AuditAction.OTP_SEND, {})
        audit.set_previous_hash(first.hash, sequence=5)
        second = audit.record(AuditAction.OTP_VERIFY, {})

        assert verify_chain_integrity([first, second]) == (False, 1)

    def test_uses_injected_clock(self, clock):
        event = AuditLogger("auth", clock=clock).record(AuditAction.LOGOUT, {})

        assert event.timestamp == clock()

    def test_flush_clears_buffer(self):
        audit = AuditLogger("auth")
        audit.record(AuditAction.LOGOUT, {})

        assert len(audit.flush()) == 1
        assert audit.flush() == []

    def test_buffer_overflow_drops_oldest(self):
        audit = AuditLogger("auth", max_buffer=2)
        for i in range(3):
            audit.record(AuditAction.TOKEN_ISSUE, {"n": i})

        events = audit.flush()

        assert [e.payload["n"] for e in events] == [1, 2]

    def test_to_dict(self):
        event = AuditLogger("auth").record(AuditAction.LOGOUT, {"jti": "abc"})

        data = event.to_dict()

        assert data["action"] == "auth.logout"
        assert data["sequence"] == 1
        assert isinstance(data["timestamp"], str)

    def test_from_dict_reverifies(self):
        audit = AuditLogger("auth")
        for i in range(2):
            audit.record(AuditAction.TOKEN_ISSUE, {"n": i})
        stored = [event.to_dict() for event in audit.flush()]

        events = [AuditEvent.from_dict(data) for data in stored]

        assert verify_chain_integrity(events) == (True, None)
        assert events[1].previous_hash == events[0].hash


class TestSafeRecord:
    """Tests for the sink guard."""

    def test_failing_sink_is_swallowed(self):
        class BrokenSink:
            def record(self, action, payload, actor_id=None):
                raise RuntimeError("disk full")

        safe_record(BrokenSink(), AuditAction.OTP_SEND, {"sent": True})

    def test_forwards_to_sink(self, audit_sink):
        safe_record(audit_sink, AuditAction.OTP_VERIFY, {"record_id": "r1"}, actor_id="u1")

        assert audit_sink.events == [("auth.otp.verify", {"record_id": "r1"}, "u1")]
