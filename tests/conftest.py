"""
Shared fixtures for passgate-core tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from passgate_core.audit import AuditAction
from passgate_core.config import TokenConfig

ACCESS_SECRET = "access-secret-for-tests-0123456789abcdef"
REFRESH_SECRET = "refresh-secret-for-tests-0123456789abcdef"


class FakeClock:
    """Settable clock; call for a datetime, ``timestamp()`` for Unix seconds."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def timestamp(self) -> float:
        return self.now.timestamp()

    def advance(self, seconds: float = 0, **kwargs) -> None:
        self.now += timedelta(seconds=seconds, **kwargs)


class RecordingAuditSink:
    """Keeps every recorded event for assertions."""

    def __init__(self):
        self.events = []

    def record(self, action, payload, actor_id=None):
        name = action.value if isinstance(action, AuditAction) else action
        self.events.append((name, dict(payload), actor_id))

    def actions(self):
        return [name for name, _, _ in self.events]

    def last(self, action):
        name = action.value if isinstance(action, AuditAction) else action
        for event in reversed(self.events):
            if event[0] == name:
                return event
        return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def token_config():
    return TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)
