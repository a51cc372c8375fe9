"""
Verification Code Store
=======================
Persistence contract for code records, plus an in-memory implementation.
"""

import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from .models import VerificationCode


class VerificationCodeStore(ABC):
    """Persistence for VerificationCode records."""

    @abstractmethod
    async def create(self, record: VerificationCode) -> None:
        """Persist a new record."""

    @abstractmethod
    async def find_latest_valid(self, target: str, now: datetime) -> Optional[VerificationCode]:
        """Most recently created record for ``target`` with ``expires_at > now``."""

    @abstractmethod
    async def increment_attempts(self, record_id: str) -> Optional[int]:
        """
        Atomically add one attempt.

        Returns:
            The new attempt count, or None if the record no longer exists
        """

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Delete a record. True only for the caller that actually removed it."""

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Delete records with ``expires_at <= now``; returns how many."""


class InMemoryVerificationCodeStore(VerificationCodeStore):
    """Lock-protected dict store for single-process use and tests."""

    def __init__(self):
        self._records: Dict[str, VerificationCode] = {}
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    async def create(self, record: VerificationCode) -> None:
        with self._lock:
            self._records[record.id] = record
            self._sequence[record.id] = next(self._counter)

    async def find_latest_valid(self, target: str, now: datetime) -> Optional[VerificationCode]:
        with self._lock:
            candidates = [
                r for r in self._records.values()
                if r.target == target and not r.is_expired(now)
            ]
            if not candidates:
                return None
            latest = max(candidates, key=lambda r: (r.created_at, self._sequence[r.id]))
            # Copy so callers never mutate stored state outside the lock
            return VerificationCode(**{**latest.__dict__, "meta": dict(latest.meta)})

    async def increment_attempts(self, record_id: str) -> Optional[int]:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return None
            record.attempts += 1
            return record.attempts

    async def delete(self, record_id: str) -> bool:
        with self._lock:
            self._sequence.pop(record_id, None)
            return self._records.pop(record_id, None) is not None

    async def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [rid for rid, r in self._records.items() if r.is_expired(now)]
            for rid in expired:
                del self._records[rid]
                del self._sequence[rid]
        return len(expired)

    def get(self, record_id: str) -> Optional[VerificationCode]:
        """Direct lookup, including expired records."""
        with self._lock:
            return self._records.get(record_id)

    def __len__(self) -> int:
        return len(self._records)
