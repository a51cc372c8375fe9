"""
SQL Verification Code Store
===========================
SQLAlchemy-backed store for the ``otp_codes`` table.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from ..channels.models import Channel
from ..database import Base
from .models import VerificationCode
from .store import VerificationCodeStore


class OtpCodeRow(Base):
    """Row for one issued verification code."""

    __tablename__ = "otp_codes"
    __table_args__ = (
        Index("idx_otp_codes_target_created", "target", "created_at"),
        Index("idx_otp_codes_expires_at", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    target: Mapped[str] = mapped_column(String(64), nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_model(row: OtpCodeRow) -> VerificationCode:
    return VerificationCode(
        id=row.id,
        channel=Channel(row.channel),
        target=row.target,
        code=row.code,
        expires_at=_aware(row.expires_at),
        created_at=_aware(row.created_at),
        attempts=row.attempts,
        meta=dict(row.meta or {}),
    )


class SQLVerificationCodeStore(VerificationCodeStore):
    """
    Store backed by any SQLAlchemy async dialect.

    Attempt increments are a single ``UPDATE ... RETURNING`` so concurrent
    verifications cannot both read a stale count.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create(self, record: VerificationCode) -> None:
        async with self._session_factory() as session:
            session.add(OtpCodeRow(
                id=record.id,
                channel=Channel(record.channel).value,
                target=record.target,
                code=record.code,
                expires_at=record.expires_at,
                attempts=record.attempts,
                meta=dict(record.meta),
                created_at=record.created_at,
            ))
            await session.commit()

    async def find_latest_valid(self, target: str, now: datetime) -> Optional[VerificationCode]:
        stmt = (
            select(OtpCodeRow)
            .where(OtpCodeRow.target == target, OtpCodeRow.expires_at > now)
            .order_by(OtpCodeRow.created_at.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _to_model(row) if row is not None else None

    async def increment_attempts(self, record_id: str) -> Optional[int]:
        stmt = (
            update(OtpCodeRow)
            .where(OtpCodeRow.id == record_id)
            .values(attempts=OtpCodeRow.attempts + 1)
            .returning(OtpCodeRow.attempts)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            attempts = (await session.execute(stmt)).scalar_one_or_none()
            await session.commit()
            return attempts

    async def delete(self, record_id: str) -> bool:
        async with self._session_factory() as session:
            stmt = delete(OtpCodeRow).where(OtpCodeRow.id == record_id)
            result = await session.execute(stmt.execution_options(synchronize_session=False))
            await session.commit()
            return result.rowcount == 1

    async def purge_expired(self, now: datetime) -> int:
        async with self._session_factory() as session:
            stmt = delete(OtpCodeRow).where(OtpCodeRow.expires_at <= now)
            result = await session.execute(stmt.execution_options(synchronize_session=False))
            await session.commit()
            return result.rowcount
