"""
Database Module
===============
Async SQLAlchemy engine and sessions for the SQL-backed stores.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for passgate tables."""


class Database:
    """
    Owns one async engine and the session factory bound to it.

    Create it once at startup with :meth:`from_url`, hand
    :attr:`session_factory` to the SQL stores and :meth:`dispose` on shutdown.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    @classmethod
    def from_url(
        cls,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        echo: bool = False,
    ) -> "Database":
        """
        Args:
            url: Async connection string, e.g. ``postgresql+asyncpg://...`` or
                ``sqlite+aiosqlite:///otp.db``
            pool_size: Pool size; SQLite uses its own pool and ignores it
            max_overflow: Extra connections beyond the pool; ignored for SQLite
            echo: Log every SQL statement
        """
        options = {"pool_pre_ping": True, "echo": echo}
        if not url.startswith("sqlite"):
            options["pool_size"] = pool_size
            options["max_overflow"] = max_overflow

        engine = create_async_engine(url, **options)
        logger.info("Database engine created", dialect=engine.dialect.name)
        return cls(engine)

    @property
    def session_factory(self) -> async_sessionmaker:
        return self._sessions

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session that commits on exit and rolls back on error."""
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create every passgate table; production schemas belong to migrations."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
