"""Async database handle: engine, session factory and schema management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from workflow_dashboard.storage.models import Base

logger = structlog.get_logger(__name__)


class Database:
    """Owns the async engine and hands out transactional sessions.

    Constructed once by the composition root and passed to every
    collaborator that needs persistence.

    Args:
        url: SQLAlchemy async URL (``sqlite+aiosqlite://...``,
            ``postgresql+asyncpg://...``).
        echo: Log every SQL statement.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self._engine: AsyncEngine = create_async_engine(url, echo=echo)
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False, class_=AsyncSession
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def connect(self) -> None:
        """Open one connection to fail fast on a bad URL."""
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        await logger.ainfo("database_connected", backend=self._engine.dialect.name)

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        await self._engine.dispose()
        await logger.ainfo("database_disconnected")

    async def health_check(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            await logger.awarning("database_health_check_failed", error=str(exc))
            return False

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    def __repr__(self) -> str:
        return f"<Database backend={self._engine.dialect.name}>"
