"""Database engine management.

This module provides the DbEngine class for managing async SQLAlchemy
connections to the conversation database (SQLite via aiosqlite by default).
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import sqlalchemy as sa
import tenacity
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)


@dataclass
class DbEngine:
    """Async database engine owned by the stores of one process.

    Attributes:
        url: SQLAlchemy async URL (e.g., "sqlite+aiosqlite:///glove.db")
        instance_name: Name used in log and error messages
        echo: Log every SQL statement
    """

    url: str
    instance_name: str = "Primary"
    echo: bool = False
    _engine: AsyncEngine | None = field(init=False, default=None)

    @tenacity.retry(
        wait=tenacity.wait_fixed(2),
        stop=(tenacity.stop_after_attempt(3) | tenacity.stop_after_delay(10)),
        retry=tenacity.retry_if_not_exception_type((RuntimeError, sa.exc.ArgumentError)),
        reraise=True,
    )
    async def connect(self, metadata: sa.MetaData | None = None) -> AsyncEngine:
        """Create the engine, verify connectivity and create missing tables.

        Args:
            metadata: Tables to create if they do not exist yet

        Returns:
            The connected engine
        """
        if self._engine is not None:
            return self._engine

        engine = create_async_engine(self.url, echo=self.echo)
        try:
            async with engine.begin() as conn:
                if metadata is not None:
                    await conn.run_sync(metadata.create_all)
        except Exception:
            await engine.dispose()
            raise

        self._engine = engine
        logger.info("Database '%s' connected", self.instance_name)
        return engine

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

        logger.info("Database '%s' disconnected", self.instance_name)

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(f"{self.instance_name} database is not connected")
        return self._engine

    def is_connected(self) -> bool:
        """Check if the database is currently connected."""
        return self._engine is not None

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        return async_sessionmaker(self.get_engine(), expire_on_commit=False)

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        session_maker = self.get_session_maker()
        async with session_maker() as db_session:
            try:
                yield db_session
                await db_session.commit()
            except Exception:
                await db_session.rollback()
                raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        engine = self.get_engine()
        async with engine.begin() as conn:
            yield conn
