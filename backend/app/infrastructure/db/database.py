"""
Database Configuration for SynthAI

Async SQLAlchemy engine and session management.

A DatabaseManager is built explicitly from Settings, owned by the
FastAPI application (``app.state.db``) and disposed in the lifespan
handler. Nothing here is process-global.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from app.config.settings import Settings

# Register every table on SQLModel.metadata
import app.infrastructure.db.models  # noqa: F401


logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Owns one async engine and its session factory.

    Args:
        settings: Application settings (database URL, pool sizing, echo)
    """

    def __init__(self, settings: Settings):
        self._url = settings.async_database_url
        self._engine: AsyncEngine = create_async_engine(
            self._url,
            **self._engine_options(settings),
        )
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    def _engine_options(self, settings: Settings) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": settings.database_echo}
        if self.is_sqlite:
            # Writers wait on the file lock instead of failing immediately
            options["connect_args"] = {"timeout": 30}
            return options
        options.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_pre_ping=True,
        )
        return options

    @property
    def is_sqlite(self) -> bool:
        return self._url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session that commits on success and rolls back on error.

        Usage:
            async with db.session_scope() as session:
                result = await session.execute(query)
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def connect(self) -> None:
        """Verify the database is reachable (called on app startup)."""
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
        logger.info("Database connection verified")

    async def create_tables(self) -> None:
        """Create all tables from SQLModel metadata."""
        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self._engine.dispose()
        logger.info("Database connections closed")


def get_db_manager(request: Request) -> DatabaseManager:
    """Return the DatabaseManager owned by the running application."""
    return request.app.state.db


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for async database sessions.

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with get_db_manager(request).session_scope() as session:
        yield session
