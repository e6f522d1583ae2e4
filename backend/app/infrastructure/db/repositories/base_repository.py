"""
Base Repository for SynthAI

Shared plumbing for the async repositories: session access, primary-key
lookup and a dialect-aware INSERT for atomic upserts.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository bound to one table.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    @property
    def dialect_name(self) -> str:
        return self._session.get_bind().dialect.name

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """
        Get a single record by its primary key.

        Args:
            id: Primary key value

        Returns:
            Model instance or None if not found
        """
        return await self._session.get(self._model, id)

    def _insert(self):
        """
        INSERT construct supporting ON CONFLICT for the bound dialect.

        Both PostgreSQL and SQLite expose ``on_conflict_do_update`` /
        ``on_conflict_do_nothing`` and ``excluded``.
        """
        if self.dialect_name == "postgresql":
            return postgresql.insert(self._model)
        if self.dialect_name == "sqlite":
            return sqlite.insert(self._model)
        raise NotImplementedError(
            f"Upserts are not supported on dialect '{self.dialect_name}'"
        )
