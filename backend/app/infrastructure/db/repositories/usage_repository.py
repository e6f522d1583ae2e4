"""
Usage Repository

The usage ledger: a per-user counter of free-tier invocations.

Increments are a single INSERT ... ON CONFLICT DO UPDATE statement, so
concurrent requests for the same user never lose updates.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.usage_record import UsageRecordModel
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class UsageRepository(BaseRepository[UsageRecordModel]):
    """Repository for the usage ledger."""

    def __init__(self, session: AsyncSession):
        super().__init__(UsageRecordModel, session)

    async def get_by_user_id(self, user_id: str) -> Optional[UsageRecordModel]:
        """Get the usage record for a user, or None if never incremented."""
        # Counts change through Core upserts, so never trust the identity map
        return await self._session.get(UsageRecordModel, user_id, populate_existing=True)

    async def increment(self, user_id: str) -> int:
        """
        Atomically add one use for a user.

        Creates the record with count=1 when absent.

        Args:
            user_id: Owning user

        Returns:
            The new count
        """
        now = utcnow()
        stmt = self._insert().values(
            user_id=user_id,
            count=1,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UsageRecordModel.user_id],
            set_={
                "count": UsageRecordModel.count + 1,
                "updated_at": now,
            },
        ).returning(UsageRecordModel.count)

        result = await self._session.execute(stmt)
        count = result.scalar_one()
        logger.debug(f"Usage for user {user_id} is now {count}")
        return count

    async def reset(self, user_id: str) -> bool:
        """
        Set a user's count back to zero.

        Returns:
            True if a record existed
        """
        stmt = (
            update(UsageRecordModel)
            .where(UsageRecordModel.user_id == user_id)
            .values(count=0, last_reset_at=utcnow(), updated_at=utcnow())
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def reset_all(self) -> int:
        """
        Reset every user's count (periodic job).

        Returns:
            Number of records reset
        """
        now = utcnow()
        stmt = (
            update(UsageRecordModel)
            .where(UsageRecordModel.count > 0)
            .values(count=0, last_reset_at=now, updated_at=now)
        )
        result = await self._session.execute(stmt)
        logger.info(f"Reset usage for {result.rowcount} users")
        return result.rowcount
