"""
User Repository

Keeps the local users table in step with the auth provider.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.access import Identity
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.user import UserModel
from app.infrastructure.db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[UserModel]):
    """Repository for mirrored user records."""

    def __init__(self, session: AsyncSession):
        super().__init__(UserModel, session)

    async def ensure(self, identity: Identity) -> None:
        """
        Insert the user on first sight, otherwise refresh profile fields.

        Profile fields missing from the token never overwrite stored ones.
        """
        now = utcnow()
        stmt = self._insert().values(
            id=identity.user_id,
            email=identity.email,
            name=identity.name,
            created_at=now,
            updated_at=now,
        )
        profile = {}
        if identity.email is not None:
            profile["email"] = stmt.excluded.email
        if identity.name is not None:
            profile["name"] = stmt.excluded.name

        if profile:
            profile["updated_at"] = now
            stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=profile)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["id"])
        await self._session.execute(stmt)

    async def get(self, user_id: str) -> Optional[UserModel]:
        return await self.get_by_id(user_id)
