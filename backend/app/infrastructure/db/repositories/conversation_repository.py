"""
Conversation Repository for SynthAI

Repository for Conversation and Message persistence.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.conversation import ConversationModel
from app.infrastructure.db.models.message import MessageModel
from app.infrastructure.db.repositories.base_repository import BaseRepository


class ConversationRepository(BaseRepository[ConversationModel]):
    """
    Repository for conversation-related database operations.

    Manages both ConversationModel and MessageModel entities.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(ConversationModel, session)

    # =========================================================================
    # Conversation Operations
    # =========================================================================

    async def list_for_user(self, user_id: str) -> List[ConversationModel]:
        """
        Get every conversation a user owns, most recently updated first.

        Messages are loaded in position order via the relationship.
        """
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.user_id == user_id)
            .options(selectinload(ConversationModel.messages))
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_with_messages(
        self,
        conversation_id: UUID
    ) -> Optional[ConversationModel]:
        """
        Get a conversation with all its messages eagerly loaded.

        Args:
            conversation_id: The conversation's UUID

        Returns:
            ConversationModel with messages or None
        """
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .options(selectinload(ConversationModel.messages))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self,
        user_id: str,
        title: Optional[str] = None
    ) -> ConversationModel:
        """Create a new, empty conversation."""
        conversation = ConversationModel(user_id=user_id, title=title)
        self._session.add(conversation)
        await self._session.flush()
        await self._session.refresh(conversation)
        return conversation

    async def touch(self, conversation_id: UUID) -> None:
        """Bump a conversation's updated_at timestamp."""
        conversation = await self.get_by_id(conversation_id)
        if conversation:
            conversation.updated_at = utcnow()
            self._session.add(conversation)
            await self._session.flush()

    # =========================================================================
    # Message Operations
    # =========================================================================

    async def next_position(self, conversation_id: UUID) -> int:
        """Position the next appended message will take."""
        stmt = (
            select(func.coalesce(func.max(MessageModel.position), -1) + 1)
            .where(MessageModel.conversation_id == conversation_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def add_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        position: int,
    ) -> MessageModel:
        """
        Append a message to a conversation and bump its timestamp.

        Args:
            conversation_id: The conversation's UUID
            role: 'user', 'assistant' or 'system'
            content: Message content
            position: Ordinal within the conversation

        Returns:
            Created MessageModel instance
        """
        message = MessageModel(
            conversation_id=conversation_id,
            role=role,
            content=content,
            position=position,
        )
        self._session.add(message)
        await self._session.flush()
        await self._session.refresh(message)

        await self.touch(conversation_id)
        return message
