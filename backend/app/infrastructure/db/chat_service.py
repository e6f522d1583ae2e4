"""
Conversation Service for SynthAI

Business logic layer for conversation history.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.chat import ChatTurn, Conversation, MessageRole
from app.infrastructure.db.repositories.conversation_repository import (
    ConversationRepository,
)
from app.infrastructure.exceptions import NotFoundError


class ConversationService:
    """
    Service for conversation business logic.

    Implements:
    - Ownership checks on every lookup
    - Auto-generated titles from the first message
    - Append-only message positions
    """

    TITLE_MAX_LENGTH = 100

    def __init__(self, session: AsyncSession):
        self._repository = ConversationRepository(session)

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        """Conversations for a user, newest activity first, messages oldest first."""
        models = await self._repository.list_for_user(user_id)
        return [Conversation.model_validate(model) for model in models]

    async def get_conversation(
        self,
        user_id: str,
        conversation_id: UUID
    ) -> Conversation:
        """
        Get one of the user's conversations.

        Raises:
            NotFoundError: Missing, or owned by someone else
        """
        model = await self._repository.get_with_messages(conversation_id)
        if model is None or model.user_id != user_id:
            raise NotFoundError(
                "Conversation not found",
                details={"conversation_id": str(conversation_id)}
            )
        return Conversation.model_validate(model)

    async def get_history(
        self,
        user_id: str,
        conversation_id: Optional[UUID]
    ) -> List[ChatTurn]:
        """Prior turns handed to the LLM; empty for a new conversation."""
        if conversation_id is None:
            return []
        conversation = await self.get_conversation(user_id, conversation_id)
        return [
            ChatTurn(role=message.role, content=message.content)
            for message in conversation.messages
        ]

    async def record_exchange(
        self,
        user_id: str,
        conversation_id: Optional[UUID],
        prompt: str,
        response: str,
    ) -> Conversation:
        """
        Append a user prompt and the assistant reply.

        Starts a new conversation (titled from the prompt) when
        ``conversation_id`` is None.
        """
        if conversation_id is None:
            model = await self._repository.create(
                user_id=user_id,
                title=self._generate_title(prompt),
            )
            conversation_id = model.id
        else:
            await self.get_conversation(user_id, conversation_id)

        position = await self._repository.next_position(conversation_id)
        await self._repository.add_message(
            conversation_id, MessageRole.USER.value, prompt, position
        )
        await self._repository.add_message(
            conversation_id, MessageRole.ASSISTANT.value, response, position + 1
        )
        return await self.get_conversation(user_id, conversation_id)

    def _generate_title(self, content: str) -> str:
        """
        Generate a conversation title from message content.

        Args:
            content: First user message content

        Returns:
            Truncated title
        """
        title = " ".join(content.split())

        if len(title) > self.TITLE_MAX_LENGTH:
            title = title[:self.TITLE_MAX_LENGTH - 3] + "..."

        return title
