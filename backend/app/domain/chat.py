"""
Chat Domain Models for SynthAI

Pure Python/Pydantic models for conversation entities.
"""

from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.domain.subscription import UtcDatetime


class MessageRole(str, Enum):
    """Role of the message sender."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatTurn(BaseModel):
    """One prior message handed to the LLM as context."""
    role: MessageRole
    content: str


class Message(BaseModel):
    """Complete chat message entity."""
    id: UUID
    conversation_id: UUID
    role: MessageRole
    content: str
    position: int
    created_at: UtcDatetime

    model_config = ConfigDict(from_attributes=True)


class Conversation(BaseModel):
    """Conversation with its messages in creation order."""
    id: UUID
    user_id: str
    title: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
    messages: List[Message] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def preview(self) -> Optional[str]:
        """Content of the most recent message."""
        if not self.messages:
            return None
        return self.messages[-1].content
