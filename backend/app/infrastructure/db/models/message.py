"""
Message SQLModel

Database model for messages within a conversation.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Column, Text, String, ForeignKey, UniqueConstraint
from sqlmodel import Field, SQLModel, Relationship

from app.infrastructure.db.models.base import utcnow

if TYPE_CHECKING:
    from app.infrastructure.db.models.conversation import ConversationModel


class MessageModel(SQLModel, table=True):
    """
    Message database table model.

    Messages are append-only. ``position`` is assigned at insert and is
    the ordering key (timestamps can tie within one request).
    """

    __tablename__ = "messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "position", name="uq_messages_conversation_position"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
    )

    conversation_id: UUID = Field(
        ...,
        sa_column=Column(
            "conversation_id",
            ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        ),
    )

    role: str = Field(
        ...,
        max_length=20,
        sa_column=Column(String(20), nullable=False),
        description="Message role: 'user', 'assistant' or 'system'"
    )

    content: str = Field(
        ...,
        sa_column=Column(Text, nullable=False),
    )

    position: int = Field(default=0, nullable=False)

    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    conversation: Optional["ConversationModel"] = Relationship(back_populates="messages")
