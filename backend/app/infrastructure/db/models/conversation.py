"""
Conversation SQLModel

Database model for a user's conversation.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel, Relationship

from app.infrastructure.db.models.base import utcnow

if TYPE_CHECKING:
    from app.infrastructure.db.models.message import MessageModel


class ConversationModel(SQLModel, table=True):
    """
    Conversation database table model.

    ``updated_at`` is bumped every time a message is appended, so it
    doubles as the "last activity" sort key.
    """

    __tablename__ = "conversations"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
        description="Unique conversation identifier"
    )

    user_id: str = Field(
        ...,
        index=True,
        nullable=False,
        max_length=255,
        description="Owning user"
    )

    title: Optional[str] = Field(
        default=None,
        max_length=255,
        sa_column=Column(String(255)),
        description="Derived from the first message"
    )

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        index=True,
        description="Last message timestamp"
    )

    messages: list["MessageModel"] = Relationship(
        back_populates="conversation",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "MessageModel.position",
        }
    )
