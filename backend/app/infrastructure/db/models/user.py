"""
User Database Model

Local mirror of the auth provider's user, keyed by the provider's
subject id so billing and usage rows can be joined to it.
"""

from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin


class UserModel(TimestampMixin, table=True):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: str = Field(
        primary_key=True,
        max_length=255,
        description="Auth provider subject id"
    )
    email: Optional[str] = Field(default=None, max_length=320, index=True)
    name: Optional[str] = Field(default=None, max_length=255)
