"""
UsageRecord Database Model

Per-user counter of free-tier invocations.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin


class UsageRecordModel(TimestampMixin, table=True):
    """
    Maps to the 'usage_records' table.

    ``user_id`` is the primary key so the ledger upsert can target it
    with ON CONFLICT.
    """

    __tablename__ = "usage_records"

    user_id: str = Field(primary_key=True, max_length=255)
    count: int = Field(default=0, nullable=False)
    last_reset_at: Optional[datetime] = Field(default=None)
