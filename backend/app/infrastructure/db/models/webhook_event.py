"""
ProcessedWebhookEvent Database Model

Records billing-provider webhook event ids that were already handled.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from app.infrastructure.db.models.base import utcnow


class ProcessedWebhookEventModel(SQLModel, table=True):
    """Maps to the 'processed_webhook_events' table."""

    __tablename__ = "processed_webhook_events"

    event_id: str = Field(primary_key=True, max_length=255)
    provider: str = Field(max_length=20)
    event_type: Optional[str] = Field(default=None, max_length=100)
    processed_at: datetime = Field(default_factory=utcnow, nullable=False)
