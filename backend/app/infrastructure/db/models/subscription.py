"""
Subscription Database Model

SQLModel table for subscription data persistence.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from app.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class SubscriptionModel(UUIDMixin, TimestampMixin, table=True):
    """
    Subscription table for storing user subscription data.

    One row per user. Rows are never deleted; cancellation only
    changes ``status``.
    """

    __tablename__ = "subscriptions"

    user_id: str = Field(unique=True, index=True, nullable=False, max_length=255)

    # Billing provider IDs
    provider: str = Field(default="paypal", max_length=20)
    provider_customer_id: Optional[str] = Field(default=None, index=True, max_length=255)
    provider_subscription_id: Optional[str] = Field(
        default=None, unique=True, index=True, max_length=255
    )
    plan_id: Optional[str] = Field(default=None, max_length=255)

    # Subscription state
    status: str = Field(default="PENDING", max_length=20)
    current_period_end: Optional[datetime] = Field(default=None)
    cancel_at_period_end: bool = Field(default=False)
