"""
Subscription Domain Models

Enums and domain entities for the subscription bounded context.
Status transitions come only from billing-provider webhooks or
confirmations, never from direct user action.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"
    PAST_DUE = "PAST_DUE"


class BillingProvider(str, Enum):
    """Supported billing providers."""
    STRIPE = "stripe"
    PAYPAL = "paypal"


class PayPalPlan(str, Enum):
    """PayPal billing plans offered at checkout."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC; naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Databases without timezone support hand back naive UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# PayPal subscription status -> our status
PAYPAL_STATUS_MAP = {
    "APPROVAL_PENDING": SubscriptionStatus.PENDING,
    "APPROVED": SubscriptionStatus.PENDING,
    "ACTIVE": SubscriptionStatus.ACTIVE,
    "SUSPENDED": SubscriptionStatus.PAST_DUE,
    "CANCELLED": SubscriptionStatus.CANCELED,
    "EXPIRED": SubscriptionStatus.CANCELED,
}

# Stripe subscription status -> our status
STRIPE_STATUS_MAP = {
    "incomplete": SubscriptionStatus.PENDING,
    "trialing": SubscriptionStatus.ACTIVE,
    "active": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}


class Subscription(BaseModel):
    """Core subscription domain entity."""
    id: Optional[str] = None
    user_id: str
    provider: BillingProvider = BillingProvider.PAYPAL
    provider_customer_id: Optional[str] = None
    provider_subscription_id: Optional[str] = None
    plan_id: Optional[str] = None
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    current_period_end: Optional[UtcDatetime] = None
    cancel_at_period_end: bool = False
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    model_config = ConfigDict(from_attributes=True)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """
        Whether this subscription currently grants paid access.

        ACTIVE with no period end counts as active until a provider
        event says otherwise.
        """
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        if self.current_period_end is None:
            return True
        now = as_utc(now) or datetime.now(timezone.utc)
        return as_utc(self.current_period_end) > now


