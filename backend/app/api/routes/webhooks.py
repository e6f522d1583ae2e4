"""
Stripe Billing Routes

Hosted Checkout for the pro plan and the Stripe webhook that drives the
subscription lifecycle. Event processing is idempotent, backed by the
processed_webhook_events table.

Handled events:
- checkout.session.completed: Activate subscription after payment
- invoice.payment_succeeded: Keep subscription active on renewal
- invoice.payment_failed: Mark subscription past due
- customer.subscription.updated: Sync status and period end
- customer.subscription.deleted: Mark subscription canceled
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from app.api.dependencies import (
    IdentityDep,
    StripeServiceDep,
    SubscriptionRepoDep,
    UserRepoDep,
    WebhookEventRepoDep,
)
from app.api.schemas import RedirectResponse, WebhookAck
from app.domain.access import Identity
from app.domain.subscription import (
    STRIPE_STATUS_MAP,
    BillingProvider,
    Subscription,
    SubscriptionStatus,
)
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.exceptions import ValidationError


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Checkout
# =============================================================================

@router.post("/stripe/checkout", response_model=RedirectResponse)
async def create_checkout_session(
    identity: IdentityDep,
    stripe_service: StripeServiceDep,
    repo: SubscriptionRepoDep,
):
    """Create a Stripe Checkout session and return its URL."""
    existing = await repo.get_by_user_id(identity.user_id)
    if existing is not None and existing.is_active():
        raise ValidationError("You already have an active subscription")

    existing_customer_id = None
    if existing is not None and existing.provider == BillingProvider.STRIPE:
        existing_customer_id = existing.provider_customer_id

    customer_id = await stripe_service.get_or_create_customer(
        identity.user_id,
        identity.email,
        existing_customer_id=existing_customer_id,
    )
    url = await stripe_service.create_checkout_session(customer_id, identity.user_id)
    return RedirectResponse(url=url)


# =============================================================================
# Webhook Endpoint
# =============================================================================

@router.post("/webhooks/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_service: StripeServiceDep,
    repo: SubscriptionRepoDep,
    users: UserRepoDep,
    events: WebhookEventRepoDep,
):
    """
    Handle Stripe webhook events.

    Verifies the signature and processes subscription lifecycle events.
    A failure while applying an event returns 500 and leaves the event
    unmarked, so Stripe's retry applies it later.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise ValidationError("Missing Stripe signature")

    event = stripe_service.verify_webhook_signature(payload, signature)

    event_id = event.get("id")
    event_type = event.get("type")
    data = (event.get("data") or {}).get("object") or {}

    if await events.is_processed(event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return WebhookAck(status="already_processed")

    logger.info(f"Processing webhook event: {event_type} ({event_id})")

    if event_type == "checkout.session.completed":
        await handle_checkout_completed(data, repo, users)

    elif event_type == "invoice.payment_succeeded":
        await handle_invoice_payment_succeeded(data, repo)

    elif event_type == "invoice.payment_failed":
        await handle_invoice_payment_failed(data, repo)

    elif event_type == "customer.subscription.updated":
        await handle_subscription_updated(data, repo)

    elif event_type == "customer.subscription.deleted":
        await handle_subscription_deleted(data, repo)

    else:
        logger.debug(f"Unhandled event type: {event_type}")

    await events.mark_processed(event_id, "stripe", event_type)
    return WebhookAck(status="success")


# =============================================================================
# Event Handlers
# =============================================================================

def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _period_end(subscription_data: Dict[str, Any]) -> Optional[datetime]:
    """current_period_end lives on the subscription or, in newer API versions, its items."""
    period_end = subscription_data.get("current_period_end")
    if not period_end:
        items = (subscription_data.get("items") or {}).get("data") or []
        if items:
            period_end = items[0].get("current_period_end")
    return _from_timestamp(period_end)


async def _find_by_customer(
    repo: SubscriptionRepository,
    customer_id: Optional[str],
) -> Optional[Subscription]:
    if not customer_id:
        return None
    subscription = await repo.get_by_provider_customer_id(customer_id)
    if subscription is None:
        logger.warning(f"No subscription found for Stripe customer {customer_id}")
    return subscription


async def handle_checkout_completed(
    session: dict,
    repo: SubscriptionRepository,
    users: UserRepository,
):
    """
    Handle successful checkout session completion.

    Activates the subscription for the user in the session metadata.
    """
    metadata = session.get("metadata") or {}
    user_id = metadata.get("user_id")

    if not user_id:
        logger.error("Checkout completed without user_id in metadata")
        return

    email = (session.get("customer_details") or {}).get("email")
    await users.ensure(Identity(user_id=user_id, email=email))
    await repo.upsert(
        Subscription(
            user_id=user_id,
            provider=BillingProvider.STRIPE,
            provider_customer_id=session.get("customer"),
            provider_subscription_id=session.get("subscription"),
            status=SubscriptionStatus.ACTIVE,
        )
    )
    logger.info(f"Activated Stripe subscription for user {user_id}")


async def handle_invoice_payment_succeeded(invoice: dict, repo: SubscriptionRepository):
    """Keep the subscription active and move its period end forward."""
    subscription = await _find_by_customer(repo, invoice.get("customer"))
    if subscription is None:
        return

    lines = (invoice.get("lines") or {}).get("data") or []
    period_end = None
    if lines:
        period_end = _from_timestamp((lines[0].get("period") or {}).get("end"))

    await repo.update_status(
        subscription.user_id,
        SubscriptionStatus.ACTIVE,
        current_period_end=period_end,
    )
    logger.info(f"Renewed subscription for customer {invoice.get('customer')}")


async def handle_invoice_payment_failed(invoice: dict, repo: SubscriptionRepository):
    """Set the subscription to past due."""
    subscription = await _find_by_customer(repo, invoice.get("customer"))
    if subscription is None:
        return

    await repo.update_status(subscription.user_id, SubscriptionStatus.PAST_DUE)
    logger.warning(f"Payment failed for customer {invoice.get('customer')}, set to past_due")


async def handle_subscription_updated(subscription_data: dict, repo: SubscriptionRepository):
    """Sync status, cancel_at_period_end and period end from Stripe."""
    subscription = await _find_by_customer(repo, subscription_data.get("customer"))
    if subscription is None:
        return

    status = STRIPE_STATUS_MAP.get(subscription_data.get("status"), subscription.status)
    await repo.update_status(
        subscription.user_id,
        status,
        current_period_end=_period_end(subscription_data),
        cancel_at_period_end=bool(subscription_data.get("cancel_at_period_end", False)),
    )
    logger.info(f"Synced subscription updates for customer {subscription_data.get('customer')}")


async def handle_subscription_deleted(subscription_data: dict, repo: SubscriptionRepository):
    """Mark the subscription canceled. The row is kept."""
    subscription = await _find_by_customer(repo, subscription_data.get("customer"))
    if subscription is None:
        return

    await repo.update_status(
        subscription.user_id,
        SubscriptionStatus.CANCELED,
        cancel_at_period_end=False,
    )
    logger.info(f"Canceled subscription for customer {subscription_data.get('customer')}")
