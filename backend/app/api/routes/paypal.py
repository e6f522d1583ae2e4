"""
PayPal Billing Routes

Checkout orders, the subscription lifecycle (create, capture, cancel)
and the PayPal webhook.

Subscription status only changes on a PayPal confirmation: the capture
call, a successful cancel call or a verified webhook.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from app.api.dependencies import (
    IdentityDep,
    PayPalServiceDep,
    SubscriptionRepoDep,
    UserRepoDep,
    WebhookEventRepoDep,
)
from app.api.schemas import (
    CaptureSubscriptionRequest,
    CreateOrderRequest,
    CreateOrderResponse,
    CreatePayPalSubscriptionRequest,
    RedirectResponse,
    SubscriptionRecord,
    WebhookAck,
)
from app.domain.subscription import (
    PAYPAL_STATUS_MAP,
    BillingProvider,
    Subscription,
    SubscriptionStatus,
)
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.exceptions import NotFoundError, ValidationError
from app.infrastructure.payments.paypal_service import parse_paypal_time


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/paypal")
orders_router = APIRouter()


# PayPal webhook event type -> our status
WEBHOOK_EVENT_STATUS = {
    "BILLING.SUBSCRIPTION.ACTIVATED": SubscriptionStatus.ACTIVE,
    "BILLING.SUBSCRIPTION.RENEWED": SubscriptionStatus.ACTIVE,
    "BILLING.SUBSCRIPTION.CANCELLED": SubscriptionStatus.CANCELED,
    "BILLING.SUBSCRIPTION.EXPIRED": SubscriptionStatus.CANCELED,
    "BILLING.SUBSCRIPTION.SUSPENDED": SubscriptionStatus.PAST_DUE,
    "BILLING.SUBSCRIPTION.PAYMENT.FAILED": SubscriptionStatus.PAST_DUE,
}


# =============================================================================
# Orders
# =============================================================================

@orders_router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    request: CreateOrderRequest,
    identity: IdentityDep,
    paypal: PayPalServiceDep,
):
    """Create a one-off PayPal order for a plan purchase."""
    order_id = await paypal.create_order(request.plan_type, request.price)
    logger.info(f"User {identity.user_id} created PayPal order {order_id}")
    return CreateOrderResponse(orderID=order_id)


# =============================================================================
# Subscriptions
# =============================================================================

@router.post("/create-subscription", response_model=RedirectResponse)
async def create_subscription(
    request: CreatePayPalSubscriptionRequest,
    identity: IdentityDep,
    paypal: PayPalServiceDep,
    repo: SubscriptionRepoDep,
    users: UserRepoDep,
):
    """
    Start a PayPal subscription and return the buyer approval URL.

    A PENDING subscription is recorded; it turns ACTIVE on capture or on
    the activation webhook.
    """
    existing = await repo.get_by_user_id(identity.user_id)
    if existing is not None and existing.is_active():
        raise ValidationError("You already have an active subscription")

    created = await paypal.create_subscription(request.plan, identity.user_id)

    await users.ensure(identity)
    await repo.upsert(
        Subscription(
            user_id=identity.user_id,
            provider=BillingProvider.PAYPAL,
            provider_subscription_id=created["id"],
            plan_id=created["plan_id"],
            status=SubscriptionStatus.PENDING,
        )
    )
    return RedirectResponse(url=created["approval_url"])


@router.post("/capture-subscription", response_model=SubscriptionRecord)
async def capture_subscription(
    request: CaptureSubscriptionRequest,
    identity: IdentityDep,
    paypal: PayPalServiceDep,
    repo: SubscriptionRepoDep,
    users: UserRepoDep,
):
    """
    Confirm an approved PayPal subscription with PayPal and activate it.

    Raises:
        ValidationError: PayPal does not report the subscription ACTIVE,
            or it belongs to another user
    """
    details = await paypal.get_subscription(request.subscription_id)

    owner = details.get("custom_id")
    if owner != identity.user_id:
        logger.warning(
            f"User {identity.user_id} tried to capture subscription "
            f"{request.subscription_id} owned by {owner or 'nobody'}"
        )
        raise ValidationError("Subscription does not belong to this account")

    if details.get("status") != "ACTIVE":
        raise ValidationError(
            "Subscription is not active",
            details={"status": details.get("status")},
        )

    await users.ensure(identity)
    subscription = await repo.upsert(
        Subscription(
            user_id=identity.user_id,
            provider=BillingProvider.PAYPAL,
            provider_subscription_id=request.subscription_id,
            plan_id=details.get("plan_id"),
            status=SubscriptionStatus.ACTIVE,
            current_period_end=details.get("next_billing_time"),
        )
    )
    logger.info(f"Activated PayPal subscription for user {identity.user_id}")
    return SubscriptionRecord.from_domain(subscription)


@router.post("/cancel-subscription", response_model=SubscriptionRecord)
async def cancel_subscription(
    identity: IdentityDep,
    paypal: PayPalServiceDep,
    repo: SubscriptionRepoDep,
):
    """
    Cancel the caller's PayPal subscription.

    The record is kept and marked CANCELED once PayPal confirms.
    """
    subscription = await repo.get_by_user_id(identity.user_id)
    if (
        subscription is None
        or subscription.provider != BillingProvider.PAYPAL
        or not subscription.provider_subscription_id
        or subscription.status == SubscriptionStatus.CANCELED
    ):
        raise NotFoundError("Subscription not found")

    await paypal.cancel_subscription(
        subscription.provider_subscription_id,
        reason="User requested cancellation.",
    )
    updated = await repo.update_status(identity.user_id, SubscriptionStatus.CANCELED)
    return SubscriptionRecord.from_domain(updated)


# =============================================================================
# Webhook
# =============================================================================

@router.post("/webhook", response_model=WebhookAck)
async def paypal_webhook(
    request: Request,
    paypal: PayPalServiceDep,
    repo: SubscriptionRepoDep,
    events: WebhookEventRepoDep,
):
    """
    Handle PayPal subscription lifecycle events.

    Verifies the delivery with PayPal, then applies each event id once.
    Returns 200 for events about unknown subscriptions so PayPal stops
    retrying them.
    """
    try:
        event: Dict[str, Any] = json.loads(await request.body())
    except json.JSONDecodeError:
        raise ValidationError("Invalid JSON payload")
    if not isinstance(event, dict):
        raise ValidationError("Invalid webhook payload")

    if not await paypal.verify_webhook_signature(request.headers, event):
        logger.error("PayPal webhook signature verification failed")
        raise ValidationError("Invalid signature")

    event_id = event.get("id")
    event_type = event.get("event_type")
    resource = event.get("resource") or {}
    if not event_id or not event_type:
        raise ValidationError("Missing required fields")

    if await events.is_processed(event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return WebhookAck(status="already_processed")

    logger.info(f"Processing PayPal webhook event: {event_type} ({event_id})")

    new_status = _status_for_event(event_type, resource)
    if new_status is None:
        logger.debug(f"Unhandled event type: {event_type}")
        await events.mark_processed(event_id, "paypal", event_type)
        return WebhookAck(status="ignored")

    applied = await _apply_subscription_event(repo, resource, new_status)
    await events.mark_processed(event_id, "paypal", event_type)
    return WebhookAck(status="success" if applied else "ignored")


def _status_for_event(
    event_type: str,
    resource: Dict[str, Any],
) -> Optional[SubscriptionStatus]:
    """
    Target status for a webhook event.

    Other subscription events (e.g. BILLING.SUBSCRIPTION.UPDATED) sync
    the status PayPal reports on the resource.
    """
    if event_type in WEBHOOK_EVENT_STATUS:
        return WEBHOOK_EVENT_STATUS[event_type]
    if event_type.startswith("BILLING.SUBSCRIPTION."):
        return PAYPAL_STATUS_MAP.get(str(resource.get("status", "")).upper())
    return None


async def _find_subscription(
    repo: SubscriptionRepository,
    resource: Dict[str, Any],
) -> Optional[Subscription]:
    subscription_id = resource.get("id")
    if subscription_id:
        found = await repo.get_by_provider_subscription_id(subscription_id)
        if found:
            return found

    user_id = resource.get("custom_id")
    if user_id:
        found = await repo.get_by_user_id(user_id)
        if found and found.provider == BillingProvider.PAYPAL:
            return found
    return None


async def _apply_subscription_event(
    repo: SubscriptionRepository,
    resource: Dict[str, Any],
    new_status: SubscriptionStatus,
) -> bool:
    """Apply a status change to the matching subscription. False if none matched."""
    subscription = await _find_subscription(repo, resource)
    if subscription is None:
        logger.warning(f"No subscription found for PayPal subscription {resource.get('id')}")
        return False

    period_end = None
    if new_status == SubscriptionStatus.ACTIVE:
        period_end = parse_paypal_time(
            (resource.get("billing_info") or {}).get("next_billing_time")
        )

    subscription.status = new_status
    if period_end is not None:
        subscription.current_period_end = period_end
    if resource.get("id"):
        subscription.provider_subscription_id = resource["id"]
    if resource.get("plan_id"):
        subscription.plan_id = resource["plan_id"]

    await repo.upsert(subscription)
    return True
