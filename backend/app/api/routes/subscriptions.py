"""
Subscription API Routes

Read-only views of the caller's subscription and free-tier allowance.
Status changes happen only in the billing routes and webhooks.
"""

import logging
from typing import Optional

from fastapi import APIRouter

from app.api.dependencies import (
    EntitlementServiceDep,
    IdentityDep,
    SubscriptionRepoDep,
)
from app.api.schemas import (
    ApiLimitResponse,
    SubscriptionCheckResponse,
    SubscriptionResponse,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/subscription", response_model=Optional[SubscriptionResponse])
async def get_subscription(
    identity: IdentityDep,
    repo: SubscriptionRepoDep,
):
    """
    Get the current user's subscription record, or null if none.

    ``isPro`` is true only for an ACTIVE subscription whose period has
    not ended.
    """
    subscription = await repo.get_by_user_id(identity.user_id)
    if subscription is None:
        return None
    return SubscriptionResponse.from_domain(subscription)


@router.get("/subscription/check", response_model=SubscriptionCheckResponse)
async def check_subscription(
    identity: IdentityDep,
    repo: SubscriptionRepoDep,
):
    """Whether the current user has an active paid subscription."""
    subscription = await repo.get_by_user_id(identity.user_id)
    return SubscriptionCheckResponse(
        is_pro=subscription is not None and subscription.is_active()
    )


@router.get("/api-limit", response_model=ApiLimitResponse)
async def get_api_limit(
    identity: IdentityDep,
    entitlements: EntitlementServiceDep,
):
    """Remaining free uses (null for subscribers) and subscription status."""
    entitlement = await entitlements.check_entitlement(identity.user_id)
    return ApiLimitResponse(
        remaining_free_uses=entitlement.remaining_free_uses,
        has_active_subscription=entitlement.has_active_subscription,
        free_limit=entitlements.free_limit,
    )
