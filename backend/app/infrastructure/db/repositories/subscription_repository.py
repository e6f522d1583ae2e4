"""
Subscription Repository

Data access layer for subscription persistence.
Maps between SubscriptionModel rows and the Subscription domain entity.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.subscription import (
    BillingProvider,
    Subscription,
    SubscriptionStatus,
    as_utc,
)
from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.subscription import SubscriptionModel
from app.infrastructure.db.repositories.base_repository import BaseRepository


logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[SubscriptionModel]):
    """
    Repository for subscription data access.

    Rows are never deleted; status changes come from provider
    confirmations and webhooks only.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionModel, session)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Get subscription by user ID.

        Args:
            user_id: Auth provider user id

        Returns:
            Subscription domain model or None
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.user_id == user_id
        )
        return await self._fetch_one(statement)

    async def get_by_provider_subscription_id(
        self,
        provider_subscription_id: str,
    ) -> Optional[Subscription]:
        """Get subscription by the billing provider's subscription id."""
        statement = select(SubscriptionModel).where(
            SubscriptionModel.provider_subscription_id == provider_subscription_id
        )
        return await self._fetch_one(statement)

    async def get_by_provider_customer_id(
        self,
        provider_customer_id: str,
    ) -> Optional[Subscription]:
        """Get subscription by the billing provider's customer id."""
        statement = select(SubscriptionModel).where(
            SubscriptionModel.provider_customer_id == provider_customer_id
        )
        return await self._fetch_one(statement)

    async def _fetch_one(self, statement) -> Optional[Subscription]:
        # Rows may have been changed by a Core upsert in this session
        statement = statement.execution_options(populate_existing=True)
        result = await self._session.execute(statement)
        model = result.scalars().first()
        if model:
            return self._to_domain(model)
        return None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def upsert(self, subscription: Subscription) -> Subscription:
        """
        Create or update the subscription keyed by user_id.

        Args:
            subscription: Subscription domain model

        Returns:
            Created/updated subscription
        """
        now = utcnow()
        values = {
            "id": uuid4(),
            "user_id": subscription.user_id,
            "provider": subscription.provider.value,
            "provider_customer_id": subscription.provider_customer_id,
            "provider_subscription_id": subscription.provider_subscription_id,
            "plan_id": subscription.plan_id,
            "status": subscription.status.value,
            "current_period_end": subscription.current_period_end,
            "cancel_at_period_end": subscription.cancel_at_period_end,
            "created_at": now,
            "updated_at": now,
        }

        stmt = self._insert().values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "provider": stmt.excluded.provider,
                "provider_customer_id": stmt.excluded.provider_customer_id,
                "provider_subscription_id": stmt.excluded.provider_subscription_id,
                "plan_id": stmt.excluded.plan_id,
                "status": stmt.excluded.status,
                "current_period_end": stmt.excluded.current_period_end,
                "cancel_at_period_end": stmt.excluded.cancel_at_period_end,
                "updated_at": now,
            },
        )
        await self._session.execute(stmt)

        logger.info(
            f"Upserted {subscription.provider.value} subscription for user "
            f"{subscription.user_id} with status {subscription.status.value}"
        )
        stored = await self.get_by_user_id(subscription.user_id)
        return stored

    async def update_status(
        self,
        user_id: str,
        status: SubscriptionStatus,
        current_period_end: Optional[datetime] = None,
        cancel_at_period_end: Optional[bool] = None,
    ) -> Optional[Subscription]:
        """
        Change the status (and optionally period end) of a user's subscription.

        Returns:
            Updated subscription, or None if the user has none
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.user_id == user_id
        ).execution_options(populate_existing=True)
        result = await self._session.execute(statement)
        model = result.scalars().first()
        if not model:
            return None

        model.status = status.value
        if current_period_end is not None:
            model.current_period_end = as_utc(current_period_end)
        if cancel_at_period_end is not None:
            model.cancel_at_period_end = cancel_at_period_end
        model.updated_at = utcnow()

        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)

        logger.info(f"Subscription for user {user_id} is now {status.value}")
        return self._to_domain(model)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: SubscriptionModel) -> Subscription:
        """Convert database model to domain entity."""
        return Subscription(
            id=str(model.id),
            user_id=model.user_id,
            provider=BillingProvider(model.provider),
            provider_customer_id=model.provider_customer_id,
            provider_subscription_id=model.provider_subscription_id,
            plan_id=model.plan_id,
            status=SubscriptionStatus(model.status),
            current_period_end=model.current_period_end,
            cancel_at_period_end=model.cancel_at_period_end or False,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
