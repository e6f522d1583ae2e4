"""
Entitlement Service for SynthAI

Reads subscription and usage state to compute a user's entitlement,
runs the gate, and records usage for gated calls that succeeded.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.access import (
    Allow,
    Entitlement,
    EntitlementRequirement,
    GateDecision,
    Identity,
    gate,
)
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.db.repositories.usage_repository import UsageRepository


logger = logging.getLogger(__name__)


class EntitlementService:
    """
    Entitlement checks and usage recording for one request.

    Args:
        session: Request-scoped database session
        free_limit: Free-tier invocations allowed per user per period
    """

    def __init__(self, session: AsyncSession, free_limit: int):
        self._session = session
        self._free_limit = free_limit
        self._subscriptions = SubscriptionRepository(session)
        self._usage = UsageRepository(session)

    @property
    def free_limit(self) -> int:
        return self._free_limit

    async def check_entitlement(self, user_id: str) -> Entitlement:
        """
        Compute entitlement for a user.

        An active subscription short-circuits: the usage ledger is not read.
        """
        subscription = await self._subscriptions.get_by_user_id(user_id)
        if subscription is not None and subscription.is_active():
            return Entitlement.subscriber()

        record = await self._usage.get_by_user_id(user_id)
        used = record.count if record else 0
        return Entitlement.free(self._free_limit - used)

    async def evaluate(
        self,
        identity: Optional[Identity],
        requirement: EntitlementRequirement,
    ) -> GateDecision:
        """
        Run the gate for a caller.

        Unauthenticated callers are denied before any database access.
        """
        if identity is None:
            return gate(None, requirement)

        entitlement = await self.check_entitlement(identity.user_id)
        decision = gate(identity, requirement, entitlement)
        if not decision.allowed:
            logger.info(f"Denied user {identity.user_id}: {decision.reason.value}")
        return decision

    async def record_usage(self, decision: GateDecision) -> Optional[int]:
        """
        Consume one free use if the decision calls for it.

        Call only after the gated operation succeeded. The increment is
        committed right away so it is not lost if the response fails later.

        Returns:
            The new count, or None when nothing was consumed
        """
        if not isinstance(decision, Allow) or not decision.consumes_quota:
            return None

        count = await self._usage.increment(decision.identity.user_id)
        await self._session.commit()
        return count
