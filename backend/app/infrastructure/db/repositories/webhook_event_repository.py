"""
Webhook Event Repository

Idempotency ledger for billing-provider webhooks.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models.base import utcnow
from app.infrastructure.db.models.webhook_event import ProcessedWebhookEventModel
from app.infrastructure.db.repositories.base_repository import BaseRepository


class WebhookEventRepository(BaseRepository[ProcessedWebhookEventModel]):
    """Tracks which provider events were already applied."""

    def __init__(self, session: AsyncSession):
        super().__init__(ProcessedWebhookEventModel, session)

    async def is_processed(self, event_id: str) -> bool:
        """Check if a webhook event has already been processed."""
        return await self.get_by_id(event_id) is not None

    async def mark_processed(
        self,
        event_id: str,
        provider: str,
        event_type: str,
    ) -> None:
        """Record a webhook event as processed. Re-marking is a no-op."""
        stmt = self._insert().values(
            event_id=event_id,
            provider=provider,
            event_type=event_type,
            processed_at=utcnow(),
        ).on_conflict_do_nothing(index_elements=["event_id"])
        await self._session.execute(stmt)
