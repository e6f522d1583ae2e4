"""
Repository Layer for SynthAI

Exports all repository classes for dependency injection.
"""

from app.infrastructure.db.repositories.base_repository import BaseRepository
from app.infrastructure.db.repositories.conversation_repository import (
    ConversationRepository,
)
from app.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from app.infrastructure.db.repositories.usage_repository import UsageRepository
from app.infrastructure.db.repositories.user_repository import UserRepository
from app.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    # Repositories
    "ConversationRepository",
    "SubscriptionRepository",
    "UsageRepository",
    "UserRepository",
    "WebhookEventRepository",
]
