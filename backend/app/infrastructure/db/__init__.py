"""
Database Infrastructure Package for SynthAI

Exports database utilities and dependency providers.
"""

from app.infrastructure.db.database import (
    DatabaseManager,
    get_db_manager,
    get_session,
)

from app.infrastructure.db.dependencies import (
    SessionDep,
    get_subscription_repository,
    get_user_repository,
    get_webhook_event_repository,
    get_entitlement_service,
    get_conversation_service,
    SubscriptionRepoDep,
    UserRepoDep,
    WebhookEventRepoDep,
    EntitlementServiceDep,
    ConversationServiceDep,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "get_db_manager",
    "get_session",
    # Dependencies
    "SessionDep",
    "get_subscription_repository",
    "get_user_repository",
    "get_webhook_event_repository",
    "get_entitlement_service",
    "get_conversation_service",
    "SubscriptionRepoDep",
    "UserRepoDep",
    "WebhookEventRepoDep",
    "EntitlementServiceDep",
    "ConversationServiceDep",
]
