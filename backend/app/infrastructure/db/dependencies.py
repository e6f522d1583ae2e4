"""
Dependency Injection Providers for SynthAI

Provides FastAPI dependencies for database sessions, repositories and
services built on a request-scoped session.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.chat_service import ConversationService
from app.infrastructure.db.database import get_session
from app.infrastructure.db.entitlement_service import EntitlementService
from app.infrastructure.db.repositories import (
    SubscriptionRepository,
    UserRepository,
    WebhookEventRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_subscription_repository(
    session: SessionDep,
) -> AsyncGenerator[SubscriptionRepository, None]:
    """
    Dependency provider for SubscriptionRepository.

    Usage:
        @router.get("/subscription")
        async def get_subscription(
            repo: SubscriptionRepository = Depends(get_subscription_repository)
        ):
            ...
    """
    yield SubscriptionRepository(session)


async def get_user_repository(
    session: SessionDep,
) -> AsyncGenerator[UserRepository, None]:
    yield UserRepository(session)


async def get_webhook_event_repository(
    session: SessionDep,
) -> AsyncGenerator[WebhookEventRepository, None]:
    yield WebhookEventRepository(session)


async def get_entitlement_service(
    request: Request,
    session: SessionDep,
) -> AsyncGenerator[EntitlementService, None]:
    """Dependency provider for EntitlementService using the configured free limit."""
    yield EntitlementService(session, request.app.state.settings.free_limit)


async def get_conversation_service(
    session: SessionDep,
) -> AsyncGenerator[ConversationService, None]:
    yield ConversationService(session)


# Type aliases for repository dependencies
SubscriptionRepoDep = Annotated[
    SubscriptionRepository,
    Depends(get_subscription_repository)
]
UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
WebhookEventRepoDep = Annotated[
    WebhookEventRepository,
    Depends(get_webhook_event_repository)
]
EntitlementServiceDep = Annotated[
    EntitlementService,
    Depends(get_entitlement_service)
]
ConversationServiceDep = Annotated[
    ConversationService,
    Depends(get_conversation_service)
]
