"""
API Dependencies

FastAPI dependency injection for authentication, gating and the external
service clients held on ``app.state``.

Security: session JWTs are verified cryptographically (JWKS or HS256).
The bearer header wins over the session cookie when both are present.
Never decode without verification.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config.settings import Settings
from app.domain.access import (
    Allow,
    DenyReason,
    EntitlementRequirement,
    Identity,
)
from app.domain.tools import ToolKind, ToolSpec, get_tool
from app.infrastructure.ai.gemini_service import GeminiService
from app.infrastructure.auth.session_tokens import SessionTokenVerifier
from app.infrastructure.db.entitlement_service import EntitlementService
from app.infrastructure.db.dependencies import get_entitlement_service
from app.infrastructure.exceptions import AccessDeniedError
from app.infrastructure.payments.paypal_service import PayPalService
from app.infrastructure.payments.stripe_service import StripeService


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


# =============================================================================
# Application-scoped collaborators
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_verifier(request: Request) -> SessionTokenVerifier:
    return request.app.state.token_verifier


def get_llm_service(request: Request) -> GeminiService:
    return request.app.state.llm


def get_paypal_service(request: Request) -> PayPalService:
    return request.app.state.paypal


def get_stripe_service(request: Request) -> StripeService:
    return request.app.state.stripe


# =============================================================================
# Session resolution
# =============================================================================

async def resolve_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Identity]:
    """
    Resolve the caller's identity from the request.

    Looks at ``Authorization: Bearer`` first, then the session cookie.
    Returns None for a missing or invalid credential; never raises.
    """
    verifier = get_token_verifier(request)

    if credentials and credentials.credentials:
        identity = verifier.verify(credentials.credentials)
        if identity is not None:
            return identity
        logger.debug("Bearer token rejected, trying session cookie")

    cookie_name = get_app_settings(request).session_cookie_name
    return verifier.verify(request.cookies.get(cookie_name))


async def get_current_identity(
    identity: Optional[Identity] = Depends(resolve_session),
) -> Identity:
    """
    Require an authenticated caller.

    Raises:
        AccessDeniedError: UNAUTHENTICATED (HTTP 401)
    """
    if identity is None:
        raise AccessDeniedError(DenyReason.UNAUTHENTICATED)
    return identity


# =============================================================================
# Gate
# =============================================================================

def require_access(requirement: EntitlementRequirement):
    """
    Build a dependency that runs the gate for ``requirement``.

    Usage:
        @router.post("/chat")
        async def chat(decision: Allow = Depends(require_access(FREE_TIER_LIMITED))):
            ...
            await entitlements.record_usage(decision)

    Raises:
        AccessDeniedError: when the gate denies
    """

    async def dependency(
        identity: Optional[Identity] = Depends(resolve_session),
        entitlements: EntitlementService = Depends(get_entitlement_service),
    ) -> Allow:
        decision = await entitlements.evaluate(identity, requirement)
        if not decision.allowed:
            raise AccessDeniedError(decision.reason)
        return decision

    return dependency


async def get_tool_spec(tool: ToolKind) -> ToolSpec:
    """Path-parameter dependency: resolve the requested tool."""
    return get_tool(tool)


async def require_tool_access(
    spec: ToolSpec = Depends(get_tool_spec),
    identity: Optional[Identity] = Depends(resolve_session),
    entitlements: EntitlementService = Depends(get_entitlement_service),
) -> Allow:
    """Run the gate with the requested tool's requirement."""
    decision = await entitlements.evaluate(identity, spec.requirement)
    if not decision.allowed:
        raise AccessDeniedError(decision.reason)
    return decision


# Type aliases
IdentityDep = Annotated[Identity, Depends(get_current_identity)]
LLMServiceDep = Annotated[GeminiService, Depends(get_llm_service)]
PayPalServiceDep = Annotated[PayPalService, Depends(get_paypal_service)]
StripeServiceDep = Annotated[StripeService, Depends(get_stripe_service)]


# =============================================================================
# Re-export DB dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
from app.infrastructure.db.dependencies import (  # noqa: E402, F401
    SessionDep,
    SubscriptionRepoDep,
    UserRepoDep,
    WebhookEventRepoDep,
    EntitlementServiceDep,
    ConversationServiceDep,
)
