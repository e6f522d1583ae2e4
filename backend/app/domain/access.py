"""
Access Domain Models

Identity, entitlement and gate decision types, plus the gate itself.

The gate is a pure function of (identity, requirement, entitlement) built
as an ordered pipeline of named stages:

    authenticate -> authorize -> rate_limit

Each stage receives an AccessContext and returns either a Deny (terminal)
or the context (continue). Nothing here touches storage or the network.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class EntitlementRequirement(str, Enum):
    """What an operation needs from the caller's entitlement."""
    FREE_TIER_LIMITED = "FREE_TIER_LIMITED"
    SUBSCRIPTION_ONLY = "SUBSCRIPTION_ONLY"


class DenyReason(str, Enum):
    """Why the gate refused an operation."""
    UNAUTHENTICATED = "UNAUTHENTICATED"
    SUBSCRIPTION_REQUIRED = "SUBSCRIPTION_REQUIRED"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"


class Identity(BaseModel):
    """Authenticated caller resolved from a session credential."""
    user_id: str = Field(..., min_length=1)
    email: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Entitlement(BaseModel):
    """
    Entitlement state for one user at one point in time.

    ``remaining_free_uses`` is None for subscribers (unbounded).
    """
    has_active_subscription: bool
    remaining_free_uses: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def subscriber(cls) -> "Entitlement":
        return cls(has_active_subscription=True, remaining_free_uses=None)

    @classmethod
    def free(cls, remaining: int) -> "Entitlement":
        return cls(has_active_subscription=False, remaining_free_uses=max(remaining, 0))


# =============================================================================
# Decisions
# =============================================================================

@dataclass(frozen=True)
class Allow:
    """
    The operation may proceed.

    When ``consumes_quota`` is set, the caller must record one usage after
    the gated operation itself succeeds.
    """
    identity: Identity
    entitlement: Entitlement
    consumes_quota: bool

    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True)
class Deny:
    """The operation must not proceed."""
    reason: DenyReason

    @property
    def allowed(self) -> bool:
        return False


GateDecision = Union[Allow, Deny]


# =============================================================================
# Pipeline
# =============================================================================

@dataclass
class AccessContext:
    """Per-request state threaded through the gate stages."""
    identity: Optional[Identity]
    requirement: EntitlementRequirement
    entitlement: Optional[Entitlement] = None

    def require_entitlement(self) -> Entitlement:
        if self.entitlement is None:
            raise ValueError("Entitlement must be resolved before authorization")
        return self.entitlement


Stage = Callable[[AccessContext], Union[AccessContext, Deny]]


def authenticate(ctx: AccessContext) -> Union[AccessContext, Deny]:
    """Reject callers without a resolved identity."""
    if ctx.identity is None:
        return Deny(DenyReason.UNAUTHENTICATED)
    return ctx


def authorize(ctx: AccessContext) -> Union[AccessContext, Deny]:
    """Reject subscription-only operations for non-subscribers."""
    entitlement = ctx.require_entitlement()
    if (
        ctx.requirement == EntitlementRequirement.SUBSCRIPTION_ONLY
        and not entitlement.has_active_subscription
    ):
        return Deny(DenyReason.SUBSCRIPTION_REQUIRED)
    return ctx


def rate_limit(ctx: AccessContext) -> Union[AccessContext, Deny]:
    """Reject free-tier operations once the free allotment is used up."""
    entitlement = ctx.require_entitlement()
    if (
        ctx.requirement == EntitlementRequirement.FREE_TIER_LIMITED
        and not entitlement.has_active_subscription
        and entitlement.remaining_free_uses == 0
    ):
        return Deny(DenyReason.LIMIT_EXCEEDED)
    return ctx


ACCESS_STAGES: tuple[tuple[str, Stage], ...] = (
    ("authenticate", authenticate),
    ("authorize", authorize),
    ("rate_limit", rate_limit),
)


def run_stages(
    ctx: AccessContext,
    stages: tuple[tuple[str, Stage], ...] = ACCESS_STAGES,
) -> Union[AccessContext, Deny]:
    """Run stages in order, stopping at the first Deny."""
    for _name, stage in stages:
        result = stage(ctx)
        if isinstance(result, Deny):
            return result
        ctx = result
    return ctx


def gate(
    identity: Optional[Identity],
    requirement: EntitlementRequirement,
    entitlement: Optional[Entitlement] = None,
) -> GateDecision:
    """
    Decide whether an operation may proceed.

    Args:
        identity: Resolved caller, or None when unauthenticated
        requirement: Entitlement class of the operation
        entitlement: Caller's entitlement (ignored when identity is None)

    Returns:
        Allow or Deny
    """
    ctx = AccessContext(identity=identity, requirement=requirement, entitlement=entitlement)
    result = run_stages(ctx)
    if isinstance(result, Deny):
        return result

    resolved = result.require_entitlement()
    consumes_quota = (
        requirement == EntitlementRequirement.FREE_TIER_LIMITED
        and not resolved.has_active_subscription
    )
    return Allow(identity=result.identity, entitlement=resolved, consumes_quota=consumes_quota)
