"""
API Schemas

Request and response DTOs for the HTTP layer. JSON keys are camelCase
on the wire (``isPro``, ``conversationId``); Python attributes stay
snake_case.
"""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.domain.access import EntitlementRequirement
from app.domain.chat import Conversation, Message, MessageRole
from app.domain.subscription import (
    BillingProvider,
    PayPalPlan,
    Subscription,
    SubscriptionStatus,
)
from app.domain.tools import ToolKind, ToolSpec


class CamelModel(BaseModel):
    """Base DTO serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


T = TypeVar("T")


class DataEnvelope(CamelModel, Generic[T]):
    """``{"data": ...}`` wrapper used by the AI endpoints."""
    data: T


# =============================================================================
# Subscription / entitlement
# =============================================================================

class SubscriptionRecord(CamelModel):
    """Subscription as exposed to the owning user."""
    id: Optional[str] = None
    provider: BillingProvider
    provider_subscription_id: Optional[str] = None
    plan_id: Optional[str] = None
    status: SubscriptionStatus
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionRecord":
        return cls.model_validate(subscription.model_dump())


class SubscriptionResponse(SubscriptionRecord):
    """The caller's subscription record plus its derived ``isPro`` flag."""
    is_pro: bool

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls.model_validate({
            **subscription.model_dump(),
            "is_pro": subscription.is_active(),
        })


class SubscriptionCheckResponse(CamelModel):
    is_pro: bool


class ApiLimitResponse(CamelModel):
    """Free-tier allowance. ``remaining_free_uses`` is null for subscribers."""
    remaining_free_uses: Optional[int] = None
    has_active_subscription: bool
    free_limit: int


# =============================================================================
# Chat and tools
# =============================================================================

class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=10000)
    conversation_id: Optional[UUID] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message cannot be empty")
        return value


class ChatReply(CamelModel):
    response: str
    conversation_id: Optional[UUID] = None


class ToolRequest(CamelModel):
    prompt: str = Field(..., min_length=1, max_length=10000)

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Prompt cannot be empty")
        return value


class ToolReply(CamelModel):
    response: str
    tool: ToolKind


class ToolInfo(CamelModel):
    kind: ToolKind
    label: str
    requirement: EntitlementRequirement

    @classmethod
    def from_spec(cls, spec: ToolSpec) -> "ToolInfo":
        return cls(kind=spec.kind, label=spec.label, requirement=spec.requirement)


# =============================================================================
# Conversations
# =============================================================================

class MessageResponse(CamelModel):
    id: UUID
    role: MessageRole
    content: str
    created_at: datetime

    @classmethod
    def from_domain(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            created_at=message.created_at,
        )


class ConversationResponse(CamelModel):
    id: UUID
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    messages: List[MessageResponse] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, conversation: Conversation) -> "ConversationResponse":
        return cls(
            id=conversation.id,
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            messages=[MessageResponse.from_domain(m) for m in conversation.messages],
        )


class ConversationHistoryItem(ConversationResponse):
    preview: Optional[str] = None

    @classmethod
    def from_domain(cls, conversation: Conversation) -> "ConversationHistoryItem":
        base = ConversationResponse.from_domain(conversation)
        return cls(**base.model_dump(), preview=conversation.preview)


# =============================================================================
# Billing
# =============================================================================

class CreateOrderRequest(CamelModel):
    plan_type: str = Field(..., min_length=1)
    price: str = Field(..., min_length=1)

    @field_validator("price", mode="before")
    @classmethod
    def price_as_string(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class CreateOrderResponse(BaseModel):
    orderID: str


class CreatePayPalSubscriptionRequest(CamelModel):
    plan: PayPalPlan


class CaptureSubscriptionRequest(CamelModel):
    subscription_id: str = Field(..., min_length=1)


class RedirectResponse(CamelModel):
    url: str


class WebhookAck(CamelModel):
    status: str
