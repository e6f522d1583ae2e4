"""
Conversation Routes for SynthAI

Read access to the caller's conversation history.
"""

from uuid import UUID

from fastapi import APIRouter

from app.api.dependencies import ConversationServiceDep, IdentityDep
from app.api.schemas import ConversationHistoryItem, ConversationResponse


router = APIRouter()


@router.get("/conversations", response_model=list[ConversationResponse])
async def list_conversations(
    identity: IdentityDep,
    conversations: ConversationServiceDep,
):
    """Conversations, most recently active first, each with messages oldest first."""
    items = await conversations.list_conversations(identity.user_id)
    return [ConversationResponse.from_domain(item) for item in items]


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    identity: IdentityDep,
    conversations: ConversationServiceDep,
):
    """A single conversation owned by the caller."""
    conversation = await conversations.get_conversation(identity.user_id, conversation_id)
    return ConversationResponse.from_domain(conversation)


@router.get("/conversation/history", response_model=list[ConversationHistoryItem])
async def conversation_history(
    identity: IdentityDep,
    conversations: ConversationServiceDep,
):
    """Same ordering as /conversations, plus a preview of the latest message."""
    items = await conversations.list_conversations(identity.user_id)
    return [ConversationHistoryItem.from_domain(item) for item in items]
