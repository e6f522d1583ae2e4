"""
Chat Routes for SynthAI

Gated chat completion and the per-tool content generators.
"""

import logging

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    ConversationServiceDep,
    EntitlementServiceDep,
    LLMServiceDep,
    UserRepoDep,
    get_tool_spec,
    require_access,
    require_tool_access,
)
from app.api.schemas import (
    ChatReply,
    ChatRequest,
    DataEnvelope,
    ToolInfo,
    ToolReply,
    ToolRequest,
)
from app.domain.access import Allow, EntitlementRequirement
from app.domain.tools import TOOLS, ToolKind, ToolSpec, get_tool


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat", response_model=DataEnvelope[ChatReply])
async def chat(
    request: ChatRequest,
    llm: LLMServiceDep,
    conversations: ConversationServiceDep,
    users: UserRepoDep,
    entitlements: EntitlementServiceDep,
    decision: Allow = Depends(require_access(EntitlementRequirement.FREE_TIER_LIMITED)),
):
    """
    Send a message and get the assistant's reply.

    The exchange is appended to ``conversationId`` or starts a new
    conversation. One free use is consumed only after the reply was
    generated and stored.
    """
    user_id = decision.identity.user_id
    history = await conversations.get_history(user_id, request.conversation_id)

    reply = await llm.complete(
        request.message,
        history=history,
        instruction=get_tool(ToolKind.CONVERSATION).instruction,
    )

    await users.ensure(decision.identity)
    conversation = await conversations.record_exchange(
        user_id=user_id,
        conversation_id=request.conversation_id,
        prompt=request.message,
        response=reply,
    )
    await entitlements.record_usage(decision)

    return DataEnvelope[ChatReply](
        data=ChatReply(response=reply, conversation_id=conversation.id)
    )


@router.get("/tools", response_model=list[ToolInfo])
async def list_tools():
    """The tool catalogue with each tool's entitlement requirement."""
    return [ToolInfo.from_spec(spec) for spec in TOOLS.values()]


@router.post("/tools/{tool}", response_model=DataEnvelope[ToolReply])
async def run_tool(
    request: ToolRequest,
    llm: LLMServiceDep,
    entitlements: EntitlementServiceDep,
    spec: ToolSpec = Depends(get_tool_spec),
    decision: Allow = Depends(require_tool_access),
):
    """
    Run one AI tool on a prompt.

    Pro-only tools need an active subscription; the rest draw on the
    free allowance.
    """
    reply = await llm.complete(request.prompt, instruction=spec.instruction)
    await entitlements.record_usage(decision)

    logger.info(f"Tool {spec.kind.value} used by {decision.identity.user_id}")
    return DataEnvelope[ToolReply](data=ToolReply(response=reply, tool=spec.kind))
