"""
AI Tool Catalogue

Closed set of dashboard tools. Each kind carries only what the backend
needs: a label, its entitlement requirement and the instruction handed
to the LLM.
"""

from dataclasses import dataclass
from enum import Enum

from app.domain.access import EntitlementRequirement


class ToolKind(str, Enum):
    """Supported tool kinds."""
    CONVERSATION = "conversation"
    CODE = "code"
    CONTENT = "content"
    IDEAS = "ideas"
    TRANSLATE = "translate"
    STUDY = "study"
    RESEARCH = "research"
    PRESENTATION = "presentation"
    VIDEO = "video"
    MUSIC = "music"
    CUSTOM_MODEL = "custom_model"


@dataclass(frozen=True)
class ToolSpec:
    kind: ToolKind
    label: str
    requirement: EntitlementRequirement
    instruction: str


_FREE = EntitlementRequirement.FREE_TIER_LIMITED
_PRO = EntitlementRequirement.SUBSCRIPTION_ONLY


TOOLS: dict[ToolKind, ToolSpec] = {
    spec.kind: spec
    for spec in (
        ToolSpec(
            ToolKind.CONVERSATION, "Conversation", _FREE,
            "You are a helpful AI assistant.",
        ),
        ToolSpec(
            ToolKind.CODE, "Code Generation", _FREE,
            "You are a senior software engineer. Answer with working code "
            "in markdown code blocks and a short explanation.",
        ),
        ToolSpec(
            ToolKind.CONTENT, "Content Writer", _FREE,
            "You are a professional copywriter. Write clear, engaging content "
            "for the brief you are given.",
        ),
        ToolSpec(
            ToolKind.IDEAS, "Idea Generator", _FREE,
            "You generate numbered lists of concrete, original ideas for the "
            "topic you are given.",
        ),
        ToolSpec(
            ToolKind.TRANSLATE, "Translation", _FREE,
            "You are a translator. Translate the text faithfully and return "
            "only the translation.",
        ),
        ToolSpec(
            ToolKind.STUDY, "Study Assistant", _FREE,
            "You are a patient tutor. Explain step by step and finish with a "
            "short summary.",
        ),
        ToolSpec(
            ToolKind.RESEARCH, "Research Assistant", _FREE,
            "You are a research assistant. Give a structured overview with "
            "key findings and open questions.",
        ),
        ToolSpec(
            ToolKind.PRESENTATION, "Presentation Creator", _FREE,
            "You outline slide decks. Return one heading per slide followed "
            "by three to five bullet points.",
        ),
        ToolSpec(
            ToolKind.VIDEO, "Video Creation", _PRO,
            "You write video storyboards: numbered scenes with visuals, "
            "narration and duration.",
        ),
        ToolSpec(
            ToolKind.MUSIC, "Music Synthesis", _PRO,
            "You compose songs: return lyrics with section labels, chord "
            "progressions and tempo.",
        ),
        ToolSpec(
            ToolKind.CUSTOM_MODEL, "Custom Models", _PRO,
            "You follow the user's custom system instructions precisely.",
        ),
    )
}


def get_tool(kind: ToolKind) -> ToolSpec:
    """Look up a tool by kind."""
    return TOOLS[kind]
