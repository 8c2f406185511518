"""Structured responses produced by the model (wingman analysis)."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SuggestionType(str, Enum):
    """Reply style of a suggestion."""

    PLAYFUL = "Playful/Humorous"
    CURIOUS = "Curious/Engaging"
    DIRECT = "Direct/Confident"


class Analysis(BaseModel):
    model_config = ConfigDict(extra="ignore")

    her_last_message_feeling: str | None = None
    their_last_message_feeling: str | None = None
    conversation_vibe: str
    recommended_goal: str
    group_dynamics: str | None = None


class Suggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: SuggestionType
    text: str = Field(..., min_length=1)
    rationale: str


class TargetUser(BaseModel):
    platformId: str
    displayName: str | None = None
    gender: Literal["unknown", "male", "female", "non_binary"] | None = None


class WingmanResponse(BaseModel):
    """Validated analysis returned to the extension.

    Field names match the wire format the extension already consumes.
    """

    model_config = ConfigDict(extra="ignore")

    conversationType: Literal["one_on_one", "group"] = "one_on_one"
    detectedParticipants: list[str] | None = None
    targetUser: TargetUser | None = None
    analysis: Analysis
    suggestion: Suggestion
    wingman_tip: str


DEFAULT_SUGGESTION: dict[str, str] = {
    "type": SuggestionType.CURIOUS.value,
    "text": "haha tell me more",
    "rationale": "Neutral follow-up when the model produced no suggestion",
}


def normalize_wingman_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade older payload shapes before validation.

    Older prompts returned a ``suggestions`` list; the first entry is
    adopted. With neither field present a neutral suggestion is used rather
    than failing the whole request.
    """
    normalized = dict(data)
    suggestions = normalized.pop("suggestions", None)
    if normalized.get("suggestion") is None:
        if isinstance(suggestions, list) and suggestions:
            normalized["suggestion"] = suggestions[0]
        else:
            normalized["suggestion"] = dict(DEFAULT_SUGGESTION)
    return normalized


# Top-level shape used as the last-resort extraction pattern
WINGMAN_SHAPE_PATTERN = r'\{\s*"analysis"[\s\S]*\}'

WINGMAN_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "analysis": {
            "type": "object",
            "properties": {
                "her_last_message_feeling": {"type": "string"},
                "their_last_message_feeling": {"type": "string"},
                "conversation_vibe": {"type": "string"},
                "recommended_goal": {"type": "string"},
                "group_dynamics": {"type": "string"},
            },
            "required": ["conversation_vibe", "recommended_goal"],
        },
        "suggestion": {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": [t.value for t in SuggestionType]},
                "text": {"type": "string"},
                "rationale": {"type": "string"},
            },
            "required": ["type", "text", "rationale"],
        },
        "wingman_tip": {"type": "string"},
    },
    "required": ["analysis", "suggestion", "wingman_tip"],
}
