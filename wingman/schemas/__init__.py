"""Pydantic schemas for requests and model responses."""

from wingman.schemas.bot import (
    BotChatRequest,
    BotConfigQuery,
    BotConfigSave,
    BotEvent,
    BotMessage,
    BotResponse,
    BotStrategy,
)
from wingman.schemas.feedback import FeedbackCreate, FeedbackMetrics, FeedbackRead, FeedbackResponse
from wingman.schemas.profile import (
    ProfileDeleteQuery,
    ProfileListQuery,
    ProfileListResponse,
    ProfileRead,
    ProfileSaveResponse,
    ProfileUpsert,
)
from wingman.schemas.requests import InitRequest, InitResponse, RecentMessage, WingmanRequest
from wingman.schemas.suggestion import (
    Analysis,
    Suggestion,
    SuggestionType,
    TargetUser,
    WingmanResponse,
    normalize_wingman_payload,
)

__all__ = [
    "Analysis",
    "BotChatRequest",
    "BotConfigQuery",
    "BotConfigSave",
    "BotEvent",
    "BotMessage",
    "BotResponse",
    "BotStrategy",
    "FeedbackCreate",
    "FeedbackMetrics",
    "FeedbackRead",
    "FeedbackResponse",
    "InitRequest",
    "InitResponse",
    "ProfileDeleteQuery",
    "ProfileListQuery",
    "ProfileListResponse",
    "ProfileRead",
    "ProfileSaveResponse",
    "ProfileUpsert",
    "RecentMessage",
    "Suggestion",
    "SuggestionType",
    "TargetUser",
    "WingmanRequest",
    "WingmanResponse",
    "normalize_wingman_payload",
]
