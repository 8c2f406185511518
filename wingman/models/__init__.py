"""SQLAlchemy models."""

from wingman.models.bot import Bot, BotConfig, ChatEvent, Room
from wingman.models.conversation import BotSuggestion, Conversation, Message, SuggestionFeedback
from wingman.models.prompt import Prompt
from wingman.models.summary import (
    RoomSummary,
    UserAndBotGlobalSummary,
    UserAndBotRoomSummary,
    UserRoomSummary,
)
from wingman.models.user import User, WingmanProfile

__all__ = [
    "Bot",
    "BotConfig",
    "BotSuggestion",
    "ChatEvent",
    "Conversation",
    "Message",
    "Prompt",
    "Room",
    "RoomSummary",
    "SuggestionFeedback",
    "User",
    "UserAndBotGlobalSummary",
    "UserAndBotRoomSummary",
    "UserRoomSummary",
    "WingmanProfile",
]
