"""Request/response schemas for the autonomous chat bot."""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger("bot")


class BotStrategy(str, Enum):
    ENGAGE = "ENGAGE"
    OBSERVE = "OBSERVE"


class BotMessage(BaseModel):
    text: str = Field(..., min_length=1)
    delayMs: int = Field(..., ge=500, le=3000)


class BotResponse(BaseModel):
    """Bot decision. ``messages`` is always empty when observing."""

    model_config = ConfigDict(extra="ignore")

    strategy: BotStrategy
    messages: list[BotMessage] = Field(default_factory=list)

    @model_validator(mode="after")
    def _observe_sends_nothing(self) -> "BotResponse":
        if self.strategy is BotStrategy.OBSERVE and self.messages:
            logger.info(
                "Dropping messages returned with OBSERVE strategy",
                extra={"service": "bot", "metadata": {"dropped": len(self.messages)}},
            )
            self.messages = []
        return self


class QuotedMessage(BaseModel):
    text: str
    username: str | None = None
    platformId: str | None = None


class BotEvent(BaseModel):
    """One room event captured by the extension since the last call."""

    username: str = Field(..., min_length=1)
    platformId: str | None = None  # absent for system notifications
    text: str
    timestamp: int = Field(..., gt=0)  # epoch ms
    type: str = "message"
    quotedMessage: QuotedMessage | None = None


class BotChatRequest(BaseModel):
    events: list[BotEvent] = Field(..., min_length=1)
    roomPath: str = Field(..., min_length=1)
    botPlatformId: str = Field(..., min_length=1)


class BotConfigQuery(BaseModel):
    """Query string of ``GET /config``; ``roomId`` carries the room path."""

    roomId: str = Field(..., min_length=1)
    platformId: str = Field(..., min_length=1)


class BotConfigSave(BotConfigQuery):
    # Registers the bot account as a side effect when given
    username: str | None = Field(default=None, min_length=1)


BOT_SHAPE_PATTERN = r'\{\s*"strategy"[\s\S]*\}'

BOT_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "strategy": {"type": "string", "enum": [s.value for s in BotStrategy]},
        "messages": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "delayMs": {"type": "number", "minimum": 500, "maximum": 3000},
                },
                "required": ["text", "delayMs"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["strategy", "messages"],
    "additionalProperties": False,
}
