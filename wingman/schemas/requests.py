"""Incoming request bodies for the wingman endpoints."""

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


class InitRequest(BaseModel):
    platformId: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    roomPath: str

    @field_validator("roomPath")
    @classmethod
    def _room_path_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("Invalid room path")
        return value


class InitResponse(BaseModel):
    conversationId: UUID
    userId: str
    status: Literal["initialized"] = "initialized"


class RecentMessage(BaseModel):
    sender: Literal["user", "girl"]
    senderId: str | None = None
    senderName: str | None = None
    text: str = Field(..., min_length=1)
    timestamp: float = Field(..., gt=0)  # epoch ms
    messageType: Literal["social", "pm", "mentioned", "group", "one_on_one"] | None = None


class WingmanRequest(BaseModel):
    conversationId: UUID
    userId: str = Field(..., min_length=1)
    girlId: str | None = Field(default=None, min_length=1)
    # Explicit target; takes precedence over girlId
    targetUserId: str | None = Field(default=None, min_length=1)
    girlName: str | None = None
    recentMessages: list[RecentMessage] | None = None
    detectedParticipants: list[str] | None = None
    profileId: UUID | None = None
    autoDetectProfile: bool | None = None

    @model_validator(mode="after")
    def _has_target(self) -> "WingmanRequest":
        if not (self.girlId or self.targetUserId or self.recentMessages):
            raise ValueError("Either girlId, targetUserId, or recentMessages must be provided")
        return self
