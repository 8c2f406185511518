"""Schemas for the wingman profile endpoints."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProfileListQuery(BaseModel):
    # Platform id of the bot owner
    botUserId: str = Field(..., min_length=1)


class ProfileDeleteQuery(BaseModel):
    profileId: UUID


class ProfileUpsert(BaseModel):
    botUserId: str = Field(..., min_length=1)
    profileName: str = Field(..., min_length=1, max_length=100)
    strategyPrompt: str | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
    isDefault: bool = False
    autoDetectEnabled: bool = True
    detectionRules: dict[str, Any] = Field(default_factory=dict)


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bot_user_id: UUID
    profile_name: str
    strategy_prompt: str | None
    settings: dict[str, Any]
    is_default: bool
    auto_detect_enabled: bool
    detection_rules: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class ProfileListResponse(BaseModel):
    profiles: list[ProfileRead]


class ProfileSaveResponse(BaseModel):
    profile: ProfileRead
    success: Literal[True] = True
