"""Schemas for suggestion feedback reported by the extension."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FeedbackCreate(BaseModel):
    botSuggestionId: UUID
    conversationId: UUID
    userSelectedIndex: int | None = Field(default=None, ge=0)
    userModified: bool = False
    outcomeScore: float | None = None
    matchResponseTime: int | None = Field(default=None, ge=0)  # seconds until the match replied
    matchEngagement: str | None = Field(default=None, max_length=20)  # 'positive' counts as engaged
    feedbackNotes: str | None = None


class FeedbackRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    bot_suggestion_id: UUID
    conversation_id: UUID
    user_selected_index: int | None
    user_modified: bool
    outcome_score: float | None
    match_response_time: int | None
    match_engagement: str | None
    feedback_notes: str | None
    created_at: datetime


class FeedbackMetrics(BaseModel):
    """Per-conversation rates over every feedback row; all zero without feedback."""

    suggestionAcceptanceRate: float = 0.0
    averageOutcomeScore: float = 0.0
    averageResponseTime: float = 0.0
    positiveEngagementRate: float = 0.0


class FeedbackResponse(BaseModel):
    feedback: FeedbackRead
    metrics: FeedbackMetrics
    success: Literal[True] = True
