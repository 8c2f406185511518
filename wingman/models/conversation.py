"""Conversation, message, generated-suggestion and suggestion-feedback models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from wingman.infrastructure.database import Base


class Conversation(Base):
    """One coached conversation between a bot owner and a room/match."""

    __tablename__ = "conversations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    match_user_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    room_path: Mapped[str] = mapped_column(String(500), nullable=False)
    conversation_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="one_on_one",
    )  # 'one_on_one' | 'group'
    conversation_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
    )  # 'pending' until a match is known, then 'active'
    target_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active_participants: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class Message(Base):
    """A chat message captured from the extension."""

    __tablename__ = "messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    conversation_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    message_text: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch ms
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class BotSuggestion(Base):
    """A generated suggestion with the metadata needed for prompt A/B analysis."""

    __tablename__ = "bot_suggestions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    conversation_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    prompt_context: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    analysis: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    # Stored as a list for compatibility with older multi-suggestion rows
    suggestions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    wingman_tip: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cached_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prompt_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    model_used: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # Filled in when feedback reports the suggestion was sent
    suggestion_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    usage_timestamp: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    modified_before_use: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_selected_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class SuggestionFeedback(Base):
    """What happened after a suggestion was shown to the bot owner."""

    __tablename__ = "suggestion_feedback"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_suggestion_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bot_suggestions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    conversation_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_selected_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_modified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    outcome_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    match_response_time: Mapped[int | None] = mapped_column(Integer, nullable=True)  # seconds
    match_engagement: Mapped[str | None] = mapped_column(String(20), nullable=True)
    feedback_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
