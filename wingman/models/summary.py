"""Relationship and room summaries.

These rows are written by an offline summarizer; the request path only
reads them.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from wingman.infrastructure.database import Base


class RoomSummary(Base):
    __tablename__ = "room_summaries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("bots.id", ondelete="CASCADE"), nullable=False)
    room_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mood: Mapped[str | None] = mapped_column(String(50), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class UserRoomSummary(Base):
    """What a bot knows about one user within one room."""

    __tablename__ = "user_room_summaries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("bots.id", ondelete="CASCADE"), nullable=False)
    room_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    user_platform_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Either a plain string or {"summary": "..."}
    summary: Mapped[Any] = mapped_column(JSON, nullable=True)


class UserAndBotRoomSummary(Base):
    """Relationship between a bot and a user within one room."""

    __tablename__ = "user_and_bot_room_summaries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("bots.id", ondelete="CASCADE"), nullable=False)
    room_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    user_platform_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Either a plain string or {"relationshipSummary": "..."}
    relationship_summary: Mapped[Any] = mapped_column(JSON, nullable=True)
    closeness_score: Mapped[float | None] = mapped_column(Float, nullable=True)  # 0-10
    interaction_count: Mapped[int | None] = mapped_column(Integer, nullable=True)


class UserAndBotGlobalSummary(Base):
    """Relationship between a bot and a user across all rooms."""

    __tablename__ = "user_and_bot_global_summaries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("bots.id", ondelete="CASCADE"), nullable=False)
    user_platform_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Either a plain string or {"globalRelationshipSummary": "..."}
    global_summary: Mapped[Any] = mapped_column(JSON, nullable=True)
