"""Autonomous chat bot models: bots, their room configs, rooms and the room event log."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from wingman.infrastructure.database import Base

DEFAULT_BOT_PERSONALITY = (
    "you chat naturally, remember past convos, and shift your tone based on closeness. "
    "you keep it casual with friends but youre a bit shy with new folks. "
    "use few words to reply, you dont use proper punctuation marks."
)


class Bot(Base):
    __tablename__ = "bots"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    platform_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    personality: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_BOT_PERSONALITY)
    config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class BotConfig(Base):
    """Which bot account the extension drives in a room."""

    __tablename__ = "bot_configs"
    __table_args__ = (
        UniqueConstraint("room_id", "platform_id", name="ux_bot_configs_room_platform"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # The extension sends the room path under the name roomId
    room_path: Mapped[str] = mapped_column("room_id", String(500), nullable=False)
    platform_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    room_path: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class ChatEvent(Base):
    """A room message observed by a bot."""

    __tablename__ = "events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_platform_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    message_text: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(String(20), nullable=False, default="message")
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch ms
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )
