"""Chat participant models: bot owners, matches and their coaching profiles."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from wingman.infrastructure.database import Base


class User(Base):
    """A person seen on the chat platform.

    ``user_type`` is ``bot_owner`` for the person being coached and ``match``
    for the people they talk to.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # Platform-assigned identifier, unique across both user types
    platform_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)  # 'bot_owner' | 'match'
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gender: Mapped[str] = mapped_column(String(20), nullable=False, default="unknown")
    profile_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class WingmanProfile(Base):
    """Named coaching strategy a bot owner can switch between."""

    __tablename__ = "wingman_profiles"
    __table_args__ = (
        UniqueConstraint("bot_user_id", "profile_name", name="ux_wingman_profiles_owner_name"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    bot_user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_name: Mapped[str] = mapped_column(String(100), nullable=False)
    strategy_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_detect_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    detection_rules: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )
