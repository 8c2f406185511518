"""SQLAlchemy implementation of :class:`WingmanStore`."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wingman.domains.store import (
    BotRecord,
    ConversationRecord,
    ConversationType,
    FeedbackRecord,
    PartyProfile,
    ProfileRecord,
    PromptRecord,
    RelationshipSummaries,
    RoomContext,
    RoomEvent,
    RoomRecord,
    StoredMessage,
    SuggestionRecord,
    UserSummary,
    UserType,
    WingmanStore,
)
from wingman.exceptions import NotFoundError
from wingman.models import (
    Bot,
    BotConfig,
    BotSuggestion,
    ChatEvent,
    Conversation,
    Message,
    Prompt,
    Room,
    RoomSummary,
    SuggestionFeedback,
    User,
    UserAndBotGlobalSummary,
    UserAndBotRoomSummary,
    UserRoomSummary,
    WingmanProfile,
)
from wingman.models.bot import DEFAULT_BOT_PERSONALITY

logger = logging.getLogger("db")

# Only these event types are kept in the room log
SAVEABLE_EVENT_TYPES = frozenset({"message", "quoted"})


def _to_profile(user: User) -> PartyProfile:
    return PartyProfile(
        id=user.id,
        platform_id=user.platform_id,
        display_name=user.display_name,
        profile_data=dict(user.profile_data or {}),
        gender=user.gender,
    )


def _to_conversation(row: Conversation) -> ConversationRecord:
    return ConversationRecord(
        id=row.id,
        bot_user_id=row.bot_user_id,
        room_path=row.room_path,
        conversation_status=row.conversation_status,
        conversation_type=row.conversation_type,  # type: ignore[arg-type]
        match_user_id=row.match_user_id,
        target_user_id=row.target_user_id,
    )


def _to_feedback(row: SuggestionFeedback) -> FeedbackRecord:
    return FeedbackRecord(
        id=row.id,
        bot_suggestion_id=row.bot_suggestion_id,
        conversation_id=row.conversation_id,
        user_selected_index=row.user_selected_index,
        user_modified=row.user_modified,
        outcome_score=row.outcome_score,
        match_response_time=row.match_response_time,
        match_engagement=row.match_engagement,
        feedback_notes=row.feedback_notes,
        created_at=row.created_at,
    )


def _to_wingman_profile(row: WingmanProfile) -> ProfileRecord:
    return ProfileRecord(
        id=row.id,
        bot_user_id=row.bot_user_id,
        profile_name=row.profile_name,
        strategy_prompt=row.strategy_prompt,
        settings=dict(row.settings or {}),
        is_default=row.is_default,
        auto_detect_enabled=row.auto_detect_enabled,
        detection_rules=dict(row.detection_rules or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlWingmanStore(WingmanStore):
    """Store backed by one ``AsyncSession``; writes commit immediately."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    async def get_or_create_user(
        self,
        platform_id: str,
        display_name: str | None,
        user_type: UserType,
        profile_data: dict[str, Any] | None = None,
    ) -> PartyProfile:
        result = await self.db.execute(select(User).where(User.platform_id == platform_id))
        user = result.scalar_one_or_none()

        if user is None:
            user = User(
                platform_id=platform_id,
                user_type=user_type,
                display_name=display_name,
                profile_data=dict(profile_data or {}),
            )
            self.db.add(user)
            await self._commit()
            await self.db.refresh(user)
            logger.info(
                "User created",
                extra={"service": "db", "metadata": {"platform_id": platform_id, "user_type": user_type}},
            )
            return _to_profile(user)

        if display_name and user.display_name != display_name:
            user.display_name = display_name
            await self._commit()
            await self.db.refresh(user)
        return _to_profile(user)

    async def fetch_user_profile(self, platform_id: str, user_type: UserType) -> PartyProfile:
        result = await self.db.execute(
            select(User).where(User.platform_id == platform_id, User.user_type == user_type)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User", platform_id, details={"user_type": user_type})
        return _to_profile(user)

    async def update_user_gender(self, platform_id: str, gender: str) -> None:
        result = await self.db.execute(select(User).where(User.platform_id == platform_id))
        user = result.scalar_one_or_none()
        if user is None:
            return
        user.gender = gender
        user.profile_data = {**(user.profile_data or {}), "gender": gender}
        await self._commit()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def get_or_create_conversation(
        self,
        bot_user_id: UUID,
        room_path: str,
        match_user_id: UUID | None = None,
        conversation_type: ConversationType = "one_on_one",
        target_user_id: str | None = None,
        active_participants: list[str] | None = None,
    ) -> ConversationRecord:
        # One-on-one conversations are unique per (owner, room); groups per target
        query = select(Conversation).where(
            Conversation.bot_user_id == bot_user_id,
            Conversation.room_path == room_path,
            Conversation.conversation_type == conversation_type,
        )
        if conversation_type == "group":
            query = query.where(Conversation.target_user_id == target_user_id)
        result = await self.db.execute(query.limit(1))
        conversation = result.scalar_one_or_none()

        if conversation is None:
            conversation = Conversation(bot_user_id=bot_user_id, room_path=room_path)
            self.db.add(conversation)

        conversation.conversation_type = conversation_type
        if match_user_id is not None:
            conversation.match_user_id = match_user_id
        conversation.conversation_status = "active" if conversation.match_user_id else "pending"
        if conversation_type == "group":
            conversation.target_user_id = target_user_id
            conversation.active_participants = list(active_participants or [])

        await self._commit()
        await self.db.refresh(conversation)
        return _to_conversation(conversation)

    async def get_conversation(self, conversation_id: UUID) -> ConversationRecord | None:
        conversation = await self.db.get(Conversation, conversation_id)
        return _to_conversation(conversation) if conversation is not None else None

    async def update_conversation_match(
        self,
        conversation_id: UUID,
        match_user_id: UUID,
        conversation_type: ConversationType = "one_on_one",
        target_user_id: str | None = None,
        active_participants: list[str] | None = None,
    ) -> None:
        conversation = await self.db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)

        conversation.match_user_id = match_user_id
        conversation.conversation_status = "active"
        conversation.conversation_type = conversation_type
        if conversation_type == "group":
            conversation.target_user_id = target_user_id
            conversation.active_participants = list(active_participants or [])
        await self._commit()

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    async def _find_bot_and_room(self, bot_platform_id: str, room_path: str) -> tuple[Bot | None, Room | None]:
        bot = (await self.db.execute(select(Bot).where(Bot.platform_id == bot_platform_id))).scalar_one_or_none()
        room = (await self.db.execute(select(Room).where(Room.room_path == room_path))).scalar_one_or_none()
        return bot, room

    async def fetch_relationship_summaries(
        self,
        bot_platform_id: str,
        room_path: str,
        party_platform_id: str,
    ) -> RelationshipSummaries:
        bot, room = await self._find_bot_and_room(bot_platform_id, room_path)
        if bot is None or room is None:
            logger.debug(
                "Bot or room unknown; no summaries",
                extra={"service": "db", "metadata": {"bot": bot is not None, "room": room is not None}},
            )
            return RelationshipSummaries()

        room_row = (
            await self.db.execute(
                select(UserRoomSummary).where(
                    UserRoomSummary.bot_id == bot.id,
                    UserRoomSummary.room_id == room.id,
                    UserRoomSummary.user_platform_id == party_platform_id,
                )
            )
        ).scalars().first()
        relationship_row = (
            await self.db.execute(
                select(UserAndBotRoomSummary).where(
                    UserAndBotRoomSummary.bot_id == bot.id,
                    UserAndBotRoomSummary.room_id == room.id,
                    UserAndBotRoomSummary.user_platform_id == party_platform_id,
                )
            )
        ).scalars().first()
        global_row = (
            await self.db.execute(
                select(UserAndBotGlobalSummary).where(
                    UserAndBotGlobalSummary.bot_id == bot.id,
                    UserAndBotGlobalSummary.user_platform_id == party_platform_id,
                )
            )
        ).scalars().first()

        return RelationshipSummaries(
            room=room_row.summary if room_row is not None else None,
            relationship=relationship_row.relationship_summary if relationship_row is not None else None,
            global_=global_row.global_summary if global_row is not None else None,
            closeness_score=relationship_row.closeness_score if relationship_row is not None else None,
            interaction_count=relationship_row.interaction_count if relationship_row is not None else None,
        )

    async def fetch_profile_strategy(
        self,
        bot_user_id: UUID,
        profile_id: UUID | None = None,
        auto_detect: bool | None = None,
    ) -> str | None:
        profile: WingmanProfile | None = None
        if profile_id is not None:
            profile = (
                await self.db.execute(
                    select(WingmanProfile).where(
                        WingmanProfile.id == profile_id,
                        WingmanProfile.bot_user_id == bot_user_id,
                    )
                )
            ).scalar_one_or_none()

        if profile is None:
            query = select(WingmanProfile).where(
                WingmanProfile.bot_user_id == bot_user_id,
                WingmanProfile.is_default.is_(True),
            )
            if auto_detect:
                query = query.where(WingmanProfile.auto_detect_enabled.is_(True))
            profile = (await self.db.execute(query.limit(1))).scalar_one_or_none()

        if profile is None or not profile.strategy_prompt:
            return None
        return profile.strategy_prompt

    async def fetch_prompt(self, version: str | None) -> PromptRecord | None:
        query = select(Prompt)
        if version is not None:
            query = query.where(Prompt.version == version)
        else:
            query = query.where(Prompt.is_active.is_(True)).order_by(Prompt.updated_at.desc())
        row = (await self.db.execute(query.limit(1))).scalar_one_or_none()
        return PromptRecord(version=row.version, content=row.content) if row is not None else None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def store_messages(
        self,
        conversation_id: UUID,
        messages: list[StoredMessage],
        user_id: UUID,
        party_id: UUID,
    ) -> None:
        if not messages:
            return
        for message in messages:
            self.db.add(
                Message(
                    conversation_id=conversation_id,
                    sender_id=user_id if message.sender == "user" else party_id,
                    message_text=message.text,
                    message_type="user",
                    timestamp=message.timestamp,
                )
            )
        await self._commit()

    async def store_suggestion(self, record: SuggestionRecord) -> UUID:
        row = BotSuggestion(
            conversation_id=record.conversation_id,
            prompt_context=record.prompt_context,
            analysis=record.analysis,
            suggestions=record.suggestions,
            wingman_tip=record.wingman_tip,
            response_time_ms=record.response_time_ms,
            cached_tokens=record.cached_tokens,
            prompt_tokens=record.prompt_tokens,
            completion_tokens=record.completion_tokens,
            model_used=record.model_used,
        )
        self.db.add(row)
        await self._commit()
        await self.db.refresh(row)
        return row.id

    # ------------------------------------------------------------------
    # Autonomous bot
    # ------------------------------------------------------------------

    async def get_or_create_bot(self, platform_id: str, username: str) -> BotRecord:
        bot = (await self.db.execute(select(Bot).where(Bot.platform_id == platform_id))).scalar_one_or_none()
        if bot is None:
            bot = Bot(platform_id=platform_id, username=username, personality=DEFAULT_BOT_PERSONALITY, config={})
            self.db.add(bot)
            await self._commit()
            await self.db.refresh(bot)
            logger.info(
                "Bot created",
                extra={"service": "db", "metadata": {"platform_id": platform_id, "username": username}},
            )
        return BotRecord(id=bot.id, platform_id=bot.platform_id, username=bot.username, personality=bot.personality)

    async def get_or_create_room(self, room_path: str) -> RoomRecord:
        room = (await self.db.execute(select(Room).where(Room.room_path == room_path))).scalar_one_or_none()
        if room is None:
            room = Room(room_path=room_path)
            self.db.add(room)
            await self._commit()
            await self.db.refresh(room)
        return RoomRecord(id=room.id, room_path=room.room_path)

    async def fetch_recent_events(self, bot_id: UUID, room_id: UUID, limit: int = 50) -> list[RoomEvent]:
        result = await self.db.execute(
            select(ChatEvent)
            .where(ChatEvent.bot_id == bot_id, ChatEvent.room_id == room_id)
            .order_by(ChatEvent.timestamp.desc())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        rows.reverse()
        events = []
        for row in rows:
            metadata = row.event_metadata or {}
            events.append(
                RoomEvent(
                    username=row.user_display_name,
                    text=row.message_text,
                    timestamp=row.timestamp,
                    platform_id=row.user_platform_id,
                    type=row.message_type or "message",
                    quoted_text=metadata.get("quoted_message"),
                    quoted_username=metadata.get("quoted_user"),
                    quoted_platform_id=metadata.get("quoted_platform_id"),
                )
            )
        return events

    async def fetch_room_context(
        self,
        bot_id: UUID,
        room_id: UUID,
        user_platform_ids: list[str],
    ) -> RoomContext:
        room_summary = (
            await self.db.execute(
                select(RoomSummary).where(RoomSummary.bot_id == bot_id, RoomSummary.room_id == room_id)
            )
        ).scalars().first()
        context = RoomContext(
            room_summary=room_summary.summary if room_summary is not None else None,
            room_mood=room_summary.mood if room_summary is not None else None,
        )
        if not user_platform_ids:
            return context

        user_rows = (
            await self.db.execute(
                select(UserRoomSummary).where(
                    UserRoomSummary.bot_id == bot_id,
                    UserRoomSummary.room_id == room_id,
                    UserRoomSummary.user_platform_id.in_(user_platform_ids),
                )
            )
        ).scalars().all()
        relationship_rows = (
            await self.db.execute(
                select(UserAndBotRoomSummary).where(
                    UserAndBotRoomSummary.bot_id == bot_id,
                    UserAndBotRoomSummary.room_id == room_id,
                    UserAndBotRoomSummary.user_platform_id.in_(user_platform_ids),
                )
            )
        ).scalars().all()
        global_rows = (
            await self.db.execute(
                select(UserAndBotGlobalSummary).where(
                    UserAndBotGlobalSummary.bot_id == bot_id,
                    UserAndBotGlobalSummary.user_platform_id.in_(user_platform_ids),
                )
            )
        ).scalars().all()

        context.user_summaries = [
            UserSummary(row.user_platform_id, row.user_display_name, row.summary) for row in user_rows
        ]
        context.relationship_summaries = [
            UserSummary(row.user_platform_id, row.user_display_name, row.relationship_summary, row.closeness_score)
            for row in relationship_rows
        ]
        context.global_summaries = [
            UserSummary(row.user_platform_id, row.user_display_name, row.global_summary) for row in global_rows
        ]
        return context

    async def save_events(self, bot_id: UUID, room_id: UUID, events: list[RoomEvent]) -> int:
        saveable = [event for event in events if event.type in SAVEABLE_EVENT_TYPES]
        if not saveable:
            return 0
        for event in saveable:
            self.db.add(
                ChatEvent(
                    bot_id=bot_id,
                    room_id=room_id,
                    user_platform_id=event.platform_id,
                    user_display_name=event.username,
                    message_text=event.text,
                    message_type=event.type,
                    timestamp=event.timestamp,
                    event_metadata={
                        "quoted_message": event.quoted_text,
                        "quoted_user": event.quoted_username,
                        "quoted_platform_id": event.quoted_platform_id,
                    },
                )
            )
        await self._commit()
        return len(saveable)

    async def fetch_bot_config(self, room_path: str, platform_id: str) -> str | None:
        return (
            await self.db.execute(
                select(BotConfig.platform_id).where(
                    BotConfig.room_path == room_path,
                    BotConfig.platform_id == platform_id,
                )
            )
        ).scalar_one_or_none()

    async def save_bot_config(self, room_path: str, platform_id: str) -> None:
        if await self.fetch_bot_config(room_path, platform_id) is not None:
            return
        self.db.add(BotConfig(room_path=room_path, platform_id=platform_id))
        try:
            await self._commit()
        except IntegrityError:
            # Another request saved the same pair first
            logger.debug(
                "Bot config already saved",
                extra={"service": "db", "metadata": {"room_path": room_path, "platform_id": platform_id}},
            )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    async def record_feedback(self, record: FeedbackRecord) -> FeedbackRecord | None:
        suggestion = await self.db.get(BotSuggestion, record.bot_suggestion_id)
        if suggestion is None or suggestion.conversation_id != record.conversation_id:
            return None

        row = SuggestionFeedback(
            bot_suggestion_id=record.bot_suggestion_id,
            conversation_id=record.conversation_id,
            user_selected_index=record.user_selected_index,
            user_modified=record.user_modified,
            outcome_score=record.outcome_score,
            match_response_time=record.match_response_time,
            match_engagement=record.match_engagement,
            feedback_notes=record.feedback_notes,
        )
        self.db.add(row)
        suggestion.suggestion_used = True
        suggestion.usage_timestamp = datetime.utcnow()
        suggestion.modified_before_use = record.user_modified
        suggestion.user_selected_index = record.user_selected_index
        await self._commit()
        await self.db.refresh(row)
        return _to_feedback(row)

    async def list_feedback(self, conversation_id: UUID) -> list[FeedbackRecord]:
        result = await self.db.execute(
            select(SuggestionFeedback)
            .where(SuggestionFeedback.conversation_id == conversation_id)
            .order_by(SuggestionFeedback.created_at)
        )
        return [_to_feedback(row) for row in result.scalars().all()]

    # ------------------------------------------------------------------
    # Wingman profiles
    # ------------------------------------------------------------------

    async def list_profiles(self, bot_user_id: UUID) -> list[ProfileRecord]:
        result = await self.db.execute(
            select(WingmanProfile)
            .where(WingmanProfile.bot_user_id == bot_user_id)
            .order_by(WingmanProfile.is_default.desc(), WingmanProfile.created_at.desc())
        )
        return [_to_wingman_profile(row) for row in result.scalars().all()]

    async def upsert_profile(
        self,
        bot_user_id: UUID,
        profile_name: str,
        *,
        strategy_prompt: str | None = None,
        settings: dict[str, Any] | None = None,
        is_default: bool = False,
        auto_detect_enabled: bool = True,
        detection_rules: dict[str, Any] | None = None,
    ) -> ProfileRecord:
        if is_default:
            await self.db.execute(
                update(WingmanProfile)
                .where(WingmanProfile.bot_user_id == bot_user_id, WingmanProfile.profile_name != profile_name)
                .values(is_default=False)
            )

        profile = (
            await self.db.execute(
                select(WingmanProfile).where(
                    WingmanProfile.bot_user_id == bot_user_id,
                    WingmanProfile.profile_name == profile_name,
                )
            )
        ).scalar_one_or_none()
        if profile is None:
            profile = WingmanProfile(bot_user_id=bot_user_id, profile_name=profile_name)
            self.db.add(profile)

        profile.strategy_prompt = strategy_prompt
        profile.settings = dict(settings or {})
        profile.is_default = is_default
        profile.auto_detect_enabled = auto_detect_enabled
        profile.detection_rules = dict(detection_rules or {})
        profile.updated_at = datetime.utcnow()
        await self._commit()
        await self.db.refresh(profile)
        logger.info(
            "Wingman profile saved",
            extra={
                "service": "db",
                "metadata": {"profile_id": str(profile.id), "profile_name": profile_name, "is_default": is_default},
            },
        )
        return _to_wingman_profile(profile)

    async def delete_profile(self, profile_id: UUID) -> bool:
        profile = await self.db.get(WingmanProfile, profile_id)
        if profile is None:
            return False
        await self.db.delete(profile)
        await self._commit()
        return True
