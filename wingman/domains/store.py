"""Data store port used by the request services.

Services depend on :class:`WingmanStore`; the SQLAlchemy implementation
lives in :mod:`wingman.domains.repository`. Implementations raise on
failure; the services decide which failures are fatal.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

UserType = Literal["bot_owner", "match"]
ConversationType = Literal["one_on_one", "group"]


@dataclass
class PartyProfile:
    """A chat participant as the prompt builder sees them."""

    id: UUID
    platform_id: str
    display_name: str | None
    profile_data: dict[str, Any] = field(default_factory=dict)
    gender: str = "unknown"


@dataclass
class ConversationRecord:
    id: UUID
    bot_user_id: UUID
    room_path: str
    conversation_status: str
    conversation_type: ConversationType = "one_on_one"
    match_user_id: UUID | None = None
    target_user_id: str | None = None


@dataclass
class RelationshipSummaries:
    """What the bot knows about one party.

    Summary values are either plain strings or dicts written by the
    summarizer (``{"summary": ...}``, ``{"relationshipSummary": ...}``,
    ``{"globalRelationshipSummary": ...}``).
    """

    room: Any = None
    relationship: Any = None
    global_: Any = None
    closeness_score: float | None = None
    interaction_count: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.room is None and self.relationship is None and self.global_ is None


@dataclass
class SuggestionRecord:
    """A generated suggestion plus the metadata kept for prompt analysis."""

    conversation_id: UUID
    prompt_context: dict[str, Any]
    analysis: dict[str, Any]
    suggestions: list[dict[str, Any]]
    wingman_tip: str
    response_time_ms: int
    model_used: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cached_tokens: int = 0


@dataclass
class StoredMessage:
    sender: Literal["user", "girl"]
    text: str
    timestamp: int


@dataclass
class BotRecord:
    id: UUID
    platform_id: str
    username: str
    personality: str


@dataclass
class RoomRecord:
    id: UUID
    room_path: str


@dataclass
class RoomEvent:
    """One room event, either loaded from history or freshly received."""

    username: str
    text: str
    timestamp: int
    platform_id: str | None = None
    type: str = "message"
    quoted_text: str | None = None
    quoted_username: str | None = None
    quoted_platform_id: str | None = None


@dataclass
class UserSummary:
    platform_id: str
    display_name: str | None
    summary: Any = None
    closeness_score: float | None = None


@dataclass
class RoomContext:
    """Read-only summaries a bot uses to write its prompt."""

    room_summary: str | None = None
    room_mood: str | None = None
    user_summaries: list[UserSummary] = field(default_factory=list)
    relationship_summaries: list[UserSummary] = field(default_factory=list)
    global_summaries: list[UserSummary] = field(default_factory=list)


@dataclass
class PromptRecord:
    version: str
    content: str


@dataclass
class FeedbackRecord:
    """Outcome of one shown suggestion, as reported by the extension."""

    bot_suggestion_id: UUID
    conversation_id: UUID
    user_selected_index: int | None = None
    user_modified: bool = False
    outcome_score: float | None = None
    match_response_time: int | None = None
    match_engagement: str | None = None
    feedback_notes: str | None = None
    id: UUID | None = None
    created_at: datetime | None = None


@dataclass
class ProfileRecord:
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


class WingmanStore(ABC):
    """Keyed lookups and inserts needed by the wingman and bot services."""

    # Participants ---------------------------------------------------------

    @abstractmethod
    async def get_or_create_user(
        self,
        platform_id: str,
        display_name: str | None,
        user_type: UserType,
        profile_data: dict[str, Any] | None = None,
    ) -> PartyProfile:
        """Return the user with ``platform_id``, creating it if missing."""

    @abstractmethod
    async def fetch_user_profile(self, platform_id: str, user_type: UserType) -> PartyProfile:
        """Raises NotFoundError when no such user exists."""

    @abstractmethod
    async def update_user_gender(self, platform_id: str, gender: str) -> None:
        ...

    # Conversations --------------------------------------------------------

    @abstractmethod
    async def get_or_create_conversation(
        self,
        bot_user_id: UUID,
        room_path: str,
        match_user_id: UUID | None = None,
        conversation_type: ConversationType = "one_on_one",
        target_user_id: str | None = None,
        active_participants: list[str] | None = None,
    ) -> ConversationRecord:
        ...

    @abstractmethod
    async def get_conversation(self, conversation_id: UUID) -> ConversationRecord | None:
        ...

    @abstractmethod
    async def update_conversation_match(
        self,
        conversation_id: UUID,
        match_user_id: UUID,
        conversation_type: ConversationType = "one_on_one",
        target_user_id: str | None = None,
        active_participants: list[str] | None = None,
    ) -> None:
        ...

    # Context --------------------------------------------------------------

    @abstractmethod
    async def fetch_relationship_summaries(
        self,
        bot_platform_id: str,
        room_path: str,
        party_platform_id: str,
    ) -> RelationshipSummaries:
        """Empty summaries when the bot or room is unknown."""

    @abstractmethod
    async def fetch_profile_strategy(
        self,
        bot_user_id: UUID,
        profile_id: UUID | None = None,
        auto_detect: bool | None = None,
    ) -> str | None:
        """Strategy text of the requested profile, else of the default one."""

    @abstractmethod
    async def fetch_prompt(self, version: str | None) -> PromptRecord | None:
        """Prompt by version; the most recently updated active one if None."""

    # Persistence ----------------------------------------------------------

    @abstractmethod
    async def store_messages(
        self,
        conversation_id: UUID,
        messages: list[StoredMessage],
        user_id: UUID,
        party_id: UUID,
    ) -> None:
        ...

    @abstractmethod
    async def store_suggestion(self, record: SuggestionRecord) -> UUID:
        ...

    # Autonomous bot -------------------------------------------------------

    @abstractmethod
    async def get_or_create_bot(self, platform_id: str, username: str) -> BotRecord:
        ...

    @abstractmethod
    async def get_or_create_room(self, room_path: str) -> RoomRecord:
        ...

    @abstractmethod
    async def fetch_recent_events(self, bot_id: UUID, room_id: UUID, limit: int = 50) -> list[RoomEvent]:
        """Latest ``limit`` events, oldest first."""

    @abstractmethod
    async def fetch_room_context(
        self,
        bot_id: UUID,
        room_id: UUID,
        user_platform_ids: list[str],
    ) -> RoomContext:
        ...

    @abstractmethod
    async def save_events(self, bot_id: UUID, room_id: UUID, events: list[RoomEvent]) -> int:
        """Persist message-like events; returns how many were saved."""

    @abstractmethod
    async def fetch_bot_config(self, room_path: str, platform_id: str) -> str | None:
        """Platform id of the bot configured for the room, if any."""

    @abstractmethod
    async def save_bot_config(self, room_path: str, platform_id: str) -> None:
        """Idempotent: saving the same pair twice keeps one row."""

    # Feedback -------------------------------------------------------------

    @abstractmethod
    async def record_feedback(self, record: FeedbackRecord) -> FeedbackRecord | None:
        """Insert feedback and mark the suggestion used, in one commit.

        Returns None when the suggestion does not exist in that conversation.
        """

    @abstractmethod
    async def list_feedback(self, conversation_id: UUID) -> list[FeedbackRecord]:
        ...

    # Wingman profiles -----------------------------------------------------

    @abstractmethod
    async def list_profiles(self, bot_user_id: UUID) -> list[ProfileRecord]:
        """Default profile first, then newest first."""

    @abstractmethod
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
        """Create or replace the owner's profile with that name.

        Marking a profile default clears the flag on the owner's others.
        """

    @abstractmethod
    async def delete_profile(self, profile_id: UUID) -> bool:
        """False when no such profile existed."""
