"""Wingman analysis service.

Builds the prompt for one conversation, runs it through the fallback
orchestrator and persists the result. Profile lookups are required;
summaries, profile strategy, gender detection and persistence are
best-effort and only logged on failure.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from wingman.ai.cache import PromptCache
from wingman.ai.orchestration import FallbackOrchestrator
from wingman.ai.validation import ResponseRepairer
from wingman.domains.store import (
    PartyProfile,
    RelationshipSummaries,
    StoredMessage,
    SuggestionRecord,
    WingmanStore,
)
from wingman.domains.wingman.context import (
    build_dynamic_content,
    build_relationship_context,
    build_static_content,
    cache_scope_key,
    calculate_tone_level,
    detect_gender,
    format_recent_messages,
    format_tone_line,
    is_group_chat,
    resolve_target_user,
)
from wingman.exceptions import ConversationNotFoundError, RequestValidationFailed
from wingman.prompts import ModelsConfigLoader, PromptLoader
from wingman.schemas.requests import InitRequest, InitResponse, WingmanRequest
from wingman.schemas.suggestion import (
    WINGMAN_RESPONSE_SCHEMA,
    WINGMAN_SHAPE_PATTERN,
    TargetUser,
    WingmanResponse,
    normalize_wingman_payload,
)

logger = logging.getLogger("wingman")


@dataclass
class WingmanAnalysis:
    response: WingmanResponse
    suggestion_id: UUID | None
    model_used: str
    is_fallback: bool

    def to_payload(self) -> dict[str, Any]:
        payload = self.response.model_dump(mode="json", exclude_none=True)
        payload["suggestionId"] = str(self.suggestion_id) if self.suggestion_id else None
        return payload


class WingmanService:
    """Handle ``/init`` and wingman analysis requests."""

    def __init__(
        self,
        store: WingmanStore,
        orchestrator: FallbackOrchestrator,
        prompt_loader: PromptLoader,
        models_loader: ModelsConfigLoader,
        prompt_cache: PromptCache | None = None,
        cache_ttl_seconds: int = 3600,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.prompt_loader = prompt_loader
        self.models_loader = models_loader
        self.prompt_cache = prompt_cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self.repairer = ResponseRepairer(
            WingmanResponse,
            normalizer=normalize_wingman_payload,
            shape_pattern=WINGMAN_SHAPE_PATTERN,
        )

    async def initialize(self, request: InitRequest) -> InitResponse:
        """Register the bot owner and open a pending conversation for the room."""
        user = await self.store.get_or_create_user(
            request.platformId,
            request.username,
            "bot_owner",
            {"initialized_at": datetime.now(UTC).isoformat()},
        )
        conversation = await self.store.get_or_create_conversation(user.id, request.roomPath)

        logger.info(
            "Conversation initialized",
            extra={
                "service": "wingman",
                "conversation_id": str(conversation.id),
                "metadata": {"room_path": request.roomPath, "status": conversation.conversation_status},
            },
        )
        return InitResponse(conversationId=conversation.id, userId=user.platform_id)

    async def analyze(self, request: WingmanRequest) -> WingmanAnalysis:
        start = time.monotonic()

        target_id, target_name = resolve_target_user(request)
        if target_id is None:
            raise RequestValidationFailed(
                "Could not determine who to reply to",
                errors=[{"path": "targetUserId", "message": "No target user in request or recent messages"}],
            )

        messages = request.recentMessages or []
        group = is_group_chat(messages, request.detectedParticipants)
        conversation_type = "group" if group else "one_on_one"

        conversation = await self.store.get_conversation(request.conversationId)
        if conversation is None:
            raise ConversationNotFoundError(request.conversationId)

        party = await self.store.get_or_create_user(
            target_id,
            target_name or "Match",
            "match",
            {"first_seen": datetime.now(UTC).isoformat()},
        )
        if conversation.match_user_id != party.id or conversation.conversation_type != conversation_type:
            await self.store.update_conversation_match(
                conversation.id,
                party.id,
                conversation_type=conversation_type,
                target_user_id=target_id if group else None,
                active_participants=list(request.detectedParticipants or []),
            )

        user = await self.store.fetch_user_profile(request.userId, "bot_owner")

        summaries = await self._fetch_summaries(request.userId, conversation.room_path, target_id)
        tone_level = calculate_tone_level(summaries.closeness_score, summaries.interaction_count)
        strategy = await self._fetch_strategy(user.id, request.profileId, request.autoDetectProfile)

        if messages:
            await self._store_messages(conversation.id, request, user, party)
            party = await self._detect_gender(party, request)

        prompt = await self.prompt_loader.load()
        models = await self.models_loader.aload()
        chain = models.wingman_chain

        static_content = build_static_content(user, party)
        dynamic_content = build_dynamic_content(
            build_relationship_context(summaries),
            format_tone_line(tone_level, summaries.closeness_score, summaries.interaction_count),
            format_recent_messages(messages, group_chat=group, user_id=request.userId),
            strategy=strategy,
        )

        scope_key = cache_scope_key(prompt.version, request.userId, target_id)
        handle = None
        if self.prompt_cache is not None and models.feature_enabled("enable_prompt_caching", True):
            handle = await self.prompt_cache.get_or_create(
                scope_key,
                prompt.content,
                static_content,
                chain[0],
                self.cache_ttl_seconds,
            )

        result = await self.orchestrator.generate(
            prompt.content,
            dynamic_content,
            chain,
            self.repairer,
            static_content=static_content,
            cache_handle=handle,
            cache_scope_key=scope_key,
            response_schema=WINGMAN_RESPONSE_SCHEMA,
        )

        response = result.response.model_copy(
            update={
                "conversationType": conversation_type,
                "detectedParticipants": request.detectedParticipants or result.response.detectedParticipants,
                "targetUser": TargetUser(
                    platformId=party.platform_id,
                    displayName=party.display_name,
                    gender=party.gender if party.gender in ("male", "female", "non_binary") else "unknown",
                )
                if group
                else result.response.targetUser,
            }
        )

        response_time_ms = int((time.monotonic() - start) * 1000)
        suggestion_id = await self._store_suggestion(
            SuggestionRecord(
                conversation_id=conversation.id,
                prompt_context={
                    "user_profile": user.profile_data,
                    "girl_profile": party.profile_data,
                    "prompt_version": prompt.version,
                    "prompt_source": prompt.source,
                    "tone_level": tone_level,
                    "closeness_score": summaries.closeness_score,
                    "interaction_count": summaries.interaction_count,
                    "conversation_type": conversation_type,
                    "is_fallback": result.is_fallback,
                },
                analysis=response.analysis.model_dump(mode="json", exclude_none=True),
                suggestions=[response.suggestion.model_dump(mode="json")],
                wingman_tip=response.wingman_tip,
                response_time_ms=response_time_ms,
                model_used=result.model_used,
                prompt_tokens=result.token_usage.prompt_tokens,
                completion_tokens=result.token_usage.completion_tokens,
                cached_tokens=result.token_usage.cached_tokens,
            )
        )

        logger.info(
            "Wingman analysis completed",
            extra={
                "service": "wingman",
                "conversation_id": str(conversation.id),
                "model_id": result.model_used,
                "used_cache": result.used_cache,
                "duration_ms": response_time_ms,
                "cached_tokens": result.token_usage.cached_tokens,
                "prompt_version": prompt.version,
                "tone_level": tone_level,
                "strategy": "profile" if strategy else None,
            },
        )
        return WingmanAnalysis(
            response=response,
            suggestion_id=suggestion_id,
            model_used=result.model_used,
            is_fallback=result.is_fallback,
        )

    # ------------------------------------------------------------------
    # Best-effort collaborators
    # ------------------------------------------------------------------

    async def _fetch_summaries(self, bot_platform_id: str, room_path: str, target_id: str) -> RelationshipSummaries:
        try:
            return await self.store.fetch_relationship_summaries(bot_platform_id, room_path, target_id)
        except SQLAlchemyError as exc:
            logger.warning(
                "Relationship summaries unavailable",
                extra={"service": "wingman", "operation": "fetch_summaries", "error": str(exc)},
            )
            return RelationshipSummaries()

    async def _fetch_strategy(self, bot_user_id: UUID, profile_id: UUID | None, auto_detect: bool | None) -> str | None:
        try:
            return await self.store.fetch_profile_strategy(bot_user_id, profile_id, auto_detect)
        except SQLAlchemyError as exc:
            logger.warning(
                "Profile strategy unavailable",
                extra={"service": "wingman", "operation": "fetch_strategy", "error": str(exc)},
            )
            return None

    async def _store_messages(
        self,
        conversation_id: UUID,
        request: WingmanRequest,
        user: PartyProfile,
        party: PartyProfile,
    ) -> None:
        messages = [
            StoredMessage(sender=m.sender, text=m.text, timestamp=int(m.timestamp))
            for m in request.recentMessages or []
        ]
        try:
            await self.store.store_messages(conversation_id, messages, user.id, party.id)
        except SQLAlchemyError as exc:
            logger.warning(
                "Failed to store messages",
                extra={"service": "wingman", "operation": "store_messages", "error": str(exc)},
            )

    async def _detect_gender(self, party: PartyProfile, request: WingmanRequest) -> PartyProfile:
        if party.gender != "unknown":
            return party
        texts = [
            m.text
            for m in request.recentMessages or []
            if m.sender != "user" and (m.senderId is None or m.senderId == party.platform_id)
        ]
        gender = detect_gender(texts)
        if gender == "unknown":
            return party
        try:
            await self.store.update_user_gender(party.platform_id, gender)
        except SQLAlchemyError as exc:
            logger.warning(
                "Failed to update gender",
                extra={"service": "wingman", "operation": "update_gender", "error": str(exc)},
            )
            return party
        party.gender = gender
        party.profile_data = {**party.profile_data, "gender": gender}
        return party

    async def _store_suggestion(self, record: SuggestionRecord) -> UUID | None:
        try:
            return await self.store.store_suggestion(record)
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to store suggestion",
                extra={
                    "service": "wingman",
                    "operation": "store_suggestion",
                    "conversation_id": str(record.conversation_id),
                    "error": str(exc),
                },
            )
            return None
