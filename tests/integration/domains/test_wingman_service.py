"""Integration tests for WingmanService against an in-memory database."""

import json
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from wingman.ai.orchestration import FallbackOrchestrator, RunningStats
from wingman.ai.providers.base import (
    CacheHandle,
    GenerationResult,
    LLMProvider,
    ProviderName,
    TokenUsage,
)
from wingman.domains.repository import SqlWingmanStore
from wingman.domains.wingman import WingmanService
from wingman.exceptions import (
    ConversationNotFoundError,
    NotFoundError,
    ProviderError,
    ProvidersExhaustedError,
    RequestValidationFailed,
)
from wingman.models import Bot, BotSuggestion, Conversation, Message, Room, User, UserAndBotRoomSummary, WingmanProfile
from wingman.prompts import BUILTIN_MODELS_CONFIG, PromptLoader
from wingman.schemas.requests import InitRequest, RecentMessage, WingmanRequest

BASE_TS = 1_700_000_000_000

MODEL_OUTPUT = {
    "analysis": {
        "her_last_message_feeling": "excited",
        "conversation_vibe": "playful",
        "recommended_goal": "ask her out",
    },
    "suggestion": {
        "type": "Playful/Humorous",
        "text": "ok but who won",
        "rationale": "Keeps the story going",
    },
    "wingman_tip": "Don't double text.",
}


class RecordingProvider(LLMProvider):
    def __init__(self, raw_text=None, error=None):
        self.raw_text = raw_text or json.dumps(MODEL_OUTPUT)
        self.error = error
        self.calls = []

    @property
    def name(self) -> str:
        return "recording"

    async def generate(self, system_prompt, dynamic_prompt, config, cache_handle=None, response_schema=None):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "dynamic_prompt": dynamic_prompt,
                "model_id": config.model_id,
                "cache_handle": cache_handle,
                "response_schema": response_schema,
            }
        )
        if self.error is not None:
            raise self.error
        return GenerationResult(
            raw_text=self.raw_text,
            model_id=config.model_id,
            token_usage=TokenUsage(prompt_tokens=900, completion_tokens=80, cached_tokens=700, total_tokens=980),
        )


class StaticModelsLoader:
    async def aload(self):
        return BUILTIN_MODELS_CONFIG


async def _noop_sleep(_delay):
    return None


def make_service(session, provider, prompt_cache=None):
    orchestrator = FallbackOrchestrator({ProviderName.GEMINI: provider}, RunningStats(), sleep=_noop_sleep)
    return WingmanService(
        store=SqlWingmanStore(session),
        orchestrator=orchestrator,
        prompt_loader=PromptLoader(),
        models_loader=StaticModelsLoader(),
        prompt_cache=prompt_cache,
    )


def recent(text, sender="girl", sender_id="match-1", name="Ana", offset_s=0):
    return RecentMessage(
        sender=sender,
        senderId=sender_id,
        senderName=name,
        text=text,
        timestamp=BASE_TS + offset_s * 1000,
    )


@pytest.fixture
def provider():
    return RecordingProvider()


@pytest_asyncio.fixture
async def conversation_id(db_session, provider):
    service = make_service(db_session, provider)
    response = await service.initialize(InitRequest(platformId="owner-1", username="Sam", roomPath="/room/abc"))
    return response.conversationId


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_owner_and_pending_conversation(self, db_session, provider):
        service = make_service(db_session, provider)

        response = await service.initialize(InitRequest(platformId="owner-1", username="Sam", roomPath="/room/abc"))

        assert response.userId == "owner-1"
        assert response.status == "initialized"
        conversation = await db_session.get(Conversation, response.conversationId)
        assert conversation.conversation_status == "pending"
        owner = (await db_session.execute(select(User).where(User.platform_id == "owner-1"))).scalar_one()
        assert owner.user_type == "bot_owner"
        assert "initialized_at" in owner.profile_data

    @pytest.mark.asyncio
    async def test_is_idempotent_per_room(self, db_session, provider):
        service = make_service(db_session, provider)
        request = InitRequest(platformId="owner-1", username="Sam", roomPath="/room/abc")

        first = await service.initialize(request)
        second = await service.initialize(request)

        assert first.conversationId == second.conversationId


class TestAnalyze:
    """Tests for WingmanService.analyze."""

    @pytest.mark.asyncio
    async def test_one_on_one_flow(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        request = WingmanRequest(
            conversationId=conversation_id,
            userId="owner-1",
            girlId="match-1",
            girlName="Ana",
            recentMessages=[
                recent("guess what happened at the game", offset_s=0),
                recent("tell me", sender="user", sender_id="owner-1", name="Sam", offset_s=5),
            ],
        )

        analysis = await service.analyze(request)

        assert analysis.model_used == "gemini-2.5-flash"
        assert analysis.is_fallback is False
        assert analysis.response.conversationType == "one_on_one"
        assert analysis.response.suggestion.text == "ok but who won"
        assert analysis.suggestion_id is not None

        call = provider.calls[0]
        assert call["system_prompt"] == (await PromptLoader().load()).content
        assert "USER INFO:\nName: Sam" in call["dynamic_prompt"]
        assert "GIRL INFO:\nName: Ana" in call["dynamic_prompt"]
        assert "RELATIONSHIP CONTEXT: No prior history - first interaction" in call["dynamic_prompt"]
        assert "CURRENT RELATIONSHIP: very_shy" in call["dynamic_prompt"]
        assert '[22:13:20] Her: "guess what happened at the game"' in call["dynamic_prompt"]
        assert call["response_schema"]["required"] == ["analysis", "suggestion", "wingman_tip"]

        conversation = await db_session.get(Conversation, conversation_id)
        await db_session.refresh(conversation)
        assert conversation.conversation_status == "active"
        assert conversation.match_user_id is not None

        messages = (await db_session.execute(select(Message))).scalars().all()
        assert len(messages) == 2

        row = await db_session.get(BotSuggestion, analysis.suggestion_id)
        assert row.model_used == "gemini-2.5-flash"
        assert row.cached_tokens == 700
        assert row.prompt_context["prompt_version"] == "2.1.0"
        assert row.prompt_context["tone_level"] == "very_shy"
        assert row.prompt_context["is_fallback"] is False
        assert row.suggestions == [MODEL_OUTPUT["suggestion"]]

    @pytest.mark.asyncio
    async def test_payload_includes_suggestion_id(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)

        analysis = await service.analyze(
            WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1")
        )
        payload = analysis.to_payload()

        assert payload["suggestionId"] == str(analysis.suggestion_id)
        assert payload["analysis"]["conversation_vibe"] == "playful"
        assert "their_last_message_feeling" not in payload["analysis"]
        assert payload["conversationType"] == "one_on_one"

    @pytest.mark.asyncio
    async def test_group_chat_sets_target(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        request = WingmanRequest(
            conversationId=conversation_id,
            userId="owner-1",
            targetUserId="m2",
            detectedParticipants=["m1", "m2"],
            recentMessages=[
                recent("anyone up", sender_id="m1", name="Ana"),
                recent("me", sender_id="m2", name="Bea", offset_s=2),
            ],
        )

        analysis = await service.analyze(request)

        assert analysis.response.conversationType == "group"
        assert analysis.response.detectedParticipants == ["m1", "m2"]
        assert analysis.response.targetUser.platformId == "m2"
        assert analysis.response.targetUser.displayName == "Bea"
        assert 'Bea: "me"' in provider.calls[0]["dynamic_prompt"]

        conversation = await db_session.get(Conversation, conversation_id)
        await db_session.refresh(conversation)
        assert conversation.conversation_type == "group"
        assert conversation.target_user_id == "m2"
        assert conversation.active_participants == ["m1", "m2"]

    @pytest.mark.asyncio
    async def test_relationship_summaries_shape_tone(self, db_session, provider, conversation_id):
        bot = Bot(platform_id="owner-1", username="sam")
        room = Room(room_path="/room/abc")
        db_session.add_all([bot, room])
        await db_session.flush()
        db_session.add(
            UserAndBotRoomSummary(
                bot_id=bot.id,
                room_id=room.id,
                user_platform_id="match-1",
                relationship_summary={"relationshipSummary": "lots of inside jokes"},
                closeness_score=8,
                interaction_count=30,
            )
        )
        await db_session.commit()
        service = make_service(db_session, provider)

        await service.analyze(WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1"))

        dynamic = provider.calls[0]["dynamic_prompt"]
        assert "RELATIONSHIP CONTEXT: Relationship: lots of inside jokes" in dynamic
        assert "CURRENT RELATIONSHIP: casual_friend (closeness: 8.0/10, interactions: 30)" in dynamic

    @pytest.mark.asyncio
    async def test_profile_strategy_is_prepended(self, db_session, provider, conversation_id):
        owner = (await db_session.execute(select(User).where(User.platform_id == "owner-1"))).scalar_one()
        db_session.add(
            WingmanProfile(bot_user_id=owner.id, profile_name="default", strategy_prompt="Be bold", is_default=True)
        )
        await db_session.commit()
        service = make_service(db_session, provider)

        await service.analyze(WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1"))

        assert "PROFILE STRATEGY:\nBe bold\n\nRELATIONSHIP CONTEXT:" in provider.calls[0]["dynamic_prompt"]

    @pytest.mark.asyncio
    async def test_gender_detected_from_messages(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        request = WingmanRequest(
            conversationId=conversation_id,
            userId="owner-1",
            girlId="match-1",
            recentMessages=[recent("my sister and her dog say hi")],
        )

        await service.analyze(request)

        match = (await db_session.execute(select(User).where(User.platform_id == "match-1"))).scalar_one()
        await db_session.refresh(match)
        assert match.gender == "female"

    @pytest.mark.asyncio
    async def test_prompt_cache_handle_is_used(self, db_session, provider, conversation_id):
        handle = CacheHandle(key="k", remote_reference="cachedContents/abc", expires_at=9e12)
        prompt_cache = MagicMock()
        prompt_cache.get_or_create = AsyncMock(return_value=handle)
        service = make_service(db_session, provider, prompt_cache=prompt_cache)

        await service.analyze(WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1"))

        args = prompt_cache.get_or_create.call_args.args
        assert args[0] == "wingman_2.1.0_owner-1_match-1"
        assert args[2].startswith("USER INFO:")
        assert args[3].model_id == "gemini-2.5-flash"
        assert provider.calls[0]["cache_handle"] is handle
        # With a cache the static profile block is not repeated in the request
        assert "USER INFO:" not in provider.calls[0]["dynamic_prompt"]


class TestAnalyzeFailures:
    @pytest.mark.asyncio
    async def test_unknown_conversation(self, db_session, provider):
        service = make_service(db_session, provider)

        with pytest.raises(ConversationNotFoundError):
            await service.analyze(WingmanRequest(conversationId=uuid.uuid4(), userId="owner-1", girlId="match-1"))

        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unknown_owner(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)

        with pytest.raises(NotFoundError):
            await service.analyze(WingmanRequest(conversationId=conversation_id, userId="stranger", girlId="match-1"))

    @pytest.mark.asyncio
    async def test_no_target_user(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        request = WingmanRequest(
            conversationId=conversation_id,
            userId="owner-1",
            recentMessages=[recent("hi", sender_id=None, name=None)],
        )

        with pytest.raises(RequestValidationFailed):
            await service.analyze(request)

    @pytest.mark.asyncio
    async def test_exhaustion_propagates(self, db_session, conversation_id):
        provider = RecordingProvider(error=ProviderError("gemini", "x", "unauthorized", status_code=401))
        service = make_service(db_session, provider)

        with pytest.raises(ProvidersExhaustedError):
            await service.analyze(WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1"))

        assert len(provider.calls) == len(BUILTIN_MODELS_CONFIG.wingman_chain)

    @pytest.mark.asyncio
    async def test_suggestion_persistence_failure_is_not_fatal(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        service.store.store_suggestion = AsyncMock(side_effect=SQLAlchemyError("disk full"))

        analysis = await service.analyze(
            WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1")
        )

        assert analysis.suggestion_id is None
        assert analysis.to_payload()["suggestionId"] is None

    @pytest.mark.asyncio
    async def test_summary_failure_is_not_fatal(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        service.store.fetch_relationship_summaries = AsyncMock(side_effect=SQLAlchemyError("timeout"))
        service.store.fetch_profile_strategy = AsyncMock(side_effect=SQLAlchemyError("timeout"))

        analysis = await service.analyze(
            WingmanRequest(conversationId=conversation_id, userId="owner-1", girlId="match-1")
        )

        assert analysis.suggestion_id is not None
        assert "No prior history" in provider.calls[0]["dynamic_prompt"]

    @pytest.mark.asyncio
    async def test_message_persistence_failure_is_not_fatal(self, db_session, provider, conversation_id):
        service = make_service(db_session, provider)
        service.store.store_messages = AsyncMock(side_effect=SQLAlchemyError("locked"))

        analysis = await service.analyze(
            WingmanRequest(
                conversationId=conversation_id,
                userId="owner-1",
                girlId="match-1",
                recentMessages=[recent("hey")],
            )
        )

        assert analysis.response.wingman_tip == "Don't double text."
