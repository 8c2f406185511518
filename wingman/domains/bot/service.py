"""Autonomous room bot: decide whether to speak and what to say."""

from __future__ import annotations

import logging

from wingman.ai.orchestration import FallbackOrchestrator
from wingman.ai.validation import ResponseRepairer
from wingman.domains.bot.context import build_bot_prompt, format_events_as_narrative
from wingman.domains.store import RoomEvent, WingmanStore
from wingman.exceptions import NotFoundError
from wingman.prompts import ModelsConfigLoader
from wingman.prompts.bot import BOT_INSTRUCTIONS
from wingman.schemas.bot import (
    BOT_RESPONSE_SCHEMA,
    BOT_SHAPE_PATTERN,
    BotChatRequest,
    BotEvent,
    BotResponse,
)

logger = logging.getLogger("bot")

HISTORY_LIMIT = 50


def to_room_event(event: BotEvent) -> RoomEvent:
    quoted = event.quotedMessage
    return RoomEvent(
        username=event.username,
        text=event.text,
        timestamp=event.timestamp,
        platform_id=event.platformId,
        type=event.type,
        quoted_text=quoted.text if quoted else None,
        quoted_username=quoted.username if quoted else None,
        quoted_platform_id=quoted.platformId if quoted else None,
    )


class BotService:
    def __init__(
        self,
        store: WingmanStore,
        orchestrator: FallbackOrchestrator,
        models_loader: ModelsConfigLoader,
        instructions: str = BOT_INSTRUCTIONS,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.models_loader = models_loader
        self.instructions = instructions
        self.repairer = ResponseRepairer(BotResponse, shape_pattern=BOT_SHAPE_PATTERN)

    async def respond(self, request: BotChatRequest) -> BotResponse:
        """Generate the bot's reply to a batch of new room events.

        The events are persisted after the prompt narrative is built so the
        history fetch never returns them twice.
        """
        events = [to_room_event(e) for e in request.events]
        user_ids = list(dict.fromkeys(e.platform_id for e in events if e.platform_id))

        bot = await self.store.get_or_create_bot(request.botPlatformId, request.events[0].username)
        room = await self.store.get_or_create_room(request.roomPath)

        history = await self.store.fetch_recent_events(bot.id, room.id, limit=HISTORY_LIMIT)
        context = await self.store.fetch_room_context(bot.id, room.id, user_ids)

        narrative = format_events_as_narrative([*history, *events])
        saved = await self.store.save_events(bot.id, room.id, events)

        logger.debug(
            "Bot context assembled",
            extra={
                "service": "bot",
                "metadata": {
                    "history": len(history),
                    "incoming": len(events),
                    "saved": saved,
                    "user_summaries": len(context.user_summaries),
                },
            },
        )

        result = await self.orchestrator.generate(
            self.instructions,
            build_bot_prompt(bot, context, narrative),
            (await self.models_loader.aload()).bot_chain,
            self.repairer,
            response_schema=BOT_RESPONSE_SCHEMA,
        )

        logger.info(
            "Bot decision",
            extra={
                "service": "bot",
                "model_id": result.model_used,
                "strategy": result.response.strategy.value,
                "tokens_in": result.token_usage.prompt_tokens,
                "tokens_out": result.token_usage.completion_tokens,
                "cached_tokens": result.token_usage.cached_tokens,
                "metadata": {"room_path": request.roomPath, "messages": len(result.response.messages)},
            },
        )
        return result.response

    async def get_config(self, room_path: str, platform_id: str) -> str:
        """Platform id of the bot configured for a room.

        Raises:
            NotFoundError: No bot is configured for that room
        """
        configured = await self.store.fetch_bot_config(room_path, platform_id)
        if configured is None:
            raise NotFoundError("Bot config", room_path, details={"platform_id": platform_id})
        return configured

    async def save_config(self, room_path: str, platform_id: str, username: str | None = None) -> None:
        if username:
            await self.store.get_or_create_bot(platform_id, username)
        await self.store.save_bot_config(room_path, platform_id)
        logger.info(
            "Bot config saved",
            extra={"service": "bot", "metadata": {"room_path": room_path, "platform_id": platform_id}},
        )
