"""Autonomous room bot endpoints: chat turns and the per-room bot config."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from wingman.api.http.dependencies import get_bot_service, parse_body, parse_query, read_json_body
from wingman.domains.bot import BotService
from wingman.infrastructure.logging import set_request_context
from wingman.schemas.bot import BotChatRequest, BotConfigQuery, BotConfigSave

router = APIRouter(tags=["bot"])


@router.post("/bot")
async def bot_respond(
    request: Request,
    service: BotService = Depends(get_bot_service),
) -> dict[str, Any]:
    payload = parse_body(BotChatRequest, await read_json_body(request))
    set_request_context(user_id=payload.botPlatformId)
    response = await service.respond(payload)
    return response.model_dump(mode="json")


@router.get("/config")
async def get_bot_config(
    request: Request,
    service: BotService = Depends(get_bot_service),
) -> dict[str, Any]:
    """Return the bot account configured for ``roomId``."""
    query = parse_query(BotConfigQuery, request)
    platform_id = await service.get_config(query.roomId, query.platformId)
    return {"platformId": platform_id}


@router.post("/config")
async def save_bot_config(
    request: Request,
    service: BotService = Depends(get_bot_service),
) -> dict[str, Any]:
    payload = parse_body(BotConfigSave, await read_json_body(request))
    set_request_context(user_id=payload.platformId)
    await service.save_config(payload.roomId, payload.platformId, payload.username)
    return {"success": True}
