"""Wingman endpoints consumed by the browser extension.

Bodies are parsed by hand so that content-type and JSON errors produce the
same ``{"error": ...}`` shape as validation errors.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from wingman.api.http.dependencies import get_wingman_service, parse_body, read_json_body
from wingman.domains.wingman import WingmanService
from wingman.infrastructure.logging import set_request_context
from wingman.schemas.requests import InitRequest, WingmanRequest

router = APIRouter(tags=["wingman"])


@router.post("/init")
async def init_conversation(
    request: Request,
    service: WingmanService = Depends(get_wingman_service),
) -> dict[str, Any]:
    """Register the bot owner and return the conversation id for the room."""
    payload = parse_body(InitRequest, await read_json_body(request))
    set_request_context(user_id=payload.platformId)
    result = await service.initialize(payload)
    return result.model_dump(mode="json")


@router.post("/")
async def analyze_conversation(
    request: Request,
    service: WingmanService = Depends(get_wingman_service),
) -> dict[str, Any]:
    """Return an analysis and reply suggestion for the current conversation."""
    payload = parse_body(WingmanRequest, await read_json_body(request))
    set_request_context(user_id=payload.userId, conversation_id=str(payload.conversationId))
    analysis = await service.analyze(payload)
    return analysis.to_payload()
