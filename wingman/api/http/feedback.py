"""HTTP endpoint for suggestion feedback."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from wingman.api.http.dependencies import get_feedback_service, parse_body, read_json_body
from wingman.domains.feedback import FeedbackService
from wingman.infrastructure.logging import set_request_context
from wingman.schemas.feedback import FeedbackCreate, FeedbackRead, FeedbackResponse

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post("", response_model=FeedbackResponse)
async def record_feedback(
    request: Request,
    service: FeedbackService = Depends(get_feedback_service),
) -> FeedbackResponse:
    """Record what happened to a suggestion and return the conversation's metrics."""
    payload = parse_body(FeedbackCreate, await read_json_body(request))
    set_request_context(conversation_id=str(payload.conversationId))
    feedback, metrics = await service.record(data=payload)
    return FeedbackResponse(feedback=FeedbackRead.model_validate(feedback), metrics=metrics)
