"""Common HTTP dependencies: container and per-request services."""

from __future__ import annotations

import json
from typing import Any, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from wingman.ai.validation.response import format_validation_errors
from wingman.core import Container
from wingman.domains.bot import BotService
from wingman.domains.feedback import FeedbackService
from wingman.domains.profiles import ProfileService
from wingman.domains.wingman import WingmanService
from wingman.exceptions import ConfigurationError, InvalidContentTypeError, InvalidJSONError, RequestValidationFailed
from wingman.infrastructure.database import get_session


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ConfigurationError("Service container not initialized")
    return container


def get_wingman_service(
    container: Container = Depends(get_container),
    session: AsyncSession = Depends(get_session),
) -> WingmanService:
    return container.create_wingman_service(session)


def get_bot_service(
    container: Container = Depends(get_container),
    session: AsyncSession = Depends(get_session),
) -> BotService:
    return container.create_bot_service(session)


def get_feedback_service(
    container: Container = Depends(get_container),
    session: AsyncSession = Depends(get_session),
) -> FeedbackService:
    return container.create_feedback_service(session)


def get_profile_service(
    container: Container = Depends(get_container),
    session: AsyncSession = Depends(get_session),
) -> ProfileService:
    return container.create_profile_service(session)


async def read_json_body(request: Request) -> Any:
    """Return the parsed body; rejects non-JSON content types and bodies."""
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise InvalidContentTypeError("Invalid content type", details={"expected": "application/json"})
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise InvalidJSONError("Invalid JSON", details={"reason": str(exc)}) from exc


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_body(model_cls: type[ModelT], body: Any) -> ModelT:
    try:
        return model_cls.model_validate(body)
    except PydanticValidationError as exc:
        raise RequestValidationFailed(errors=format_validation_errors(exc)) from exc


def parse_query(model_cls: type[ModelT], request: Request) -> ModelT:
    """Validate query parameters with the same error shape as bodies."""
    return parse_body(model_cls, dict(request.query_params))
