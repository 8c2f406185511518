"""HTTP endpoints for wingman profiles."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from wingman.api.http.dependencies import get_profile_service, parse_body, parse_query, read_json_body
from wingman.domains.profiles import ProfileService
from wingman.infrastructure.logging import set_request_context
from wingman.schemas.profile import (
    ProfileDeleteQuery,
    ProfileListQuery,
    ProfileListResponse,
    ProfileRead,
    ProfileSaveResponse,
    ProfileUpsert,
)

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("", response_model=ProfileListResponse)
async def list_profiles(
    request: Request,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileListResponse:
    """List the owner's profiles, default first."""
    query = parse_query(ProfileListQuery, request)
    set_request_context(user_id=query.botUserId)
    profiles = await service.list_profiles(owner_platform_id=query.botUserId)
    return ProfileListResponse(profiles=[ProfileRead.model_validate(p) for p in profiles])


@router.post("", response_model=ProfileSaveResponse)
async def save_profile(
    request: Request,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileSaveResponse:
    """Create or update a profile by (owner, name)."""
    payload = parse_body(ProfileUpsert, await read_json_body(request))
    set_request_context(user_id=payload.botUserId)
    profile = await service.save_profile(data=payload)
    return ProfileSaveResponse(profile=ProfileRead.model_validate(profile))


@router.delete("")
async def delete_profile(
    request: Request,
    service: ProfileService = Depends(get_profile_service),
) -> dict[str, Any]:
    query = parse_query(ProfileDeleteQuery, request)
    await service.delete_profile(profile_id=query.profileId)
    return {"success": True}
