"""Integration tests for ProfileService against an in-memory database."""

import uuid

import pytest
import pytest_asyncio

from wingman.domains.profiles import ProfileService
from wingman.domains.repository import SqlWingmanStore
from wingman.exceptions import NotFoundError
from wingman.schemas.profile import ProfileUpsert


@pytest_asyncio.fixture
async def service(db_session):
    store = SqlWingmanStore(db_session)
    await store.get_or_create_user("owner-1", "Sam", "bot_owner")
    await store.get_or_create_user("match-1", "Ana", "match")
    return ProfileService(store)


def upsert(**fields):
    return ProfileUpsert.model_validate({"botUserId": "owner-1", "profileName": "Chill", **fields})


class TestProfileService:
    @pytest.mark.asyncio
    async def test_save_and_list(self, service):
        await service.save_profile(data=upsert(strategyPrompt="keep it light"))
        await service.save_profile(data=upsert(profileName="Bold", isDefault=True, autoDetectEnabled=False))

        profiles = await service.list_profiles(owner_platform_id="owner-1")

        assert [p.profile_name for p in profiles] == ["Bold", "Chill"]
        assert profiles[0].auto_detect_enabled is False
        assert profiles[1].strategy_prompt == "keep it light"

    @pytest.mark.asyncio
    async def test_unknown_owner(self, service):
        with pytest.raises(NotFoundError):
            await service.list_profiles(owner_platform_id="nobody")

    @pytest.mark.asyncio
    async def test_match_cannot_own_profiles(self, service):
        with pytest.raises(NotFoundError):
            await service.save_profile(data=upsert(botUserId="match-1"))

    @pytest.mark.asyncio
    async def test_delete(self, service):
        profile = await service.save_profile(data=upsert())

        await service.delete_profile(profile_id=profile.id)

        assert await service.list_profiles(owner_platform_id="owner-1") == []

    @pytest.mark.asyncio
    async def test_delete_missing_profile(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.delete_profile(profile_id=uuid.uuid4())

        assert exc_info.value.resource == "Profile"
