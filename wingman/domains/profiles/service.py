"""Wingman profiles: named coaching strategies owned by a bot owner."""

from __future__ import annotations

import logging
from uuid import UUID

from wingman.domains.store import ProfileRecord, WingmanStore
from wingman.exceptions import NotFoundError
from wingman.schemas.profile import ProfileUpsert

logger = logging.getLogger("profiles")


class ProfileService:
    def __init__(self, store: WingmanStore):
        self.store = store

    async def list_profiles(self, *, owner_platform_id: str) -> list[ProfileRecord]:
        """Raises NotFoundError when the owner has never been initialized."""
        owner = await self.store.fetch_user_profile(owner_platform_id, "bot_owner")
        return await self.store.list_profiles(owner.id)

    async def save_profile(self, *, data: ProfileUpsert) -> ProfileRecord:
        owner = await self.store.fetch_user_profile(data.botUserId, "bot_owner")
        profile = await self.store.upsert_profile(
            owner.id,
            data.profileName,
            strategy_prompt=data.strategyPrompt,
            settings=data.settings,
            is_default=data.isDefault,
            auto_detect_enabled=data.autoDetectEnabled,
            detection_rules=data.detectionRules,
        )
        logger.info(
            "Profile saved",
            extra={
                "service": "profiles",
                "metadata": {"owner": data.botUserId, "profile_name": data.profileName, "is_default": data.isDefault},
            },
        )
        return profile

    async def delete_profile(self, *, profile_id: UUID) -> None:
        if not await self.store.delete_profile(profile_id):
            raise NotFoundError("Profile", profile_id)
        logger.info(
            "Profile deleted",
            extra={"service": "profiles", "metadata": {"profile_id": str(profile_id)}},
        )
