import base64
from datetime import datetime, timezone

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskpilot.core.identity import Identity
from taskpilot.models import (
    Avatar,
    FamilyMember,
    ProfilePreferences,
    ProfileResponse,
    ProfileUpdate,
    UserProfile,
    as_utc,
)

import logging

logger = logging.getLogger(__name__)

MAX_AVATAR_BYTES = 1024 * 1024


def avatar_size_bytes(avatar: str) -> int:
    """Decoded size of a base64 avatar, with or without a ``data:`` URL prefix.

    Raises ValueError (binascii.Error) on malformed base64.
    """
    payload = avatar.split(",", 1)[1] if "," in avatar else avatar
    return len(base64.b64decode(payload))


def display_avatar(profile: UserProfile) -> Avatar:
    if profile.avatar and profile.avatar_type != "emoji":
        return Avatar(type=profile.avatar_type, data=profile.avatar)
    return Avatar(type="emoji", data=profile.avatar or profile.default_emoji)


def to_response(profile: UserProfile) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        email=profile.email,
        name=profile.name,
        avatar=display_avatar(profile),
        preferences=ProfilePreferences.model_validate(profile.preferences or {}),
        created_at=as_utc(profile.created_at),
        updated_at=as_utc(profile.updated_at),
    )


def to_member(profile: UserProfile) -> FamilyMember:
    return FamilyMember(
        user_id=profile.user_id,
        email=profile.email,
        name=profile.name,
        avatar=display_avatar(profile),
    )


class ProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, user_id: str):
        # user_id is unique across families
        result = await self.db.exec(select(UserProfile).where(UserProfile.user_id == user_id))
        return result.first()

    async def _follow_tenant(self, profile: UserProfile, tenant_id: str):
        """Move the profile to the family the caller now belongs to."""
        if profile.tenant_id == tenant_id:
            return profile
        logger.info(f"Moving profile {profile.user_id} from {profile.tenant_id} to {tenant_id}")
        profile.tenant_id = tenant_id
        profile.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def get_or_create(self, identity: Identity):
        profile = await self._find(identity.sub)
        if profile:
            return await self._follow_tenant(profile, identity.tenant_id)

        email = identity.email or f"user-{identity.sub[:8]}@taskpilot.app"
        name = identity.name or email.split("@")[0]
        logger.info(f"Creating profile for {identity.sub} in {identity.tenant_id}")

        profile = UserProfile(
            user_id=identity.sub,
            tenant_id=identity.tenant_id,
            email=email,
            name=name,
        )
        self.db.add(profile)
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def update_profile(self, identity: Identity, profile_data: ProfileUpdate):
        profile = await self._find(identity.sub)
        if not profile:
            return None
        profile.tenant_id = identity.tenant_id

        update_data = profile_data.model_dump(exclude_unset=True)
        if update_data.get("preferences") is None:
            update_data.pop("preferences", None)
        for name in ("name", "avatar_type", "default_emoji"):
            if not update_data.get(name):
                update_data.pop(name, None)

        profile.sqlmodel_update(update_data)
        profile.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(profile)
        return profile

    async def list_family(self, tenant_id: str):
        result = await self.db.exec(
            select(UserProfile)
            .where(UserProfile.tenant_id == tenant_id)
            .order_by(UserProfile.name)
        )
        return result.all()
