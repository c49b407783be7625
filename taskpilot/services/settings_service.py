from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskpilot.models import FamilyPreferences, FamilySettings, FamilySettingsResponse, as_utc

import logging

logger = logging.getLogger(__name__)


def ai_context(preferences: FamilyPreferences) -> str:
    """Flatten family preferences into prompt context, one fact per line."""
    context = []

    if preferences.neighborhood:
        context.append(f"Location: {preferences.neighborhood}")
    if preferences.zip_code:
        context.append(f"Zip Code: {preferences.zip_code}")
    if preferences.grocery_stores:
        context.append(f"Preferred stores: {', '.join(preferences.grocery_stores)}")

    if preferences.schools:
        schools = []
        for school in preferences.schools:
            parts = [school.name]
            if school.pickup_time:
                parts.append(f"pickup at {school.pickup_time}")
            if school.location:
                parts.append(f"({school.location})")
            schools.append(" ".join(parts))
        context.append(f"Schools: {'; '.join(schools)}")

    routines = preferences.routines
    if routines.grocery_shopping:
        context.append(f"Shopping routine: {routines.grocery_shopping}")
    if routines.school_pickup:
        context.append(f"School pickup routine: {routines.school_pickup}")
    if routines.other:
        context.append(f"Other notes: {routines.other}")

    return "\n".join(context)


def to_response(settings: FamilySettings) -> FamilySettingsResponse:
    return FamilySettingsResponse(
        tenant_id=settings.tenant_id,
        preferences=FamilyPreferences.model_validate(settings.preferences),
        updated_at=as_utc(settings.updated_at or settings.created_at),
    )


class SettingsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, tenant_id: str):
        result = await self.db.exec(
            select(FamilySettings).where(FamilySettings.tenant_id == tenant_id)
        )
        return result.first()

    async def _upsert(self, tenant_id: str, preferences: FamilyPreferences):
        settings = await self._find(tenant_id)
        if settings is None:
            settings = FamilySettings(tenant_id=tenant_id)
            self.db.add(settings)
        settings.preferences = preferences.model_dump()
        settings.updated_at = datetime.now(timezone.utc)

        try:
            await self.db.commit()
        except IntegrityError:
            # another request created the row first
            await self.db.rollback()
            logger.info(f"Concurrent settings insert for {tenant_id}, retrying as update")
            settings = await self._find(tenant_id)
            settings.preferences = preferences.model_dump()
            settings.updated_at = datetime.now(timezone.utc)
            await self.db.commit()

        await self.db.refresh(settings)
        return settings

    async def get_family_settings(self, tenant_id: str):
        """Stored settings, created with defaults on first access."""
        settings = await self._find(tenant_id)
        if settings is None:
            settings = await self._upsert(tenant_id, FamilyPreferences())
        return settings

    async def update_family_settings(self, tenant_id: str, preferences: FamilyPreferences):
        return await self._upsert(tenant_id, preferences)

    async def reset_family_settings(self, tenant_id: str):
        return await self._upsert(tenant_id, FamilyPreferences())

    async def family_context(self, tenant_id: str) -> str:
        settings = await self._find(tenant_id)
        if settings is None:
            return ""
        return ai_context(FamilyPreferences.model_validate(settings.preferences))
