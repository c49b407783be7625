from fastapi import APIRouter, Depends

from taskpilot.core.identity import TenantIdentityDep
from taskpilot.deps import get_settings_service
from taskpilot.models import FamilySettingsResponse, FamilySettingsUpdate
from taskpilot.services.settings_service import SettingsService, to_response

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=FamilySettingsResponse)
async def get_family_settings(
    identity: TenantIdentityDep,
    service: SettingsService = Depends(get_settings_service),
):
    """Family preferences (stores, schools, routines); defaults on first access"""
    settings = await service.get_family_settings(identity.tenant_id)
    return to_response(settings)


@router.put("/", response_model=FamilySettingsResponse)
async def update_family_settings(
    settings_data: FamilySettingsUpdate,
    identity: TenantIdentityDep,
    service: SettingsService = Depends(get_settings_service),
):
    settings = await service.update_family_settings(
        identity.tenant_id, settings_data.preferences
    )
    return to_response(settings)


@router.delete("/", response_model=FamilySettingsResponse)
async def reset_family_settings(
    identity: TenantIdentityDep,
    service: SettingsService = Depends(get_settings_service),
):
    """Reset preferences to defaults"""
    settings = await service.reset_family_settings(identity.tenant_id)
    return to_response(settings)
