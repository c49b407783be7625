from fastapi import APIRouter, Depends, HTTPException, status

from taskpilot.core.identity import TenantIdentityDep
from taskpilot.deps import get_profile_service
from taskpilot.models import FamilyMember, ProfileResponse, ProfileUpdate
from taskpilot.services.profile_service import (
    MAX_AVATAR_BYTES,
    ProfileService,
    avatar_size_bytes,
    to_member,
    to_response,
)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("/", response_model=ProfileResponse)
async def get_profile(
    identity: TenantIdentityDep,
    service: ProfileService = Depends(get_profile_service),
):
    """Caller's profile, created from token claims on first access"""
    profile = await service.get_or_create(identity)
    return to_response(profile)


@router.put("/", response_model=ProfileResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    identity: TenantIdentityDep,
    service: ProfileService = Depends(get_profile_service),
):
    if profile_data.avatar_type == "base64" and profile_data.avatar:
        try:
            size = avatar_size_bytes(profile_data.avatar)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Avatar is not valid base64",
            )
        if size > MAX_AVATAR_BYTES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Avatar image too large. Maximum size is 1MB.",
            )

    profile = await service.update_profile(identity, profile_data)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return to_response(profile)


@router.get("/family", response_model=list[FamilyMember])
async def get_family_profiles(
    identity: TenantIdentityDep,
    service: ProfileService = Depends(get_profile_service),
):
    """Members of the caller's family, sorted by name"""
    profiles = await service.list_family(identity.tenant_id)
    return [to_member(p) for p in profiles]
