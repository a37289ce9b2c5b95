import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sparky.config.roles_config import can_manage_user, get_role_matrix
from sparky.core.dependencies import (
    get_current_profile, get_profile_service, require_admin, require_management
)
from sparky.modules.profiles.schemas import (
    ProfileResponse, ProfileUpdate, RoleUpdate, ProfileEnvelope, ProfileListEnvelope
)
from sparky.modules.profiles.service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["profiles"])


@router.get("/user/profile", response_model=ProfileEnvelope)
async def get_own_profile(
    profile: ProfileResponse = Depends(get_current_profile)
):
    """Profile of the signed-in user"""
    return ProfileEnvelope(profile=profile)


@router.put("/user/profile", response_model=ProfileEnvelope)
async def update_own_profile(
    profile_data: ProfileUpdate,
    profile: ProfileResponse = Depends(get_current_profile),
    service: ProfileService = Depends(get_profile_service)
):
    """Update display name / avatar of the signed-in user"""
    return ProfileEnvelope(profile=service.update_profile(profile.id, profile_data))


@router.get("/admin/profiles", response_model=ProfileListEnvelope)
async def list_profiles(
    profile: ProfileResponse = Depends(require_management),
    service: ProfileService = Depends(get_profile_service)
):
    """All profiles ordered by display name (management roles only)"""
    profiles = service.list_profiles()
    return ProfileListEnvelope(profiles=profiles, count=len(profiles))


@router.put("/admin/profiles/{user_id}/role", response_model=ProfileEnvelope)
async def update_profile_role(
    user_id: str,
    role_data: RoleUpdate,
    profile: ProfileResponse = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service)
):
    """Change a user's role (admins only, never their own)"""
    if user_id == profile.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
    target = service.get_profile_or_404(user_id)
    if not can_manage_user(profile.role, target.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You cannot manage this user")
    updated = service.update_role(user_id, role_data.role)
    logger.info(f"Role of {target.email} changed from {target.role} to {updated.role} by {profile.email}")
    return ProfileEnvelope(profile=updated)


@router.get("/admin/roles")
async def role_matrix(
    profile: ProfileResponse = Depends(require_management)
):
    """Role levels and the management / assignment rules derived from them"""
    return {"success": True, **get_role_matrix()}
