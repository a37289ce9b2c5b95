"""
Core dependencies for route protection and role checking
"""

import json
import logging
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sparky.config import settings
from sparky.config.roles_config import ADMIN, MANAGEMENT_ROLES, is_known_role, DEFAULT_ROLE
from sparky.database.supabase_client import SupabaseClient, get_supabase, get_supabase_admin
from sparky.modules.auth.schemas import EffectiveUserData
from sparky.modules.auth.service import AuthService
from sparky.modules.profiles.schemas import ProfileResponse
from sparky.modules.profiles.service import ProfileService
from supabase import Client
from typing import Optional

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

IMPERSONATION_HEADER = "X-Impersonate-User"


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    admin_client = SupabaseClient.get_service_client() if SupabaseClient.has_service_client() else None
    return AuthService(supabase, admin_client)


def get_profile_service(supabase: Client = Depends(get_supabase_admin)) -> ProfileService:
    return ProfileService(supabase)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No valid authorization header"
        )
    return auth_service.get_current_user(credentials.credentials)


def get_current_profile(
    user_data: dict = Depends(get_current_user_id),
    profile_service: ProfileService = Depends(get_profile_service)
) -> ProfileResponse:
    """Profile of the authenticated caller; created on first sign-in"""
    return profile_service.ensure_profile(user_data)


def require_role(*allowed_roles: str):
    """Factory function to create role check dependency"""
    def check_role(profile: ProfileResponse = Depends(get_current_profile)) -> ProfileResponse:
        if profile.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient role. Required one of: {', '.join(allowed_roles)}"
            )
        return profile
    return check_role


require_admin = require_role(ADMIN)
require_management = require_role(*MANAGEMENT_ROLES)


def resolve_effective_user(profile: ProfileResponse, impersonation: Optional[str]) -> EffectiveUserData:
    """Decide who the request acts as.

    `impersonation` is the raw X-Impersonate-User header. It is only honoured
    for admins; anything unusable falls back to the caller's own profile.
    """
    own = EffectiveUserData(
        id=profile.id,
        email=profile.email,
        display_name=profile.display_name,
        role=profile.role,
        is_impersonating=False,
    )
    if not impersonation:
        return own
    if profile.role != ADMIN:
        logger.warning(f"Ignoring impersonation header from non-admin {profile.id} ({profile.role})")
        return own
    try:
        target = json.loads(impersonation)
    except ValueError:
        logger.warning(f"Ignoring malformed impersonation header from {profile.id}")
        return own
    if not isinstance(target, dict) or not target.get("id") or not target.get("email"):
        logger.warning(f"Ignoring incomplete impersonation header from {profile.id}")
        return own
    role = target.get("role")
    return EffectiveUserData(
        id=str(target["id"]),
        email=target["email"],
        display_name=target.get("display_name") or target.get("name"),
        role=role if is_known_role(role) else DEFAULT_ROLE,
        is_impersonating=True,
    )


def get_effective_user(
    request: Request,
    profile: ProfileResponse = Depends(get_current_profile)
) -> EffectiveUserData:
    return resolve_effective_user(profile, request.headers.get(IMPERSONATION_HEADER))


def require_debug_routes() -> None:
    if not settings.debug_routes_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
