import logging
from fastapi import APIRouter, Depends
from sparky.config import settings
from sparky.core.dependencies import (
    get_current_user_id, get_profile_service, require_debug_routes
)
from sparky.database.supabase_client import get_supabase
from sparky.modules.debug.service import DebugService
from sparky.modules.profiles.service import ProfileService
from supabase import Client
from typing import Dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"], dependencies=[Depends(require_debug_routes)])


def get_debug_service(
    supabase: Client = Depends(get_supabase),
    profile_service: ProfileService = Depends(get_profile_service)
) -> DebugService:
    return DebugService(supabase, profile_service)


@router.get("/env")
async def env_check():
    """Which configuration keys are set (values are never returned)"""
    env = {
        "SUPABASE_URL": bool(settings.supabase_url),
        "SUPABASE_KEY": bool(settings.supabase_key),
        "SUPABASE_SERVICE_ROLE_KEY": bool(settings.supabase_service_role_key),
        "VIMEO_ACCESS_TOKEN": bool(settings.vimeo_access_token),
    }
    logger.info(f"Environment check: {env}")
    return {
        "success": True,
        "message": "Environment check",
        "env": env,
        "missingKeys": [key for key, present in env.items() if not present],
    }


@router.post("/profile")
async def profile_check(
    user_data: Dict = Depends(get_current_user_id),
    service: DebugService = Depends(get_debug_service)
):
    """Look the caller's profile up with both Supabase clients"""
    return {
        "success": True,
        "user": {"id": user_data["id"], "email": user_data.get("email")},
        "tests": service.profile_report(user_data["id"]),
    }


@router.post("/fix-profile")
async def fix_profile(
    user_data: Dict = Depends(get_current_user_id),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Create or repair the caller's profile row"""
    logger.info(f"Creating/fixing profile for {user_data.get('email')}")
    profile = profile_service.upsert_profile(user_data)
    return {
        "success": True,
        "message": "Profile created/updated successfully",
        "profile": profile.model_dump(mode="json"),
    }
