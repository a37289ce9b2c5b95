import logging
from datetime import datetime, timezone
from supabase import Client
from sparky.config.roles_config import DEFAULT_ROLE, ROLES, is_known_role
from sparky.modules.profiles.schemas import ProfileResponse, ProfileUpdate
from typing import Any, Dict, List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def default_display_name(user_data: Dict[str, Any]) -> str:
    """Display name for a fresh profile: auth metadata name, else the email local part"""
    metadata = user_data.get("user_metadata") or {}
    for key in ("display_name", "full_name", "name"):
        if metadata.get(key):
            return metadata[key]
    email = user_data.get("email") or ""
    return email.split("@")[0] or "User"


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> Optional[ProfileResponse]:
        """Get profile by ID, None when the row does not exist"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Profile lookup failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load profile")
        if not result.data:
            return None
        return ProfileResponse(**result.data[0])

    def get_profile_or_404(self, user_id: str) -> ProfileResponse:
        profile = self.get_profile(user_id)
        if profile is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile

    def get_profiles_by_ids(self, user_ids: List[str]) -> Dict[str, ProfileResponse]:
        if not user_ids:
            return {}
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .in_("id", list(set(user_ids)))\
                .execute()
            return {row["id"]: ProfileResponse(**row) for row in result.data or []}
        except Exception as e:
            logger.error(f"Profile batch lookup failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to load profiles")

    def ensure_profile(self, user_data: Dict[str, Any]) -> ProfileResponse:
        """Return the caller's profile, creating it on first sign-in"""
        profile = self.get_profile(user_data["id"])
        if profile is not None:
            return profile
        logger.info(f"Creating profile for {user_data.get('email')}")
        try:
            result = self.supabase.table("profiles").insert({
                "id": user_data["id"],
                "email": user_data.get("email"),
                "display_name": default_display_name(user_data),
                "role": DEFAULT_ROLE,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Profile creation failed for {user_data['id']}: {e}")
            # Concurrent first requests: the other one may have inserted the row
            profile = self.get_profile(user_data["id"])
            if profile is not None:
                return profile
            raise HTTPException(status_code=500, detail="Failed to create profile")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create profile")
        return ProfileResponse(**result.data[0])

    def upsert_profile(self, user_data: Dict[str, Any]) -> ProfileResponse:
        """Create or repair the caller's profile without touching an existing role"""
        existing = self.get_profile(user_data["id"])
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "id": user_data["id"],
            "email": user_data.get("email"),
            "display_name": (existing.display_name if existing else None) or default_display_name(user_data),
            "role": existing.role if existing and is_known_role(existing.role) else DEFAULT_ROLE,
            "updated_at": now,
        }
        if existing is None:
            row["created_at"] = now
        try:
            result = self.supabase.table("profiles").upsert(row).execute()
        except Exception as e:
            logger.error(f"Profile upsert failed for {user_data['id']}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create profile")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create profile")
        return ProfileResponse(**result.data[0])

    def list_profiles(self) -> List[ProfileResponse]:
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .order("display_name")\
                .execute()
            return [ProfileResponse(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Profile listing failed: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch profiles")

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if profile_data.display_name is not None:
            update_data["display_name"] = profile_data.display_name.strip()
        if profile_data.avatar_url is not None:
            update_data["avatar_url"] = profile_data.avatar_url
        return self._update(user_id, update_data)

    def update_role(self, user_id: str, role: str) -> ProfileResponse:
        if not is_known_role(role):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid role '{role}'. Expected one of: {', '.join(ROLES)}"
            )
        return self._update(user_id, {
            "role": role,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })

    def _update(self, user_id: str, update_data: Dict[str, Any]) -> ProfileResponse:
        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Profile update failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update profile")
        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return ProfileResponse(**result.data[0])
