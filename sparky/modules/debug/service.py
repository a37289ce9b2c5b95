import logging
from supabase import Client
from sparky.modules.profiles.service import ProfileService
from typing import Any, Dict

logger = logging.getLogger(__name__)


class DebugService:
    def __init__(self, supabase: Client, profile_service: ProfileService):
        self.supabase = supabase
        self.profile_service = profile_service

    def _lookup(self, client: Client, user_id: str) -> Dict[str, Any]:
        try:
            result = client.table("profiles").select("*").eq("id", user_id).limit(1).execute()
            return {"data": result.data[0] if result.data else None, "error": None}
        except Exception as e:
            return {"data": None, "error": str(e)}

    def profile_report(self, user_id: str) -> Dict[str, Any]:
        """Compare what the anon and service-role clients see for one profile"""
        report = {
            "regularClient": self._lookup(self.supabase, user_id),
            "adminClient": self._lookup(self.profile_service.supabase, user_id),
        }
        try:
            sample = self.profile_service.supabase.table("profiles")\
                .select("id, email, role")\
                .limit(10)\
                .execute()
            report["allProfiles"] = {"count": len(sample.data or []), "data": sample.data, "error": None}
        except Exception as e:
            report["allProfiles"] = {"count": 0, "data": None, "error": str(e)}
        for name, entry in report.items():
            if entry["error"]:
                logger.warning(f"Profile debug {name} failed: {entry['error']}")
        return report
