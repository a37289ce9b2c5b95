import hashlib
import logging
import time
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, Optional
from urllib.parse import urlparse, urlencode, parse_qsl, urlunparse

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


def with_redirect(link: str, redirect_to: str) -> str:
    """Replace the redirect_to query parameter of a Supabase action link"""
    parts = urlparse(link)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query["redirect_to"] = redirect_to
    return urlunparse(parts._replace(query=urlencode(query)))


class AuthService:
    def __init__(self, supabase: Client, admin_client: Optional[Client] = None):
        self.supabase = supabase
        self.admin_client = admin_client

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
                "created_at": user.created_at,
                "updated_at": user.updated_at
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            logger.error(f"Token verification failed: {e}")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def generate_impersonation_link(self, email: str, redirect_to: Optional[str] = None) -> Dict[str, Optional[str]]:
        """Magic link that signs the browser in as `email` (requires service role key).

        Falls back to an invite link when the magic link cannot be generated,
        e.g. for an address that never confirmed its account.
        """
        if self.admin_client is None:
            raise HTTPException(
                status_code=500,
                detail="Service role key not configured. Cannot generate impersonation link."
            )
        try:
            response = self.admin_client.auth.admin.generate_link({
                "type": "magiclink",
                "email": email,
            })
            method = "magiclink"
        except Exception as e:
            logger.warning(f"Magic link generation failed for {email}, trying invite link: {e}")
            try:
                response = self.admin_client.auth.admin.generate_link({
                    "type": "invite",
                    "email": email,
                    "options": {"redirect_to": redirect_to} if redirect_to else {},
                })
                method = "invite"
            except Exception as alt_error:
                logger.error(f"Invite link generation failed for {email}: {alt_error}")
                raise HTTPException(status_code=500, detail="Failed to generate impersonation session")

        properties = getattr(response, "properties", None)
        original_link = getattr(properties, "action_link", None)
        if not original_link:
            raise HTTPException(status_code=500, detail="No magic link generated")

        link = with_redirect(original_link, redirect_to) if redirect_to and method == "magiclink" else original_link
        return {"method": method, "link": link, "original_link": original_link}
