import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from sparky.config import settings
from sparky.config.roles_config import can_see_management_panels
from sparky.core.dependencies import (
    get_auth_service, get_current_profile, get_effective_user, get_profile_service, require_admin
)
from sparky.modules.auth.schemas import (
    EffectiveUserData, ImpersonateRequest, ImpersonateResponse, MeResponse
)
from sparky.modules.auth.service import AuthService
from sparky.modules.profiles.schemas import ProfileResponse
from sparky.modules.profiles.service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _client_info(request: Request) -> dict:
    return {
        "userAgent": request.headers.get("user-agent"),
        "ip": request.headers.get("x-forwarded-for") or "unknown",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _redirect_base(request: Request) -> str:
    """Browser origin in development, configured site URL otherwise"""
    if settings.is_production:
        return settings.site_url
    return request.headers.get("origin") or settings.site_url


@router.get("/auth/me", response_model=MeResponse)
async def get_me(
    profile: ProfileResponse = Depends(get_current_profile),
    effective_user: EffectiveUserData = Depends(get_effective_user)
):
    """Signed-in profile plus the user the UI currently acts as"""
    return MeResponse(
        profile=profile,
        effective_user=effective_user,
        can_see_management_panels=can_see_management_panels(effective_user.role),
    )


@router.post("/admin/impersonate", response_model=ImpersonateResponse)
async def impersonate(
    body: ImpersonateRequest,
    request: Request,
    profile: ProfileResponse = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
    profile_service: ProfileService = Depends(get_profile_service)
):
    """Generate a sign-in link for another user (admins only)"""
    target = profile_service.get_profile_or_404(body.target_user_id)
    if target.email and target.email.lower() != body.target_user_email.strip().lower():
        raise HTTPException(status_code=400, detail="Target user id and email do not match")
    if target.id == profile.id:
        raise HTTPException(status_code=400, detail="You cannot impersonate yourself")

    session = auth_service.generate_impersonation_link(
        body.target_user_email.strip(),
        redirect_to=f"{_redirect_base(request)}/users",
    )

    logger.warning("SECURITY LOG: Admin impersonation %s", {
        "adminUserId": profile.id,
        "adminEmail": profile.email,
        "targetUserId": target.id,
        "targetUserEmail": target.email,
        "method": session["method"],
        **_client_info(request),
    })

    message = "Impersonation session created"
    if session["method"] != "magiclink":
        message += " (alternative method)"
    return ImpersonateResponse(
        message=message,
        impersonation_link=session["link"],
        original_link=session["original_link"],
        target_user=EffectiveUserData(
            id=target.id,
            email=target.email,
            display_name=target.display_name,
            role=target.role,
            is_impersonating=True,
        ),
    )


@router.post("/admin/stop-impersonate")
async def stop_impersonate(
    request: Request,
    profile: ProfileResponse = Depends(get_current_profile)
):
    """Record the end of an impersonation session; the browser clears its own state"""
    logger.warning("SECURITY LOG: Impersonation stopped %s", {
        "userId": profile.id,
        "email": profile.email,
        **_client_info(request),
    })
    return {"success": True, "message": "Impersonation stopped successfully"}
