from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from sparky.modules.profiles.schemas import ProfileResponse


class EffectiveUserData(BaseModel):
    """Who the UI is acting as: the caller, or the user an admin impersonates"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: str = "user"
    is_impersonating: bool = Field(default=False, alias="isImpersonating")


class ImpersonateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_user_id: str = Field(alias="targetUserId")
    target_user_email: EmailStr = Field(alias="targetUserEmail")


class MeResponse(BaseModel):
    success: bool = True
    profile: ProfileResponse
    effective_user: EffectiveUserData
    can_see_management_panels: bool


class ImpersonateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    impersonation_link: str = Field(alias="impersonationLink")
    original_link: Optional[str] = Field(default=None, alias="originalLink")
    target_user: EffectiveUserData = Field(alias="targetUser")
