from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ProfileResponse(BaseModel):
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str = "user"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class RoleUpdate(BaseModel):
    role: str


class ProfileEnvelope(BaseModel):
    success: bool = True
    profile: ProfileResponse


class ProfileListEnvelope(BaseModel):
    success: bool = True
    profiles: List[ProfileResponse]
    count: int
