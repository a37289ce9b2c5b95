from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Dict, List, Optional


class TitleUserInfo(BaseModel):
    display_name: str
    is_email: bool


class FolderVideo(BaseModel):
    id: str
    uri: str
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    created_time: Optional[str] = None
    link: Optional[str] = None
    user_info: Optional[TitleUserInfo] = None


class AdminVideo(BaseModel):
    uri: str
    name: Optional[str] = None
    description: Optional[str] = None
    created_time: Optional[str] = None
    modified_time: Optional[str] = None
    duration: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    link: Optional[str] = None
    player_embed_url: Optional[str] = None
    pictures: Optional[Dict[str, Any]] = None


class AddVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_uri: str = Field(alias="folderUri")
    video_uri: str = Field(alias="videoUri")


class MoveVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_uri: str = Field(alias="videoUri")
    user_email: EmailStr = Field(alias="userEmail")


class FolderVideosEnvelope(BaseModel):
    success: bool = True
    videos: List[FolderVideo]


class AdminVideosEnvelope(BaseModel):
    success: bool = True
    videos: List[AdminVideo]
    total: int
