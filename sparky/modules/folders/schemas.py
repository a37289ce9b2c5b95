from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Dict, List, Optional
from sparky.modules.videos.schemas import FolderVideo


class FolderCreate(BaseModel):
    name: str
    description: Optional[str] = None


class SimpleFolderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_name: str = Field(alias="folderName")


class FolderDelete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_uri: str = Field(alias="folderUri")


class FolderManageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_email: EmailStr = Field(alias="userEmail")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    action: str = "create-folder"


class FolderMergeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_folder: str = Field(alias="targetFolder")
    folders_to_merge: List[str] = Field(alias="foldersToMerge")


class UserFolderResponse(BaseModel):
    id: str
    uri: str
    name: str
    owner_email: str
    description: Optional[str] = None
    link: Optional[str] = None
    created_time: Optional[str] = None
    created: bool = False


class UserFolderWithVideos(UserFolderResponse):
    videos: List[FolderVideo] = []
    video_count: int = 0


class FolderListEnvelope(BaseModel):
    success: bool = True
    folders: List[Dict[str, Any]]


class UserFolderEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    folder: Optional[UserFolderResponse] = None


class UserFolderWithVideosEnvelope(BaseModel):
    success: bool = True
    folder: Optional[UserFolderWithVideos] = None


class MergeResult(BaseModel):
    merged_folders: int = 0
    moved_videos: int = 0
    failed_videos: int = 0
