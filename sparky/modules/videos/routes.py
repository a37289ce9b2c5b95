import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sparky.config.roles_config import can_see_management_panels
from sparky.core.dependencies import get_current_profile, get_effective_user
from sparky.database.vimeo_client import VimeoClient, get_vimeo
from sparky.modules.auth.schemas import EffectiveUserData
from sparky.modules.folders.routes import get_folder_service
from sparky.modules.folders.service import FolderService
from sparky.modules.profiles.schemas import ProfileResponse
from sparky.modules.videos.schemas import AddVideoRequest, FolderVideosEnvelope, MoveVideoRequest
from sparky.modules.videos.service import VideoService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vimeo", tags=["videos"])


def get_video_service(vimeo: VimeoClient = Depends(get_vimeo)) -> VideoService:
    return VideoService(vimeo)


@router.get("/folders/{folder_id}/videos", response_model=FolderVideosEnvelope)
def list_folder_videos(
    folder_id: str,
    profile: ProfileResponse = Depends(get_current_profile),
    service: VideoService = Depends(get_video_service)
):
    """Videos of a folder, each tagged with the recorder parsed from its title"""
    return FolderVideosEnvelope(videos=service.list_folder_videos(folder_id))


@router.post("/folders/add-video")
def add_video_to_folder(
    data: AddVideoRequest,
    profile: ProfileResponse = Depends(get_current_profile),
    service: VideoService = Depends(get_video_service)
):
    service.add_video_to_folder(data.folder_uri, data.video_uri)
    return {
        "success": True,
        "folderUri": data.folder_uri,
        "videoUri": data.video_uri,
        "added": True,
    }


@router.post("/videos/move")
def move_video(
    data: MoveVideoRequest,
    profile: ProfileResponse = Depends(get_current_profile),
    effective_user: EffectiveUserData = Depends(get_effective_user),
    service: FolderService = Depends(get_folder_service)
):
    """Move a recording into its owner's folder, creating the folder on first use"""
    if not can_see_management_panels(profile.role) and \
            data.user_email.strip().lower() != (effective_user.email or "").lower():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only move videos into your own folder")
    folder = service.move_video_to_user_folder(data.video_uri, data.user_email)
    return {
        "success": True,
        "message": "Video moved to user folder successfully",
        "folder": folder.model_dump(),
    }
