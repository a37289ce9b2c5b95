import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sparky.config.roles_config import can_see_management_panels
from sparky.core.dependencies import get_current_profile, get_effective_user, require_admin
from sparky.database.supabase_client import get_supabase_admin
from sparky.database.vimeo_client import VimeoClient, get_vimeo, uri_id
from sparky.modules.auth.schemas import EffectiveUserData
from sparky.modules.folders.schemas import (
    FolderCreate, FolderDelete, FolderListEnvelope, FolderManageRequest, FolderMergeRequest,
    SimpleFolderCreate, UserFolderEnvelope, UserFolderWithVideosEnvelope
)
from sparky.modules.folders.service import FolderService
from sparky.modules.profiles.schemas import ProfileResponse
from sparky.modules.videos.schemas import AdminVideosEnvelope
from supabase import Client
from typing import Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/folders", tags=["folders"])
admin_router = APIRouter(prefix="/admin/folders", tags=["admin"])

MANAGE_ACTIONS = ("create-folder",)


def get_folder_service(
    supabase: Client = Depends(get_supabase_admin),
    vimeo: VimeoClient = Depends(get_vimeo)
) -> FolderService:
    return FolderService(supabase, vimeo)


def _check_email_access(user_email: Optional[str], profile: ProfileResponse, effective_user: EffectiveUserData) -> None:
    """Plain users may only touch the folder of the user they act as"""
    if can_see_management_panels(profile.role):
        return
    if (user_email or "").strip().lower() != (effective_user.email or "").lower():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only access your own folder")


@router.get("", response_model=FolderListEnvelope)
def list_folders(
    profile: ProfileResponse = Depends(get_current_profile),
    service: FolderService = Depends(get_folder_service)
):
    """All Vimeo folders with their video counts"""
    return FolderListEnvelope(folders=service.list_folders())


@router.post("")
def create_folder(
    data: FolderCreate,
    profile: ProfileResponse = Depends(get_current_profile),
    service: FolderService = Depends(get_folder_service)
):
    folder = service.create_folder(data.name, data.description)
    return {"success": True, **folder}


@router.post("/create")
def create_simple_folder(
    data: SimpleFolderCreate,
    profile: ProfileResponse = Depends(get_current_profile),
    service: FolderService = Depends(get_folder_service)
):
    folder = service.create_folder(data.folder_name, f"Screen recordings folder for {data.folder_name.strip()}")
    return {
        "success": True,
        "message": f'Folder "{folder["name"]}" created successfully',
        "folderId": uri_id(folder["uri"]),
        "folderName": folder["name"],
    }


@router.post("/manage", response_model=UserFolderEnvelope)
def manage_folder(
    data: FolderManageRequest,
    profile: ProfileResponse = Depends(get_current_profile),
    effective_user: EffectiveUserData = Depends(get_effective_user),
    service: FolderService = Depends(get_folder_service)
):
    """Find-or-create the folder of a user"""
    if data.action not in MANAGE_ACTIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")
    _check_email_access(data.user_email, profile, effective_user)
    folder = service.ensure_user_folder(data.user_email, data.display_name)
    return UserFolderEnvelope(
        message=f"Folder created for {data.display_name or data.user_email}",
        folder=folder,
    )


@router.get("/manage", response_model=UserFolderWithVideosEnvelope)
def get_user_folder(
    userEmail: Optional[str] = None,
    profile: ProfileResponse = Depends(get_current_profile),
    effective_user: EffectiveUserData = Depends(get_effective_user),
    service: FolderService = Depends(get_folder_service)
):
    """Folder of a user with its videos; folder is null until one is created"""
    if not userEmail or not userEmail.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User email required")
    _check_email_access(userEmail, profile, effective_user)
    return UserFolderWithVideosEnvelope(folder=service.get_user_folder_with_videos(userEmail))


@router.get("/mine", response_model=UserFolderWithVideosEnvelope)
def get_my_folder(
    effective_user: EffectiveUserData = Depends(get_effective_user),
    service: FolderService = Depends(get_folder_service)
):
    """Folder of the user the UI acts as (honours admin impersonation)"""
    if not effective_user.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User email required")
    return UserFolderWithVideosEnvelope(folder=service.get_user_folder_with_videos(effective_user.email))


# Admin folder tools

@admin_router.get("", response_model=FolderListEnvelope)
def admin_list_folders(
    profile: ProfileResponse = Depends(require_admin),
    service: FolderService = Depends(get_folder_service)
):
    return FolderListEnvelope(folders=service.list_folders())


@admin_router.delete("")
def admin_delete_folder(
    data: FolderDelete,
    profile: ProfileResponse = Depends(require_admin),
    service: FolderService = Depends(get_folder_service)
):
    service.delete_folder(data.folder_uri)
    logger.info(f"Folder {data.folder_uri} deleted by {profile.email}")
    return {"success": True, "message": "Folder deleted successfully"}


@admin_router.get("/search")
def admin_search_folder(
    userName: Optional[str] = None,
    profile: ProfileResponse = Depends(require_admin),
    service: FolderService = Depends(get_folder_service)
):
    """User-specific folder, or the user's videos in the shared main folder"""
    if not userName or not userName.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User name is required")
    return {"success": True, **service.search_user_folder(userName)}


@admin_router.post("/merge")
def admin_merge_folders(
    data: FolderMergeRequest,
    profile: ProfileResponse = Depends(require_admin),
    service: FolderService = Depends(get_folder_service)
):
    result = service.merge_folders(data.target_folder, data.folders_to_merge)
    return {
        "success": True,
        "message": f"Successfully merged {result.merged_folders} folders",
        **result.model_dump(),
    }


@admin_router.post("/cleanup")
def admin_cleanup_folders(
    profile: ProfileResponse = Depends(require_admin),
    service: FolderService = Depends(get_folder_service)
):
    """Merge folders that share a name into the oldest of them"""
    result = service.cleanup_duplicate_folders()
    return {
        "success": True,
        "message": f"Successfully cleaned up {result.merged_folders} duplicate folders",
        **result.model_dump(),
    }


@admin_router.get("/{folder_id}/videos", response_model=AdminVideosEnvelope)
def admin_folder_videos(
    folder_id: str,
    profile: ProfileResponse = Depends(require_admin),
    service: FolderService = Depends(get_folder_service)
):
    videos, total = service.videos.list_admin_videos(folder_id)
    return AdminVideosEnvelope(videos=videos, total=total)
