import logging
from collections import defaultdict
from datetime import datetime, timezone
from fastapi import HTTPException
from supabase import Client
from sparky.config import settings
from sparky.database.vimeo_client import VimeoAPIError, VimeoClient, uri_id
from sparky.modules.folders import folder_locks
from sparky.modules.folders.schemas import MergeResult, UserFolderResponse, UserFolderWithVideos
from sparky.modules.videos.service import VideoService
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
SEARCH_FIELDS = "uri,name,description,duration,created_time,modified_time,link,player_embed_url"


def normalize_email(email: Optional[str]) -> str:
    normalized = (email or "").strip().lower()
    if not normalized:
        raise HTTPException(status_code=400, detail="User email required")
    return normalized


def folder_name_for(email: str, display_name: Optional[str] = None) -> str:
    return (display_name or "").strip() or email.split("@")[0]


class FolderService:
    def __init__(self, supabase: Client, vimeo: VimeoClient):
        self.supabase = supabase
        self.vimeo = vimeo
        self.videos = VideoService(vimeo)

    # Owner -> folder mapping (user_folders)

    def _get_mapping(self, owner_email: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("user_folders")\
                .select("*")\
                .eq("owner_email", owner_email)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Folder mapping lookup failed for {owner_email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to look up user folder")
        return result.data[0] if result.data else None

    def _insert_mapping(self, owner_email: str, folder: Dict[str, Any]) -> Dict[str, Any]:
        result = self.supabase.table("user_folders").insert({
            "owner_email": owner_email,
            "folder_id": uri_id(folder["uri"]),
            "folder_uri": folder["uri"],
            "folder_name": folder.get("name"),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to record user folder")
        return result.data[0]

    def _delete_mapping(self, mapping_id: str) -> None:
        self.supabase.table("user_folders").delete().eq("id", mapping_id).execute()

    @staticmethod
    def _to_record(mapping: Dict[str, Any], folder: Optional[Dict[str, Any]] = None, created: bool = False) -> UserFolderResponse:
        folder = folder or {}
        return UserFolderResponse(
            id=mapping["folder_id"],
            uri=folder.get("uri") or mapping["folder_uri"],
            name=folder.get("name") or mapping.get("folder_name") or "",
            owner_email=mapping["owner_email"],
            description=folder.get("description"),
            link=folder.get("link"),
            created_time=folder.get("created_time") or mapping.get("created_at"),
            created=created,
        )

    def _existing_folder(self, owner_email: str) -> Optional[UserFolderResponse]:
        """Mapped folder if it still exists on Vimeo; stale mappings are dropped"""
        mapping = self._get_mapping(owner_email)
        if mapping is None:
            return None
        try:
            folder = self.vimeo.get_folder(mapping["folder_id"])
        except VimeoAPIError as e:
            if e.status_code != 404:
                raise
            logger.warning(f"Folder {mapping['folder_uri']} of {owner_email} no longer exists on Vimeo")
            self._delete_mapping(mapping["id"])
            return None
        return self._to_record(mapping, folder)

    # Reconciliation

    def ensure_user_folder(self, user_email: str, display_name: Optional[str] = None) -> UserFolderResponse:
        """Find-or-create the one Vimeo folder belonging to user_email"""
        owner_email = normalize_email(user_email)
        with folder_locks.hold(owner_email):
            existing = self._existing_folder(owner_email)
            if existing is not None:
                logger.info(f"Folder already exists for {owner_email}: {existing.name}")
                return existing

            name = folder_name_for(owner_email, display_name)
            logger.info(f"Creating new folder '{name}' for {owner_email}")
            folder = self.vimeo.create_folder(
                name, f"Screen recordings for {(display_name or '').strip() or owner_email}"
            )
            try:
                mapping = self._insert_mapping(owner_email, folder)
            except HTTPException:
                raise
            except Exception as e:
                if getattr(e, "code", None) != UNIQUE_VIOLATION:
                    logger.error(f"Recording folder for {owner_email} failed: {e}")
                    raise HTTPException(status_code=500, detail="Failed to record user folder")
                winner = self._get_mapping(owner_email)
                self._discard_folder(folder)
                if winner is None:
                    raise HTTPException(status_code=500, detail="Failed to record user folder")
                logger.info(f"Another request created the folder for {owner_email} first; using {winner['folder_uri']}")
                return self._to_record(winner)

            logger.info(f"Created folder for {owner_email}: {folder.get('name')}")
            return self._to_record(mapping, folder, created=True)

    def _discard_folder(self, folder: Dict[str, Any]) -> None:
        try:
            self.vimeo.delete_folder(uri_id(folder["uri"]))
        except VimeoAPIError as e:
            logger.error(f"Could not delete duplicate folder {folder['uri']}: {e.message}")

    def add_video_to_user_folder(self, user_email: str, video_uri: str, display_name: Optional[str] = None) -> UserFolderResponse:
        folder = self.ensure_user_folder(user_email, display_name)
        self.videos.add_video_to_folder(folder.uri, video_uri)
        logger.info(f"Video {video_uri} added to {folder.owner_email}'s folder")
        return folder

    def move_video_to_user_folder(self, video_uri: str, user_email: str) -> UserFolderResponse:
        """Put a video into the owner's folder; Vimeo keeps one folder per video"""
        return self.add_video_to_user_folder(user_email, video_uri)

    def get_user_folder_with_videos(self, user_email: str) -> Optional[UserFolderWithVideos]:
        owner_email = normalize_email(user_email)
        # _existing_folder may drop a stale mapping; same lock as ensure_user_folder
        with folder_locks.hold(owner_email):
            folder = self._existing_folder(owner_email)
        if folder is None:
            return None
        videos = self.videos.list_folder_videos(folder.id)
        return UserFolderWithVideos(**folder.model_dump(), videos=videos, video_count=len(videos))

    # Folder CRUD

    def list_folders(self) -> List[Dict[str, Any]]:
        folders = self.vimeo.list_folders()
        result = []
        for folder in folders:
            try:
                count = self.vimeo.count_folder_videos(uri_id(folder["uri"]))
            except VimeoAPIError as e:
                logger.warning(f"Error counting videos in folder {folder.get('name')}: {e.message}")
                count = 0
            result.append({**folder, "video_count": count})
        logger.info(f"Fetched {len(result)} folders from Vimeo")
        return result

    def create_folder(self, name: Optional[str], description: Optional[str] = None) -> Dict[str, Any]:
        name = (name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Folder name is required")
        folder = self.vimeo.create_folder(name, (description or "").strip())
        logger.info(f"Created folder: {folder.get('name')}")
        return {**folder, "video_count": 0}

    def delete_folder(self, folder_uri: str) -> None:
        folder_id = uri_id(folder_uri or "")
        if not folder_id:
            raise HTTPException(status_code=400, detail="Folder URI is required")
        self.vimeo.delete_folder(folder_id)
        self.supabase.table("user_folders").delete().eq("folder_id", folder_id).execute()
        logger.info(f"Deleted folder {folder_id}")

    # Admin tools

    def search_user_folder(self, user_name: str) -> Dict[str, Any]:
        """User folder by name; otherwise the user's videos inside the shared main folder"""
        search = (user_name or "").strip().lower()
        if not search:
            raise HTTPException(status_code=400, detail="User name is required")

        folders = self.vimeo.list_folders()
        user_folder = (
            next((f for f in folders if (f.get("name") or "").lower() == search), None)
            or next((f for f in folders if f"/{search}" in (f.get("name") or "").lower()), None)
            or next((f for f in folders if search in (f.get("name") or "").lower()), None)
        )

        if user_folder is not None:
            logger.info(f"Found user folder: {user_folder['name']}")
            videos = list(self.vimeo.iter_folder_videos(uri_id(user_folder["uri"]), fields=SEARCH_FIELDS))
            target = dict(user_folder)
        else:
            main_id = settings.vimeo_main_folder_id
            logger.info(f"No user folder found, searching main folder {main_id} for {user_name}'s videos")
            target = dict(self.vimeo.get_folder(main_id))
            target["name"] = f"{target.get('name')} ({user_name}'s Videos)"
            videos = [
                video for video in self.vimeo.iter_folder_videos(main_id, fields=SEARCH_FIELDS)
                if f"[{search}]" in (video.get("name") or "").lower()
                or f"recorded by: {search}" in (video.get("description") or "").lower()
            ]

        target["video_count"] = len(videos)
        return {"folder": target, "videos": videos}

    def merge_folders(self, target_uri: str, source_uris: List[str]) -> MergeResult:
        """Move every video of the source folders into the target and delete the sources"""
        target_id = uri_id(target_uri or "")
        if not target_id or not source_uris:
            raise HTTPException(status_code=400, detail="Target folder and folders to merge are required")

        result = MergeResult()
        for source_uri in source_uris:
            source_id = uri_id(source_uri)
            if source_id == target_id:
                continue
            # Read every page before moving anything; moves shift later pages
            try:
                videos = list(self.vimeo.iter_folder_videos(source_id))
            except VimeoAPIError as e:
                logger.error(f"Skipping folder {source_id}, could not list videos: {e.message}")
                continue

            failed = 0
            for video in videos:
                video_id = uri_id(video["uri"])
                try:
                    self.vimeo.add_video_to_folder(target_id, video_id)
                    self.vimeo.remove_video_from_folder(source_id, video_id)
                    result.moved_videos += 1
                except VimeoAPIError as e:
                    logger.error(f"Failed to move video {video_id}: {e.message}")
                    failed += 1
            result.failed_videos += failed
            if failed:
                logger.warning(f"Keeping folder {source_id}: {failed} videos could not be moved")
                continue

            self.supabase.table("user_folders")\
                .update({"folder_id": target_id, "folder_uri": target_uri})\
                .eq("folder_id", source_id)\
                .execute()
            try:
                self.vimeo.delete_folder(source_id)
                result.merged_folders += 1
            except VimeoAPIError as e:
                logger.error(f"Failed to delete folder {source_id}: {e.message}")
        return result

    def cleanup_duplicate_folders(self) -> MergeResult:
        """Merge folders sharing a name into the oldest one"""
        groups: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        for folder in self.vimeo.list_folders():
            groups[folder.get("name")].append(folder)

        total = MergeResult()
        for name, duplicates in groups.items():
            if len(duplicates) < 2:
                continue
            logger.info(f"Found {len(duplicates)} duplicates for '{name}'")
            duplicates.sort(key=lambda f: f.get("created_time") or "")
            keep, rest = duplicates[0], duplicates[1:]
            merged = self.merge_folders(keep["uri"], [f["uri"] for f in rest])
            total.merged_folders += merged.merged_folders
            total.moved_videos += merged.moved_videos
            total.failed_videos += merged.failed_videos
        return total
