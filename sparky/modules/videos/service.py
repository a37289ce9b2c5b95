import logging
from fastapi import HTTPException
from sparky.database.vimeo_client import VimeoClient, uri_id
from sparky.modules.videos.schemas import AdminVideo, FolderVideo, TitleUserInfo
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

TITLE_SEPARATOR = " - "
MIN_THUMBNAIL_WIDTH = 200


def extract_user_from_title(title: Optional[str]) -> Optional[TitleUserInfo]:
    """Recorder titles look like "Jane Doe - 2024-01-01T00:00:00Z" or "jane@x.com - ..." """
    if not title:
        return None
    parts = title.split(TITLE_SEPARATOR)
    if len(parts) < 2:
        return None
    return TitleUserInfo(display_name=parts[0], is_email="@" in parts[0])


def pick_thumbnail(pictures: Optional[Dict[str, Any]]) -> Optional[str]:
    for size in (pictures or {}).get("sizes") or []:
        if (size.get("width") or 0) >= MIN_THUMBNAIL_WIDTH:
            return size.get("link")
    return None


def to_folder_video(video: Dict[str, Any]) -> FolderVideo:
    return FolderVideo(
        id=uri_id(video["uri"]),
        uri=video["uri"],
        title=video.get("name"),
        description=video.get("description"),
        thumbnail=pick_thumbnail(video.get("pictures")),
        duration=video.get("duration"),
        created_time=video.get("created_time"),
        link=video.get("link"),
        user_info=extract_user_from_title(video.get("name")),
    )


def to_admin_video(video: Dict[str, Any]) -> AdminVideo:
    return AdminVideo(**{field: video.get(field) for field in AdminVideo.model_fields})


class VideoService:
    def __init__(self, vimeo: VimeoClient):
        self.vimeo = vimeo

    def list_folder_videos(self, folder_id: str) -> List[FolderVideo]:
        """All videos of a folder with the recorder identity parsed from each title"""
        videos = [to_folder_video(video) for video in self.vimeo.iter_folder_videos(folder_id, per_page=50)]
        logger.info(f"Found {len(videos)} videos in folder {folder_id}")
        return videos

    def list_admin_videos(self, folder_id: str) -> Tuple[List[AdminVideo], int]:
        data = self.vimeo.list_folder_videos(folder_id, per_page=100)
        videos = [to_admin_video(video) for video in data.get("data") or []]
        return videos, data.get("total") or len(videos)

    def add_video_to_folder(self, folder_uri: str, video_uri: str) -> Dict[str, str]:
        folder_id, video_id = uri_id(folder_uri), uri_id(video_uri)
        if not folder_id or not video_id:
            raise HTTPException(status_code=400, detail="Both folderUri and videoUri are required")
        self.vimeo.add_video_to_folder(folder_id, video_id)
        logger.info(f"Added video {video_id} to folder {folder_id}")
        return {"folder_id": folder_id, "video_id": video_id}
