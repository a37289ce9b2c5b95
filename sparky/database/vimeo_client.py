"""
Thin wrapper over the Vimeo REST API.

Vimeo "projects" and "folders" are the same resource; creation and listing go
through /me/projects and video listing through /me/folders/{id}/videos.
"""

import httpx
import logging
from typing import Any, Dict, Iterator, List, Optional

from sparky.config import settings

logger = logging.getLogger(__name__)


class VimeoAPIError(Exception):
    """Non-2xx answer (or transport failure) from the Vimeo API"""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def uri_id(uri: str) -> str:
    """Last path segment of a Vimeo URI, e.g. /users/1/projects/42 -> 42"""
    return str(uri).rstrip("/").split("/")[-1]


class VimeoClient:
    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.vimeo.com",
        api_version: str = "3.4",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": f"application/vnd.vimeo.*+json;version={api_version}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, **kwargs) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"Vimeo {method} {path} failed: {e}")
            raise VimeoAPIError(502, "Could not reach Vimeo") from e

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}
        message = body.get("error") if isinstance(body, dict) else None
        logger.error(f"Vimeo {method} {path} returned {response.status_code}: {response.text[:500]}")
        raise VimeoAPIError(
            response.status_code,
            message or f"Vimeo API error: {response.status_code}",
            details=body,
        )

    # Folders

    def list_folders(self, per_page: int = 100) -> List[Dict[str, Any]]:
        """All projects of the authenticated account, following pagination"""
        folders: List[Dict[str, Any]] = []
        path: Optional[str] = "/me/projects"
        params: Optional[Dict[str, Any]] = {"per_page": per_page}
        while path:
            data = self._request("GET", path, params=params) or {}
            folders.extend(data.get("data") or [])
            path = (data.get("paging") or {}).get("next")
            params = None  # next link already carries the query string
        return folders

    def get_folder(self, folder_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/me/projects/{folder_id}")

    def create_folder(self, name: str, description: str = "") -> Dict[str, Any]:
        payload = {"name": name}
        if description:
            payload["description"] = description
        return self._request("POST", "/me/projects", json=payload)

    def delete_folder(self, folder_id: str) -> None:
        self._request("DELETE", f"/me/projects/{folder_id}")

    # Videos

    def list_folder_videos(
        self,
        folder_id: str,
        per_page: int = 100,
        fields: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Raw page of folder videos: {"total": n, "data": [...]}"""
        params: Dict[str, Any] = {"per_page": per_page}
        if fields:
            params["fields"] = fields
        return self._request("GET", f"/me/folders/{folder_id}/videos", params=params) or {}

    def iter_folder_videos(
        self,
        folder_id: str,
        per_page: int = 100,
        fields: Optional[str] = None,
    ) -> Iterator[Dict[str, Any]]:
        """Every video of a folder, following pagination"""
        path: Optional[str] = f"/me/folders/{folder_id}/videos"
        params: Optional[Dict[str, Any]] = {"per_page": per_page}
        if fields:
            params["fields"] = fields
        while path:
            data = self._request("GET", path, params=params) or {}
            yield from data.get("data") or []
            path = (data.get("paging") or {}).get("next")
            params = None

    def count_folder_videos(self, folder_id: str) -> int:
        data = self._request("GET", f"/me/folders/{folder_id}/videos", params={"per_page": 1}) or {}
        return data.get("total") or len(data.get("data") or [])

    def add_video_to_folder(self, folder_id: str, video_id: str) -> None:
        self._request("PUT", f"/me/projects/{folder_id}/videos/{video_id}")

    def remove_video_from_folder(self, folder_id: str, video_id: str) -> None:
        self._request("DELETE", f"/me/projects/{folder_id}/videos/{video_id}")


_vimeo_client: Optional[VimeoClient] = None


def get_vimeo() -> VimeoClient:
    global _vimeo_client
    if not settings.vimeo_access_token:
        raise VimeoAPIError(500, "Vimeo access token not configured")
    if _vimeo_client is None:
        _vimeo_client = VimeoClient(
            access_token=settings.vimeo_access_token,
            base_url=settings.vimeo_api_base,
            api_version=settings.vimeo_api_version,
            timeout=settings.vimeo_timeout_seconds,
        )
    return _vimeo_client


def reset_vimeo() -> None:
    global _vimeo_client
    if _vimeo_client is not None:
        _vimeo_client.close()
    _vimeo_client = None
