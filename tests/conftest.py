from __future__ import annotations

import json
import threading
from itertools import count
from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient

import sparky.main as sparky_main
from sparky.core.dependencies import get_auth_service
from sparky.database.supabase_client import get_supabase, get_supabase_admin
from sparky.database.vimeo_client import VimeoClient, get_vimeo
from sparky.modules.auth.service import AuthService, clear_auth_cache
from sparky.modules.folders import folder_locks


class FakeAPIError(Exception):
    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class _FakeResponse:
    def __init__(self, data) -> None:
        self.data = data


class _FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.limit_to = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def upsert(self, payload):
        self.op, self.payload = "upsert", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by, self.descending = column, desc
        return self

    def limit(self, n):
        self.limit_to = n
        return self

    def execute(self):
        with self.db.lock:
            return self._execute()

    def _execute(self):
        self.db.calls.append((self.table, self.op))
        if self.table in self.db.failing_tables:
            raise FakeAPIError(f"{self.table} is unavailable")
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            hook = self.db.before_insert.pop(self.table, None)
            if hook is not None:
                hook(self.db)
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            created = []
            for payload in payloads:
                self.db.check_unique(self.table, payload)
                row = {"id": str(uuid4()), **payload}
                rows.append(row)
                created.append(dict(row))
            return _FakeResponse(created)

        if self.op == "upsert":
            existing = next((row for row in rows if row["id"] == self.payload["id"]), None)
            if existing is None:
                existing = dict(self.payload)
                rows.append(existing)
            else:
                existing.update(self.payload)
            return _FakeResponse([dict(existing)])

        matched = [row for row in rows if all(f(row) for f in self.filters)]
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return _FakeResponse([dict(row) for row in matched])
        if self.op == "delete":
            for row in matched:
                rows.remove(row)
            return _FakeResponse([dict(row) for row in matched])

        if self.order_by:
            matched.sort(
                key=lambda row: (row.get(self.order_by) is None, str(row.get(self.order_by) or "")),
                reverse=self.descending,
            )
        if self.limit_to is not None:
            matched = matched[: self.limit_to]
        return _FakeResponse([dict(row) for row in matched])


class _FakeAdminAuth:
    def __init__(self) -> None:
        self.links = []
        self.fail_types = set()

    def generate_link(self, params):
        self.links.append(params)
        if params["type"] in self.fail_types:
            raise FakeAPIError(f"{params['type']} link disabled")
        link = (
            "https://example.supabase.co/auth/v1/verify"
            f"?token=tok-{len(self.links)}&type={params['type']}&redirect_to=https%3A%2F%2Fsparky.example.com"
        )
        return SimpleNamespace(properties=SimpleNamespace(action_link=link))


class _FakeAuth:
    def __init__(self) -> None:
        self.users = {}
        self.admin = _FakeAdminAuth()

    def get_user(self, jwt=None):
        user = self.users.get(jwt)
        if user is None:
            raise FakeAPIError("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=user)


class FakeSupabase:
    """In-memory stand-in for the chained supabase-py query builder."""

    UNIQUE = {
        "user_folders": ("owner_email",),
        "user_assignments": ("assignee_id", "assignor_id"),
    }

    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.before_insert = {}
        self.failing_tables = set()
        self.auth = _FakeAuth()
        self.lock = threading.RLock()

    def table(self, name: str) -> _FakeQuery:
        return _FakeQuery(self, name)

    def check_unique(self, table: str, payload: dict) -> None:
        columns = self.UNIQUE.get(table)
        if not columns:
            return
        for row in self.tables.get(table, []):
            if all(row.get(c) == payload.get(c) for c in columns):
                raise FakeAPIError("duplicate key value violates unique constraint", code="23505")

    def add_user(self, token: str, user_id: str, email: str, **metadata) -> None:
        self.auth.users[token] = SimpleNamespace(
            id=user_id,
            email=email,
            user_metadata=metadata,
            app_metadata={},
            created_at="2024-01-01T00:00:00+00:00",
            updated_at=None,
        )

    def add_profile(self, token: str, user_id: str, email: str, role: str, display_name: str) -> dict:
        self.add_user(token, user_id, email)
        row = {
            "id": user_id,
            "email": email,
            "display_name": display_name,
            "avatar_url": None,
            "role": role,
            "created_at": "2024-01-01T00:00:00+00:00",
            "updated_at": None,
        }
        self.tables.setdefault("profiles", []).append(row)
        return row


class FakeVimeo:
    """Minimal Vimeo API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.projects: dict[str, dict] = {}
        self.folder_videos: dict[str, list[str]] = {}
        self.videos: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.failures: dict[tuple[str, str], int] = {}
        self._ids = count(100)
        self._clock = count(1)
        self.lock = threading.Lock()

    def add_project(self, name: str, created_time: str | None = None, description: str = "") -> dict:
        project_id = str(next(self._ids))
        project = {
            "uri": f"/users/1/projects/{project_id}",
            "name": name,
            "description": description,
            "link": f"https://vimeo.com/user1/folder/{project_id}",
            "created_time": created_time or f"2024-01-01T00:00:{next(self._clock):02d}+00:00",
        }
        self.projects[project_id] = project
        self.folder_videos[project_id] = []
        return project

    def add_video(self, folder: dict | None, name: str, description: str = "") -> dict:
        video_id = str(next(self._ids))
        video = {
            "uri": f"/videos/{video_id}",
            "name": name,
            "description": description,
            "duration": 42,
            "created_time": "2024-02-01T10:00:00+00:00",
            "modified_time": "2024-02-01T10:05:00+00:00",
            "width": 1920,
            "height": 1080,
            "link": f"https://vimeo.com/{video_id}",
            "player_embed_url": f"https://player.vimeo.com/video/{video_id}",
            "pictures": {"sizes": [
                {"width": 100, "height": 75, "link": f"https://i.vimeocdn.com/{video_id}_100.jpg"},
                {"width": 295, "height": 166, "link": f"https://i.vimeocdn.com/{video_id}_295.jpg"},
            ]},
        }
        self.videos[video_id] = video
        if folder is not None:
            self.folder_videos[folder["uri"].split("/")[-1]].append(video_id)
        return video

    def count(self, method: str, path: str) -> int:
        return sum(1 for request in self.requests if request == (method, path))

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self.lock:
            return self._handle(request)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        self.requests.append((method, path))
        if (method, path) in self.failures:
            return httpx.Response(self.failures[(method, path)], json={"error": "Vimeo says no"})
        parts = path.strip("/").split("/")
        query = parse_qs(urlparse(str(request.url)).query)

        if parts == ["me", "projects"]:
            if method == "GET":
                data = list(self.projects.values())
                return httpx.Response(200, json={"total": len(data), "data": data, "paging": {"next": None}})
            body = json.loads(request.content)
            project = self.add_project(body["name"], description=body.get("description", ""))
            return httpx.Response(201, json=project)

        if parts[:2] in (["me", "projects"], ["me", "folders"]) and len(parts) >= 3:
            project_id = parts[2]
            if project_id not in self.projects:
                return httpx.Response(404, json={"error": "The requested folder couldn't be found."})
            if len(parts) == 3:
                if method == "DELETE":
                    del self.projects[project_id]
                    self.folder_videos.pop(project_id, None)
                    return httpx.Response(204)
                return httpx.Response(200, json=self.projects[project_id])
            if len(parts) == 4 and parts[3] == "videos":
                ids = self.folder_videos[project_id]
                per_page = int(query.get("per_page", ["25"])[0])
                page = int(query.get("page", ["1"])[0])
                start = (page - 1) * per_page
                data = [self.videos[v] for v in ids[start:start + per_page]]
                next_page = f"{path}?page={page + 1}&per_page={per_page}" if start + per_page < len(ids) else None
                return httpx.Response(200, json={
                    "total": len(ids), "data": data, "paging": {"next": next_page},
                })
            if len(parts) == 5 and parts[3] == "videos":
                video_id = parts[4]
                if video_id not in self.videos:
                    return httpx.Response(404, json={"error": "The requested video couldn't be found."})
                if method == "PUT":
                    for ids in self.folder_videos.values():
                        if video_id in ids:
                            ids.remove(video_id)
                    self.folder_videos[project_id].append(video_id)
                    return httpx.Response(204)
                if method == "DELETE":
                    if video_id in self.folder_videos[project_id]:
                        self.folder_videos[project_id].remove(video_id)
                    return httpx.Response(204)

        return httpx.Response(404, json={"error": f"No route for {method} {path}"})


ADMIN_ID = "00000000-0000-0000-0000-000000000001"
SUPERVISOR_ID = "00000000-0000-0000-0000-000000000002"
MANAGER_ID = "00000000-0000-0000-0000-000000000003"
USER_ID = "00000000-0000-0000-0000-000000000004"
OTHER_MANAGER_ID = "00000000-0000-0000-0000-000000000005"


@pytest.fixture(autouse=True)
def _reset_process_state():
    clear_auth_cache()
    folder_locks.clear()
    yield
    clear_auth_cache()
    folder_locks.clear()


@pytest.fixture
def db() -> FakeSupabase:
    fake = FakeSupabase()
    fake.add_profile("admin-token", ADMIN_ID, "john@tpnlife.com", "admin", "John Bradshaw")
    fake.add_profile("supervisor-token", SUPERVISOR_ID, "sue@tpnlife.com", "supervisor", "Sue Visor")
    fake.add_profile("manager-token", MANAGER_ID, "mark@tpnlife.com", "manager", "Mark Manager")
    fake.add_profile("user-token", USER_ID, "jane@tpnlife.com", "user", "Jane Doe")
    fake.add_profile("other-manager-token", OTHER_MANAGER_ID, "olga@tpnlife.com", "manager", "Olga Other")
    return fake


@pytest.fixture
def vimeo_server() -> FakeVimeo:
    return FakeVimeo()


@pytest.fixture
def vimeo(vimeo_server: FakeVimeo) -> VimeoClient:
    client = VimeoClient(
        "test-token",
        base_url="https://api.vimeo.test",
        transport=httpx.MockTransport(vimeo_server.handler),
    )
    yield client
    client.close()


@pytest.fixture
def client(db: FakeSupabase, vimeo: VimeoClient):
    app = sparky_main.app
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_supabase_admin] = lambda: db
    app.dependency_overrides[get_vimeo] = lambda: vimeo
    app.dependency_overrides[get_auth_service] = lambda: AuthService(db, db)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(token: str, **headers) -> dict:
    return {"Authorization": f"Bearer {token}", **headers}
