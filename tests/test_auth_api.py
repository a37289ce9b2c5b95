import json
from urllib.parse import parse_qs, urlparse

from sparky.core.dependencies import resolve_effective_user
from sparky.modules.profiles.schemas import ProfileResponse

from tests.conftest import ADMIN_ID, USER_ID, auth


def test_health_probes_and_security_headers(client):
    response = client.get("/health")
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert client.get("/ready").json() == {"status": "ready"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nope", headers=auth("user-token"))
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_missing_token_is_rejected(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "No valid authorization header"}


def test_invalid_token_is_rejected(client):
    response = client.get("/api/auth/me", headers=auth("forged"))
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired token"


def test_me_creates_profile_on_first_sign_in(client, db):
    db.add_user("new-token", "new-id", "new@tpnlife.com", full_name="New Person")

    response = client.get("/api/auth/me", headers=auth("new-token"))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["profile"]["role"] == "user"
    assert body["profile"]["display_name"] == "New Person"
    assert body["effective_user"]["isImpersonating"] is False
    assert body["can_see_management_panels"] is False
    assert any(row["id"] == "new-id" for row in db.tables["profiles"])


def test_me_for_management_role(client):
    body = client.get("/api/auth/me", headers=auth("manager-token")).json()
    assert body["profile"]["role"] == "manager"
    assert body["can_see_management_panels"] is True


def _jane_header():
    return json.dumps({
        "id": USER_ID,
        "email": "jane@tpnlife.com",
        "display_name": "Jane Doe",
        "role": "user",
    })


def test_admin_impersonation_header_is_honoured(client):
    response = client.get(
        "/api/auth/me",
        headers=auth("admin-token", **{"X-Impersonate-User": _jane_header()}),
    )
    body = response.json()
    assert body["profile"]["id"] == ADMIN_ID
    assert body["effective_user"]["email"] == "jane@tpnlife.com"
    assert body["effective_user"]["isImpersonating"] is True
    assert body["can_see_management_panels"] is False


def test_impersonation_header_ignored_for_non_admins(client):
    response = client.get(
        "/api/auth/me",
        headers=auth("manager-token", **{"X-Impersonate-User": _jane_header()}),
    )
    effective = response.json()["effective_user"]
    assert effective["email"] == "mark@tpnlife.com"
    assert effective["isImpersonating"] is False


def test_resolve_effective_user_falls_back_on_bad_headers():
    admin = ProfileResponse(id=ADMIN_ID, email="john@tpnlife.com", role="admin")
    for header in (None, "", "not json", "[]", json.dumps({"id": USER_ID})):
        effective = resolve_effective_user(admin, header)
        assert effective.id == ADMIN_ID
        assert effective.is_impersonating is False

    odd_role = resolve_effective_user(admin, json.dumps({"id": "x", "email": "x@tpnlife.com", "role": "owner"}))
    assert odd_role.is_impersonating is True
    assert odd_role.role == "user"


def test_impersonate_returns_link_with_local_redirect(client, db):
    response = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": USER_ID, "targetUserEmail": "jane@tpnlife.com"},
        headers=auth("admin-token", origin="http://localhost:5173"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Impersonation session created"
    query = parse_qs(urlparse(body["impersonationLink"]).query)
    assert query["redirect_to"] == ["http://localhost:5173/users"]
    assert "sparky.example.com" in body["originalLink"]
    assert body["targetUser"]["email"] == "jane@tpnlife.com"
    assert body["targetUser"]["isImpersonating"] is True
    assert db.auth.admin.links == [{"type": "magiclink", "email": "jane@tpnlife.com"}]


def test_impersonate_falls_back_to_invite_link(client, db):
    db.auth.admin.fail_types.add("magiclink")

    response = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": USER_ID, "targetUserEmail": "jane@tpnlife.com"},
        headers=auth("admin-token"),
    )

    body = response.json()
    assert response.status_code == 200
    assert body["message"].endswith("(alternative method)")
    assert body["impersonationLink"] == body["originalLink"]
    assert [link["type"] for link in db.auth.admin.links] == ["magiclink", "invite"]


def test_impersonate_fails_when_no_link_can_be_made(client, db):
    db.auth.admin.fail_types.update({"magiclink", "invite"})
    response = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": USER_ID, "targetUserEmail": "jane@tpnlife.com"},
        headers=auth("admin-token"),
    )
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to generate impersonation session"}


def test_impersonate_validates_target(client):
    mismatch = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": USER_ID, "targetUserEmail": "someone@else.com"},
        headers=auth("admin-token"),
    )
    assert mismatch.status_code == 400

    missing = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": "ghost", "targetUserEmail": "ghost@tpnlife.com"},
        headers=auth("admin-token"),
    )
    assert missing.status_code == 404

    self_target = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": ADMIN_ID, "targetUserEmail": "john@tpnlife.com"},
        headers=auth("admin-token"),
    )
    assert self_target.status_code == 400

    no_email = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": USER_ID},
        headers=auth("admin-token"),
    )
    assert no_email.status_code == 400
    assert no_email.json()["error"] == "targetUserEmail is required"


def test_impersonate_is_admin_only(client):
    response = client.post(
        "/api/admin/impersonate",
        json={"targetUserId": USER_ID, "targetUserEmail": "jane@tpnlife.com"},
        headers=auth("supervisor-token"),
    )
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_stop_impersonate(client):
    response = client.post("/api/admin/stop-impersonate", headers=auth("user-token"))
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Impersonation stopped successfully"}
