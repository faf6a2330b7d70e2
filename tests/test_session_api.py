# tests/test_session_api.py

from types import SimpleNamespace

from fastapi.testclient import TestClient

from dependencies.auth import CurrentUser


def test_admin_session_on_portal(client: TestClient, login_as, admin_user):
    login_as(admin_user)

    body = client.get("/session", params={"path": "/portal/riders"}).json()
    assert body["decision"]["outcome"] == "allowed"
    assert body["home_path"] == "/portal"
    assert body["permissions"]["users"]["managePermissions"] is True
    assert {n["id"] for n in body["navigation"]} >= {"users", "reports"}


def test_team_leader_on_admin_path_is_unauthorized(client: TestClient, login_as, team_leader):
    login_as(team_leader)

    body = client.get("/session", params={"path": "/portal"}).json()
    assert body["decision"]["outcome"] == "unauthorized"
    assert body["decision"]["redirect_to"] == "/unauthorized"
    assert body["home_path"] == "/team-leader"
    assert body["permissions"] == {}
    assert body["navigation"] == []


def test_suspended_session_reports_status(client: TestClient, login_as, suspended_user):
    login_as(suspended_user)

    body = client.get("/session", params={"path": "/team-leader"}).json()
    assert body["decision"]["outcome"] == "suspended"
    assert "suspended" in body["decision"]["message"]


def test_profile_missing(client: TestClient, login_as):
    login_as(CurrentUser(id="u-9", email="ghost@example.com", has_profile=False))
    body = client.get("/session").json()
    assert body["decision"]["outcome"] == "profile_missing"


def test_real_token_flow_loads_profile(client: TestClient, fake_db):
    fake_db.auth.tokens["good"] = SimpleNamespace(id="tl-1", email="lead@example.com")
    fake_db.seed("users", {
        "id": "tl-1",
        "email": "lead@example.com",
        "role": "teamLeader",
        "status": "inactive",
        "permissions": '{"modules": {"riders": false}}',
    })

    session = client.get("/session", headers={"Authorization": "Bearer good"}).json()
    assert session["user"]["role"] == "teamLeader"
    assert session["decision"]["outcome"] == "inactive"

    response = client.get("/riders", headers={"Authorization": "Bearer good"})
    assert response.status_code == 403
    assert response.json()["detail"]["outcome"] == "inactive"


def test_bad_token(client: TestClient, fake_db):
    response = client.get("/session", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_auth_me_without_profile_row(client: TestClient, fake_db):
    fake_db.auth.tokens["orphan"] = SimpleNamespace(id="u-1", email="orphan@example.com")
    body = client.get("/auth/me", headers={"Authorization": "Bearer orphan"}).json()
    assert body["role"] == "guest"
    assert body["has_profile"] is False


def test_login(client: TestClient, fake_db):
    fake_db.auth.passwords["lead@example.com"] = "Str0ngPass"

    ok = client.post("/auth/login", json={"email": "Lead@Example.com", "password": "Str0ngPass"})
    assert ok.status_code == 200
    assert ok.json()["access_token"] == "token-lead@example.com"

    bad = client.post("/auth/login", json={"email": "lead@example.com", "password": "nope"})
    assert bad.status_code == 401


def test_login_is_rate_limited(client: TestClient, fake_db):
    for _ in range(10):
        client.post("/auth/login", json={"email": "x@example.com", "password": "nope"})

    blocked = client.post("/auth/login", json={"email": "x@example.com", "password": "nope"})
    assert blocked.status_code == 429
    assert "Retry-After" in blocked.headers
