# tests/test_notifications_api.py

import asyncio

from fastapi.testclient import TestClient

from services import live_views


class QuietChannels:
    """Realtime client whose channels never deliver a change event."""

    def channel(self, name):
        return self

    def on_postgres_changes(self, **options):
        return self

    async def subscribe(self):
        return self

    async def remove_channel(self, channel):
        return None


def _seed(fake_db):
    fake_db.seed(
        "users",
        {"id": "admin-1", "role": "admin"},
        {"id": "tl-1", "role": "teamLeader"},
        {"id": "tl-2", "role": "teamLeader"},
    )
    fake_db.seed(
        "riders",
        {"id": "r1", "status": "active"},
        {"id": "r2", "status": "deleted"},
    )


def test_broadcast_to_team_leaders_and_recall(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    response = client.post("/notifications/announcements", json={
        "title": "Holiday",
        "body": "Office closed on Monday",
        "target_role": "teamLeader",
        "tags": ["ops"],
    })
    assert response.status_code == 201
    body = response.json()
    assert body["recipients"] == 3
    assert body["delivered"] == 3
    # the sender gets a copy too
    assert sorted(n["user_id"] for n in fake_db.rows("notifications")) == ["admin-1", "tl-1", "tl-2"]

    announcement_id = body["announcement"]["id"]
    assert [a["id"] for a in client.get("/notifications/announcements").json()] == [announcement_id]

    deleted = client.delete(f"/notifications/announcements/{announcement_id}")
    assert deleted.json()["recalled"] == 3
    assert fake_db.rows("notifications") == []
    assert client.delete(f"/notifications/announcements/{announcement_id}").status_code == 404


def test_broadcast_to_riders_skips_deleted(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    body = client.post("/notifications/announcements", json={
        "title": "Payout",
        "body": "Payouts on Friday",
        "target_role": "rider",
    }).json()
    assert sorted(n["user_id"] for n in fake_db.rows("notifications")) == ["admin-1", "r1"]
    assert body["recipients"] == 2


def test_broadcast_skips_deleted_team_leaders(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    fake_db.seed("users", {"id": "tl-gone", "role": "teamLeader", "status": "deleted"})
    login_as(admin_user)

    body = client.post("/notifications/announcements", json={
        "title": "Audit",
        "body": "Wallet audit this week",
        "target_role": "all",
    }).json()
    recipients = sorted(n["user_id"] for n in fake_db.rows("notifications"))
    assert recipients == ["admin-1", "r1", "tl-1", "tl-2"]
    assert body["recipients"] == 4


def test_single_target_needs_id(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)
    response = client.post("/notifications/announcements", json={
        "title": "Hi",
        "body": "There",
        "target_role": "single_user",
    })
    assert response.status_code == 400


def test_team_leader_cannot_broadcast(client: TestClient, fake_db, login_as, team_leader):
    login_as(team_leader)
    response = client.post("/notifications/announcements", json={"title": "Hi", "body": "There"})
    assert response.status_code == 403


def test_inbox_read_flow(client: TestClient, fake_db, login_as, team_leader):
    fake_db.seed(
        "notifications",
        {"id": "n1", "user_id": "tl-1", "title": "A", "message": "a", "is_read": False, "created_at": "2024-05-01T06:00:00+00:00"},
        {"id": "n2", "user_id": "tl-1", "title": "B", "message": "b", "is_read": False, "created_at": "2024-05-02T06:00:00+00:00"},
        {"id": "n3", "user_id": "tl-2", "title": "C", "message": "c", "is_read": False, "created_at": "2024-05-03T06:00:00+00:00"},
    )
    login_as(team_leader)

    assert [n["id"] for n in client.get("/notifications").json()] == ["n2", "n1"]
    assert client.get("/notifications/unread-count").json() == {"unread": 2}

    assert client.patch("/notifications/n1/read").json()["is_read"] is True
    assert client.patch("/notifications/n3/read").status_code == 404
    assert [n["id"] for n in client.get("/notifications", params={"unread_only": True}).json()] == ["n2"]

    assert client.post("/notifications/read-all").json() == {"updated": 1}
    assert client.get("/notifications/unread-count").json() == {"unread": 0}

    assert client.delete("/notifications/n1").status_code == 200
    assert client.delete("/notifications/n3").status_code == 404


def test_announcements_are_served_from_the_live_view(client: TestClient, fake_db, login_as, admin_user):
    fake_db.seed("announcements", {"id": "a1", "title": "Holiday", "body": "Closed", "created_at": "2024-05-01T09:00:00+00:00"})
    login_as(admin_user)
    asyncio.run(live_views.start(["announcements"], client=QuietChannels()))

    try:
        # written behind the live view's back, no change event arrives
        fake_db.seed("announcements", {"id": "a2", "title": "Payout", "body": "Friday", "created_at": "2024-05-02T09:00:00+00:00"})
        assert [a["id"] for a in client.get("/notifications/announcements").json()] == ["a1"]
    finally:
        asyncio.run(live_views.stop())

    assert [a["id"] for a in client.get("/notifications/announcements").json()] == ["a2", "a1"]
