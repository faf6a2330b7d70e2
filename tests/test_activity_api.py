# tests/test_activity_api.py

from fastapi.testclient import TestClient


def _seed(fake_db):
    fake_db.seed(
        "activity_logs",
        {"id": "a1", "user_id": "tl-1", "action_type": "leadCreated", "target_type": "lead", "is_deleted": False, "timestamp": "2024-05-01T06:00:00+00:00"},
        {"id": "a2", "user_id": "admin-1", "action_type": "riderUpdated", "target_type": "rider", "metadata": {"teamLeaderId": "tl-1"}, "is_deleted": False, "timestamp": "2024-05-02T06:00:00+00:00"},
        {"id": "a3", "user_id": "admin-1", "action_type": "riderUpdated", "target_type": "rider", "metadata": {"teamLeaderId": "tl-2"}, "is_deleted": False, "timestamp": "2024-05-03T06:00:00+00:00"},
        {"id": "a4", "user_id": "tl-1", "action_type": "leadDeleted", "target_type": "lead", "is_deleted": True, "timestamp": "2024-05-04T06:00:00+00:00"},
    )


def test_team_leader_sees_own_and_rider_events(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)

    assert [a["id"] for a in client.get("/activity").json()] == ["a2", "a1"]


def test_admin_filters(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    assert [a["id"] for a in client.get("/activity").json()] == ["a3", "a2", "a1"]
    assert [a["id"] for a in client.get("/activity", params={"target_type": "lead"}).json()] == ["a1"]
    assert [a["id"] for a in client.get("/activity", params={"action_type": "riderUpdated"}).json()] == ["a3", "a2"]

    window = client.get("/activity", params={"start_date": "2024-05-02", "end_date": "2024-05-02"}).json()
    assert [a["id"] for a in window] == ["a2"]


def test_admin_hides_entry(client: TestClient, fake_db, login_as, admin_user, team_leader):
    _seed(fake_db)

    login_as(team_leader)
    assert client.delete("/activity/a1").status_code == 403

    login_as(admin_user)
    assert client.delete("/activity/a1").json() == {"success": True, "id": "a1"}
    assert [a["id"] for a in client.get("/activity").json()] == ["a3", "a2"]
    assert client.delete("/activity/missing").status_code == 404
