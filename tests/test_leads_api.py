# tests/test_leads_api.py

from fastapi.testclient import TestClient


def _seed(fake_db):
    fake_db.seed(
        "leads",
        {"id": "l1", "lead_id": 10001, "rider_name": "Kiran", "mobile_number": "9000000001", "status": "New", "category": "Genuine", "created_by": "tl-1", "created_at": "2024-05-01T06:00:00+00:00"},
        {"id": "l2", "lead_id": 10002, "rider_name": "Latha", "mobile_number": "9000000002", "status": "Convert", "category": "Genuine", "created_by": "tl-2", "created_at": "2024-05-02T06:00:00+00:00"},
    )
    fake_db.seed("riders", {"id": "r1", "rider_name": "Amit", "mobile_number": "9000000009", "status": "active"})


def test_team_leader_captures_lead(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)

    response = client.post("/leads", json={"rider_name": "Manoj", "mobile_number": "90000 00001", "city": "Pune"})
    assert response.status_code == 201
    lead = response.json()
    assert lead["lead_id"] == 10003
    assert lead["mobile_number"] == "9000000001"
    assert lead["category"] == "Duplicate"
    assert lead["status"] == "New"
    assert lead["created_by"] == "tl-1"
    assert lead["created_by_name"] == "Ravi Lead"

    log = next(l for l in fake_db.rows("activity_logs") if l["action_type"] == "leadCreated")
    assert log["metadata"]["category"] == "Duplicate"


def test_lead_matching_existing_rider(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)

    lead = client.post("/leads", json={"rider_name": "Amit", "mobile_number": "9000000009"}).json()
    assert lead["category"] == "Match"


def test_check_mobile(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)

    assert client.get("/leads/check-mobile", params={"mobile": "9000000002"}).json()["category"] == "Duplicate"
    assert client.get("/leads/check-mobile", params={"mobile": "9000000002", "exclude_id": "l2"}).json()["category"] == "Genuine"


def test_team_leader_sees_own_leads(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)

    assert [l["id"] for l in client.get("/leads").json()] == ["l1"]
    assert client.get("/leads/l2").status_code == 403

    stats = client.get("/leads/stats").json()
    assert stats["totalLeads"] == 1
    assert stats["newLeads"] == 1


def test_admin_filters_leads(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    assert [l["id"] for l in client.get("/leads", params={"status": "Convert"}).json()] == ["l2"]
    assert [l["id"] for l in client.get("/leads", params={"search": "10001"}).json()] == ["l1"]


def test_status_change_and_soft_delete(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    response = client.patch("/leads/l1/status", json={"status": "Not Convert"})
    assert response.status_code == 200
    assert response.json()["status"] == "Not Convert"

    log = next(l for l in fake_db.rows("activity_logs") if l["action_type"] == "leadStatusChange")
    assert (log["metadata"]["from"], log["metadata"]["to"]) == ("New", "Not Convert")

    assert client.patch("/leads/l1/status", json={"status": "Maybe"}).status_code == 422

    assert client.delete("/leads/l1").status_code == 200
    assert [l["id"] for l in client.get("/leads").json()] == ["l2"]
    assert client.delete("/leads/missing").status_code == 404


def test_team_leader_cannot_change_status(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)
    assert client.patch("/leads/l1/status", json={"status": "Convert"}).status_code == 403


def test_edit_recategorizes_when_mobile_changes(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    response = client.patch("/leads/l1", json={"rider_name": "Kiran", "mobile_number": "9000000009"})
    assert response.status_code == 200
    assert response.json()["category"] == "Match"
