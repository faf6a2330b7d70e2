# tests/test_requests_api.py

from fastapi.testclient import TestClient


def _ticket(fake_db, **fields):
    row = {
        "ticket_id": 10001,
        "type": "other",
        "subject": "Help",
        "status": "pending",
        "user_id": "tl-1",
        "created_at": "2024-05-01T06:00:00+00:00",
        "timeline": [],
    }
    row.update(fields)
    return fake_db.seed("requests", row)[0]


def test_team_leader_raises_and_sees_own_tickets(client: TestClient, fake_db, login_as, team_leader):
    _ticket(fake_db, id="other", ticket_id=10001, user_id="tl-2")
    login_as(team_leader)

    response = client.post("/requests", json={"subject": "Wallet mismatch", "type": "wallet_issue"})
    assert response.status_code == 201
    created = response.json()
    assert created["ticket_id"] == 10002
    assert created["timeline"][0]["status"] == "pending"

    listed = client.get("/requests").json()
    assert [t["id"] for t in listed] == [created["id"]]

    assert client.get("/requests/other").status_code == 403


def test_admin_resolves_and_owner_is_notified(client: TestClient, fake_db, login_as, admin_user):
    ticket = _ticket(fake_db, id="t1")
    login_as(admin_user)

    response = client.patch("/requests/t1/status", json={"status": "resolved", "remark": "Fixed"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "resolved"
    assert body["resolved_by"] == "Asha Admin"
    assert body["timeline"][-1]["remark"] == "Fixed"

    note = fake_db.rows("notifications")[0]
    assert note["user_id"] == ticket["user_id"]
    assert note["type"] == "success"


def test_team_leader_cannot_resolve(client: TestClient, fake_db, login_as, team_leader):
    _ticket(fake_db, id="t1")
    login_as(team_leader)
    assert client.patch("/requests/t1/status", json={"status": "resolved"}).status_code == 403


def test_trash_restore_and_purge(client: TestClient, fake_db, login_as, admin_user):
    _ticket(fake_db, id="t1")
    _ticket(fake_db, id="t2", ticket_id=10002)
    login_as(admin_user)

    assert client.delete("/requests/t1").json()["status"] == "deleted"
    assert [t["id"] for t in client.get("/requests").json()] == ["t2"]
    assert [t["id"] for t in client.get("/requests", params={"trash": True}).json()] == ["t1"]

    assert client.post("/requests/t2/restore").status_code == 400
    assert client.post("/requests/t1/restore").json()["status"] == "pending"

    client.delete("/requests/t2/purge")
    assert client.get("/requests", params={"trash": True}).json() == []
    assert [t["id"] for t in client.get("/requests").json()] == ["t1"]


def test_owner_may_trash_own_ticket(client: TestClient, fake_db, login_as, team_leader):
    _ticket(fake_db, id="mine")
    _ticket(fake_db, id="theirs", user_id="tl-2")
    login_as(team_leader)

    assert client.delete("/requests/mine").status_code == 200
    assert client.delete("/requests/theirs").status_code == 403
    # trash view needs requests.delete
    assert client.get("/requests", params={"trash": True}).status_code == 403


def test_counts(client: TestClient, fake_db, login_as, admin_user):
    _ticket(fake_db, id="a", status="pending")
    _ticket(fake_db, id="b", status="in_progress")
    _ticket(fake_db, id="c", status="resolved")
    _ticket(fake_db, id="d", status="deleted")
    login_as(admin_user)

    counts = client.get("/requests/summary/counts").json()
    assert counts["total"] == 3
    assert counts["open"] == 2
    assert counts["resolved"] == 1
    assert counts["trash"] == 1
