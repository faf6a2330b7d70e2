# tests/test_wallet_api.py

import io

import pandas as pd
from fastapi.testclient import TestClient


def _seed(fake_db):
    fake_db.seed(
        "users",
        {"id": "tl-1", "full_name": "Ravi Lead", "role": "teamLeader"},
        {"id": "tl-2", "full_name": "Meera Lead", "role": "teamLeader"},
    )
    fake_db.seed(
        "riders",
        {"id": "r1", "rider_name": "Amit", "status": "active", "team_leader_id": "tl-1", "wallet_amount": 100},
        {"id": "r2", "rider_name": "Bala", "status": "active", "team_leader_id": "tl-2", "wallet_amount": -40},
        {"id": "r3", "rider_name": "Chetan", "status": "deleted", "team_leader_id": "tl-1", "wallet_amount": 500},
    )
    fake_db.seed(
        "wallet_transactions",
        {"id": "w1", "rider_id": "r1", "team_leader_id": "tl-1", "amount": 100, "type": "credit", "description": "Top up", "performed_by": "asha@example.com", "timestamp": "2024-05-01T06:00:00+00:00"},
        {"id": "w2", "rider_id": "r2", "team_leader_id": "tl-2", "amount": 40, "type": "debit", "description": "Penalty", "performed_by": "asha@example.com", "timestamp": "2024-05-02T06:00:00+00:00"},
    )


def test_admin_credits_and_debits(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    response = client.post("/wallet/riders/r1/credit", json={"amount": 50, "description": "Cash deposit"})
    assert response.status_code == 200
    assert response.json()["wallet_amount"] == 150

    response = client.post("/wallet/riders/r1/debit", json={"amount": 30})
    assert response.json()["previous_balance"] == 150
    assert response.json()["wallet_amount"] == 120

    rider = next(r for r in fake_db.rows("riders") if r["id"] == "r1")
    assert rider["wallet_amount"] == 120
    types = [t["type"] for t in fake_db.rows("wallet_transactions") if t["rider_id"] == "r1"]
    assert types == ["credit", "credit", "debit"]


def test_adjustment_must_be_positive(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)
    assert client.post("/wallet/riders/r1/credit", json={"amount": 0}).status_code == 422
    assert client.post("/wallet/riders/missing/credit", json={"amount": 5}).status_code == 404


def test_team_leader_needs_wallet_grant(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)
    assert client.post("/wallet/riders/r1/credit", json={"amount": 5}).status_code == 403


def test_granted_team_leader_only_touches_own_riders(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    team_leader.permissions = {"wallet": {"addFunds": True}}
    login_as(team_leader)

    assert client.post("/wallet/riders/r1/credit", json={"amount": 5}).status_code == 200
    assert client.post("/wallet/riders/r2/credit", json={"amount": 5}).status_code == 403


def test_summary_is_scoped(client: TestClient, fake_db, login_as, admin_user, team_leader):
    _seed(fake_db)

    login_as(admin_user)
    summary = client.get("/wallet/summary").json()
    assert summary["positiveCount"] == 1
    assert summary["negativeCount"] == 1
    assert summary["netBalance"] == 60

    login_as(team_leader)
    summary = client.get("/wallet/summary").json()
    assert summary["negativeCount"] == 0
    assert summary["netBalance"] == 100


def test_history_is_scoped_for_team_leader(client: TestClient, fake_db, login_as, team_leader):
    _seed(fake_db)
    login_as(team_leader)

    body = client.get("/wallet/history", params={"team_leader_id": "tl-2"}).json()
    assert [t["id"] for t in body["items"]] == ["w1"]
    assert body["limit"] == 50


def test_history_filters(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    items = client.get("/wallet/history").json()["items"]
    assert [t["id"] for t in items] == ["w2", "w1"]

    items = client.get("/wallet/history", params={"type": "credit"}).json()["items"]
    assert [t["id"] for t in items] == ["w1"]

    items = client.get("/wallet/history", params={"search": "penal"}).json()["items"]
    assert [t["id"] for t in items] == ["w2"]


def test_history_export(client: TestClient, fake_db, login_as, admin_user):
    _seed(fake_db)
    login_as(admin_user)

    response = client.get("/wallet/history/export", params={"format": "csv"})
    assert response.status_code == 200
    frame = pd.read_csv(io.BytesIO(response.content))
    assert list(frame["Rider"]) == ["Bala", "Amit"]
    assert list(frame["Team Leader"]) == ["Meera Lead", "Ravi Lead"]

    assert client.get("/wallet/history/export", params={"format": "txt"}).status_code == 400


def test_archive_is_admin_only(client: TestClient, fake_db, login_as, admin_user, team_leader):
    _seed(fake_db)

    login_as(team_leader)
    assert client.post("/wallet/archive").status_code == 403

    login_as(admin_user)
    response = client.post("/wallet/archive", params={"days": 0})
    assert response.status_code == 200
    assert response.json()["archived"] == 2
    assert [(c["team_leader_id"], c["total_collection"]) for c in fake_db.rows("daily_collections")] == [("tl-1", 100.0)]
    assert fake_db.rows("wallet_transactions") == []
