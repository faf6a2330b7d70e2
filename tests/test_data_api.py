# tests/test_data_api.py

"""
Tests for spreadsheet templates, upload preview, bulk imports and rider
export.
"""

from io import BytesIO

import pandas as pd
from fastapi.testclient import TestClient

from services.exporter import parse_csv_bytes


RIDER_SHEET = (
    b"Rider Name,Mobile Number,Client Name,Wallet Amount\n"
    b"Amit,9000000001,Zomato,(-) 250\n"
    b"Bala,9000000002,Swiggy,100\n"
    b",9000000003,Zepto,0\n"
)


def _upload(content: bytes, name: str = "riders.csv"):
    return {"file": (name, content, "text/csv")}


def test_download_rider_template(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)

    response = client.get("/data/templates/rider")
    assert response.status_code == 200
    assert 'filename="rider_import_template_' in response.headers["content-disposition"]
    header = response.content.decode("utf-8-sig").splitlines()[0]
    assert "Rider Name" in header

    assert client.get("/data/templates/unknown").status_code == 400


def test_team_leader_has_no_data_module(client: TestClient, fake_db, login_as, team_leader):
    login_as(team_leader)
    assert client.get("/data/templates/rider").status_code == 403
    assert client.post("/data/import/riders", files=_upload(RIDER_SHEET)).status_code == 403


def test_preview_reports_mapping_and_problems(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)

    response = client.post("/data/preview", files=_upload(RIDER_SHEET), data={"kind": "rider"})
    assert response.status_code == 200
    body = response.json()
    assert body["rows"] == 3
    assert body["mapping"]["Mobile Number"] == "Mobile Number"
    assert "Triev ID" in body["unmapped"]
    assert body["problems"] == ["Row 4: Rider Name is required"]
    assert fake_db.rows("riders") == []


def test_preview_rejects_non_spreadsheet(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)
    response = client.post("/data/preview", files=_upload(b"hello", name="notes.txt"))
    assert response.status_code == 400


def test_import_riders_from_upload(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)

    response = client.post("/data/import/riders", files=_upload(RIDER_SHEET))
    assert response.status_code == 200
    summary = response.json()
    assert summary["total"] == 3
    assert summary["success"] == 2
    assert summary["failed"] == 1

    wallets = {r["mobile_number"]: r["wallet_amount"] for r in fake_db.rows("riders")}
    assert wallets == {"9000000001": -250.0, "9000000002": 100.0}
    assert fake_db.rows("import_history")[0]["import_type"] == "rider"


def test_import_riders_from_xlsx_with_blank_mobile(client: TestClient, fake_db, login_as, admin_user):
    buffer = BytesIO()
    pd.DataFrame({
        "Rider Name": ["Amit", "Bala"],
        "Mobile Number": [9000000001, None],
        "Triev ID": ["TR101", "TR102"],
        "Wallet Amount": [100, -20],
    }).to_excel(buffer, index=False)
    login_as(admin_user)

    files = {"file": ("riders.xlsx", buffer.getvalue(), "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")}
    response = client.post("/data/import/riders", files=files)
    assert response.json()["success"] == 2

    stored = {r["triev_id"]: (r["mobile_number"], r["wallet_amount"]) for r in fake_db.rows("riders")}
    assert stored == {"TR101": ("9000000001", 100.0), "TR102": (None, -20.0)}


def test_upload_rejects_legacy_xls(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)
    response = client.post("/data/import/riders", files=_upload(b"\xd0\xcf\x11\xe0", name="riders.xls"))
    assert response.status_code == 400
    assert ".xlsx" in response.json()["detail"]


def test_import_riders_needs_identifier_column(client: TestClient, fake_db, login_as, admin_user):
    login_as(admin_user)
    response = client.post("/data/import/riders", files=_upload(b"Rider Name,Remarks\nAmit,ok\n"))
    assert response.status_code == 400


def test_import_wallets(client: TestClient, fake_db, login_as, admin_user):
    fake_db.seed("riders", {"id": "r1", "triev_id": "TR1", "mobile_number": "9000000001", "wallet_amount": 0})
    login_as(admin_user)

    response = client.post("/data/import/wallets", files=_upload(b"Triev ID,Wallet Amount\nTR1,1500\n", name="wallets.csv"))
    assert response.json()["success"] == 1
    assert fake_db.rows("riders")[0]["wallet_amount"] == 1500.0

    missing = client.post("/data/import/wallets", files=_upload(b"Triev ID,Remarks\nTR1,x\n", name="wallets.csv"))
    assert missing.status_code == 400


def test_export_riders_is_scoped(client: TestClient, fake_db, login_as, team_leader):
    fake_db.seed(
        "riders",
        {"id": "r1", "rider_name": "Amit", "status": "active", "team_leader_id": "tl-1"},
        {"id": "r2", "rider_name": "Bala", "status": "active", "team_leader_id": "tl-2"},
        {"id": "r3", "rider_name": "Chetan", "status": "deleted", "team_leader_id": "tl-1"},
    )
    team_leader.permissions = {"riders": {"export": True}}
    login_as(team_leader)

    response = client.get("/data/export/riders")
    assert response.status_code == 200
    assert [r["Name"] for r in parse_csv_bytes(response.content)] == ["Amit"]
