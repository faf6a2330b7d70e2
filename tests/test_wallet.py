# tests/test_wallet.py

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from services.wallet import (
    adjust_wallet,
    aggregate_credits,
    archive_transactions,
    export_rows,
    fetch_history,
)


NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def test_aggregate_credits_groups_by_leader_and_stored_day():
    totals = aggregate_credits([
        {"type": "credit", "amount": 100, "team_leader_id": "tl-1", "timestamp": "2024-05-01T23:30:00+00:00"},
        {"type": "credit", "amount": "50", "team_leader_id": "tl-1", "timestamp": "2024-05-01T01:00:00+00:00"},
        {"type": "debit", "amount": 70, "team_leader_id": "tl-1", "timestamp": "2024-05-01T01:00:00+00:00"},
        {"type": "credit", "amount": 30, "team_leader_id": None, "timestamp": "2024-05-01T01:00:00+00:00"},
        {"type": "credit", "amount": 20, "team_leader_id": "tl-2", "timestamp": "2024-05-02T01:00:00+00:00"},
    ])
    assert totals == {("tl-1", "2024-05-01"): 150.0, ("tl-2", "2024-05-02"): 20.0}


def test_archive_adds_to_existing_collections_and_deletes_old_rows(fake_db):
    fake_db.seed("daily_collections", {"team_leader_id": "tl-1", "date": "2024-05-01", "total_collection": 1000})
    fake_db.seed(
        "wallet_transactions",
        {"id": "t1", "type": "credit", "amount": 100, "team_leader_id": "tl-1", "timestamp": "2024-05-01T06:00:00+00:00"},
        {"id": "t2", "type": "debit", "amount": 40, "team_leader_id": "tl-1", "timestamp": "2024-05-01T07:00:00+00:00"},
        {"id": "t3", "type": "credit", "amount": 25, "team_leader_id": "tl-2", "timestamp": "2024-05-02T06:00:00+00:00"},
        {"id": "t4", "type": "credit", "amount": 999, "team_leader_id": "tl-1", "timestamp": "2024-05-09T06:00:00+00:00"},
    )

    result = archive_transactions(now=NOW, days=3)

    assert result["archived"] == 3
    assert result["groups"] == 2
    assert result["deleted"] == 3
    assert [t["id"] for t in fake_db.rows("wallet_transactions")] == ["t4"]

    collections = {(c["team_leader_id"], c["date"]): c["total_collection"] for c in fake_db.rows("daily_collections")}
    assert collections == {("tl-1", "2024-05-01"): 1100.0, ("tl-2", "2024-05-02"): 25.0}


def test_archive_with_nothing_old(fake_db):
    fake_db.seed("wallet_transactions", {"type": "credit", "amount": 5, "team_leader_id": "tl-1", "timestamp": "2024-05-09T06:00:00+00:00"})
    result = archive_transactions(now=NOW, days=3)
    assert result["archived"] == 0
    assert len(fake_db.rows("wallet_transactions")) == 1
    assert fake_db.rows("daily_collections") == []


def test_adjust_wallet_credit_writes_transaction_and_log(fake_db, admin_user):
    rider = fake_db.seed("riders", {"id": "r1", "rider_name": "Amit", "wallet_amount": 100, "team_leader_id": "tl-1"})[0]

    result = adjust_wallet(admin_user, rider, 50, "credit", source="Manual")

    assert result["previous_balance"] == 100
    assert result["wallet_amount"] == 150
    assert fake_db.rows("riders")[0]["wallet_amount"] == 150

    tx = fake_db.rows("wallet_transactions")[0]
    assert tx["type"] == "credit"
    assert tx["team_leader_id"] == "tl-1"
    assert tx["metadata"] == {"source": "Manual", "previousBalance": 100.0, "newBalance": 150.0}

    log = fake_db.rows("activity_logs")[0]
    assert log["action_type"] == "wallet_transaction"
    assert log["metadata"]["teamLeaderId"] == "tl-1"

    # the rider's team leader hears about it
    assert any(n["user_id"] == "tl-1" for n in fake_db.rows("notifications"))


def test_adjust_wallet_debit_can_go_negative(fake_db, admin_user):
    rider = fake_db.seed("riders", {"id": "r1", "wallet_amount": 10})[0]
    result = adjust_wallet(admin_user, rider, 25, "debit")
    assert result["wallet_amount"] == -15


def test_adjust_wallet_keeps_balance_when_transaction_insert_fails(fake_db, admin_user):
    rider = fake_db.seed("riders", {"id": "r1", "wallet_amount": 0})[0]
    fake_db.fail("wallet_transactions", "insert")

    result = adjust_wallet(admin_user, rider, 10, "credit")

    assert result["transaction"] is None
    assert fake_db.rows("riders")[0]["wallet_amount"] == 10


@pytest.mark.parametrize("amount,tx_type", [(0, "credit"), (-5, "debit"), (10, "refund")])
def test_adjust_wallet_rejects_bad_input(fake_db, admin_user, amount, tx_type):
    with pytest.raises(HTTPException) as exc:
        adjust_wallet(admin_user, {"id": "r1"}, amount, tx_type)
    assert exc.value.status_code == 400


def test_fetch_history_filters_and_pages(fake_db):
    fake_db.seed(
        "wallet_transactions",
        {"id": "a", "type": "credit", "team_leader_id": "tl-1", "timestamp": "2024-05-01T00:00:00+00:00", "description": "Cash"},
        {"id": "b", "type": "debit", "team_leader_id": "tl-1", "timestamp": "2024-05-02T00:00:00+00:00", "description": "Fine"},
        {"id": "c", "type": "credit", "team_leader_id": "tl-2", "timestamp": "2024-05-03T00:00:00+00:00", "description": "UPI"},
        {"id": "d", "type": "credit", "team_leader_id": "tl-1", "timestamp": "2024-05-04T00:00:00+00:00", "description": "UPI cash"},
    )

    assert [t["id"] for t in fetch_history(team_leader_id="tl-1")] == ["d", "b", "a"]
    assert [t["id"] for t in fetch_history(tx_type="credit", search="cash")] == ["d", "a"]
    assert [t["id"] for t in fetch_history(limit=2, offset=1)] == ["c", "b"]


def test_export_rows_uses_names_and_local_time():
    rows = export_rows(
        [{"timestamp": "2024-05-01T06:00:00+00:00", "rider_id": "r1", "team_leader_id": "tl-x", "type": "credit", "amount": 50, "metadata": {}}],
        {"r1": "Amit"},
        {},
    )
    assert rows == [{
        "Date": "2024-05-01 11:30:00",
        "Rider": "Amit",
        "Team Leader": "N/A",
        "Type": "credit",
        "Amount": 50,
        "Details": "",
        "Source": "Manual",
        "Performed By": "",
    }]
