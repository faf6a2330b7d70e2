# services/wallet.py

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException

from core.config import settings
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import search_term, to_local, utc_now_iso
from services.activity_log import log_activity
from services.report_aggregator import format_currency, wallet_of


def _client():
    client = get_supabase_client()
    if client is None:
        raise HTTPException(500, "Supabase client not configured")
    return client


# ============================================================
# CREDIT / DEBIT
# ============================================================
def adjust_wallet(
    actor,
    rider: Dict[str, Any],
    amount: float,
    tx_type: str,
    description: Optional[str] = None,
    source: str = "Manual",
) -> Dict[str, Any]:
    """
    Apply a credit or debit to a rider. The balance update and the
    transaction insert are separate writes; if the insert fails the balance
    has already moved and the failure is logged.
    """
    if tx_type not in ("credit", "debit"):
        raise HTTPException(400, "type must be 'credit' or 'debit'")
    if amount <= 0:
        raise HTTPException(400, "amount must be positive")

    client = _client()
    previous = wallet_of(rider)
    new_balance = previous + amount if tx_type == "credit" else previous - amount

    client.table("riders").update({
        "wallet_amount": new_balance,
        "updated_at": utc_now_iso(),
    }).eq("id", rider["id"]).execute()

    performed_by = getattr(actor, "email", None) or getattr(actor, "id", None) or "system"
    tx = {
        "rider_id": rider["id"],
        "team_leader_id": rider.get("team_leader_id"),
        "amount": amount,
        "type": tx_type,
        "description": description or f"{tx_type.title()} of {format_currency(amount)}",
        "metadata": {
            "source": source,
            "previousBalance": previous,
            "newBalance": new_balance,
        },
        "performed_by": performed_by,
        "timestamp": utc_now_iso(),
    }

    stored_tx = None
    try:
        result = client.table("wallet_transactions").insert(tx).execute()
        stored_tx = result.data[0] if result.data else tx
    except Exception as e:
        logger.error(f"Wallet updated for rider {rider['id']} but transaction insert failed: {e}")

    verb = "Credited" if tx_type == "credit" else "Debited"
    log_activity(
        actor,
        "wallet_transaction",
        "rider",
        rider["id"],
        f"{verb} {format_currency(amount)} for {rider.get('rider_name') or rider['id']}",
        {
            "amount": amount,
            "type": tx_type,
            "teamLeaderId": rider.get("team_leader_id"),
            "previousBalance": previous,
            "newBalance": new_balance,
        },
    )

    return {"rider_id": rider["id"], "previous_balance": previous, "wallet_amount": new_balance, "transaction": stored_tx}


# ============================================================
# HISTORY
# ============================================================
def fetch_history(
    tx_type: Optional[str] = None,
    team_leader_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[dict]:
    client = _client()
    query = client.table("wallet_transactions").select("*")

    if tx_type and tx_type != "all":
        query = query.eq("type", tx_type)
    if team_leader_id and team_leader_id != "all":
        query = query.eq("team_leader_id", team_leader_id)
    if start:
        query = query.gte("timestamp", start.isoformat())
    if end:
        query = query.lte("timestamp", end.isoformat())
    term = search_term(search)
    if term:
        query = query.or_(f"description.ilike.%{term}%,performed_by.ilike.%{term}%")

    query = query.order("timestamp", desc=True)
    if limit:
        query = query.range(offset, offset + limit - 1)

    return query.execute().data or []


def export_rows(transactions: List[dict], rider_names: Dict[str, str], team_leader_names: Dict[str, str]) -> List[dict]:
    rows = []
    for tx in transactions:
        local = to_local(tx.get("timestamp"))
        rows.append({
            "Date": local.strftime("%Y-%m-%d %H:%M:%S") if local else "",
            "Rider": rider_names.get(tx.get("rider_id"), "N/A"),
            "Team Leader": team_leader_names.get(tx.get("team_leader_id"), "N/A"),
            "Type": tx.get("type") or "N/A",
            "Amount": tx.get("amount") or 0,
            "Details": tx.get("description") or "",
            "Source": (tx.get("metadata") or {}).get("source") or "Manual",
            "Performed By": tx.get("performed_by") or "",
        })
    return rows


# ============================================================
# ARCHIVE → daily_collections
# ============================================================
def aggregate_credits(transactions: List[dict]) -> Dict[Tuple[str, str], float]:
    """Sum credit amounts per (team_leader_id, YYYY-MM-DD of the stored timestamp)."""
    totals: Dict[Tuple[str, str], float] = {}
    for tx in transactions:
        if tx.get("type") != "credit":
            continue
        tl_id = tx.get("team_leader_id")
        timestamp = tx.get("timestamp")
        if not tl_id or not timestamp:
            continue
        day = str(timestamp).split("T")[0][:10]
        try:
            amount = float(tx.get("amount") or 0)
        except (TypeError, ValueError):
            continue
        totals[(tl_id, day)] = totals.get((tl_id, day), 0.0) + amount
    return totals


def archive_transactions(now: Optional[datetime] = None, days: Optional[int] = None) -> Dict[str, Any]:
    """
    Fold credits older than the cutoff into ``daily_collections`` (adding to
    any existing total for that team leader and day), then delete every
    transaction older than the cutoff.
    """
    client = _client()
    days = settings.WALLET_ARCHIVE_AFTER_DAYS if days is None else days
    cutoff = ((now or datetime.now(timezone.utc)) - timedelta(days=days)).isoformat()

    old = (
        client.table("wallet_transactions")
        .select("*")
        .lt("timestamp", cutoff)
        .execute()
    ).data or []

    if not old:
        logger.info("🧹 Wallet archive: nothing older than cutoff")
        return {"cutoff": cutoff, "archived": 0, "groups": 0, "deleted": 0}

    totals = aggregate_credits(old)

    for (tl_id, day), total in totals.items():
        existing = (
            client.table("daily_collections")
            .select("total_collection")
            .eq("team_leader_id", tl_id)
            .eq("date", day)
            .limit(1)
            .execute()
        ).data
        previous = float(existing[0].get("total_collection") or 0) if existing else 0.0

        client.table("daily_collections").upsert(
            {
                "team_leader_id": tl_id,
                "date": day,
                "total_collection": previous + total,
                "updated_at": utc_now_iso(),
            },
            on_conflict="team_leader_id,date",
        ).execute()

    deleted = (
        client.table("wallet_transactions")
        .delete()
        .lt("timestamp", cutoff)
        .execute()
    ).data or []

    logger.info(f"🧹 Wallet archive: {len(old)} transactions → {len(totals)} daily totals")
    return {"cutoff": cutoff, "archived": len(old), "groups": len(totals), "deleted": len(deleted)}
