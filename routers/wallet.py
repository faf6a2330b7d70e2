# routers/wallet.py

from datetime import date, datetime, time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from core.supabase_client import get_supabase_client
from core.permission_helpers import require_rider_access, requires_permission, scoped_team_leader_id
from core.utils import report_tz
from core.logging_config import logger
from dependencies.auth import CurrentUser, requires_role
from models.wallet import WalletAdjustment, WalletTransactionRead
from services import wallet as wallet_service
from services.exporter import export_rows
from services.report_aggregator import wallet_summary


router = APIRouter(
    prefix="/wallet",
    tags=["Wallet"],
)


def _day_bounds(start_date: Optional[date], end_date: Optional[date]):
    """Local-day bounds; the end date runs to the last microsecond of that day."""
    tz = report_tz()
    start = tz.localize(datetime.combine(start_date, time.min)) if start_date else None
    end = tz.localize(datetime.combine(end_date, time.max)) if end_date else None
    return start, end


def _get_rider(client, rider_id: str) -> dict:
    result = client.table("riders").select("*").eq("id", rider_id).limit(1).execute()
    if not result.data:
        raise HTTPException(404, "Rider not found")
    return result.data[0]


# -----------------------------------------------------
# CREDIT / DEBIT
# -----------------------------------------------------
@router.post("/riders/{rider_id}/credit", summary="Add funds to a rider wallet")
def credit_rider(
    rider_id: str,
    payload: WalletAdjustment,
    current_user: CurrentUser = Depends(requires_permission("wallet.addFunds")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    try:
        return wallet_service.adjust_wallet(current_user, rider, payload.amount, "credit", payload.description)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Wallet credit failed for {rider_id}: {e}")
        raise HTTPException(500, "Failed to update wallet")


@router.post("/riders/{rider_id}/debit", summary="Deduct funds from a rider wallet")
def debit_rider(
    rider_id: str,
    payload: WalletAdjustment,
    current_user: CurrentUser = Depends(requires_permission("wallet.deductFunds")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    try:
        return wallet_service.adjust_wallet(current_user, rider, payload.amount, "debit", payload.description)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Wallet debit failed for {rider_id}: {e}")
        raise HTTPException(500, "Failed to update wallet")


# -----------------------------------------------------
# SUMMARY
# -----------------------------------------------------
@router.get("/summary", summary="Positive / negative / zero wallet totals")
def get_wallet_summary(current_user: CurrentUser = Depends(requires_permission("wallet.view"))):
    client = get_supabase_client()
    query = client.table("riders").select("id, wallet_amount, status, team_leader_id").neq("status", "deleted")
    scope = scoped_team_leader_id(current_user)
    if scope:
        query = query.eq("team_leader_id", scope)
    return wallet_summary(query.execute().data or [])


# -----------------------------------------------------
# HISTORY
# -----------------------------------------------------
@router.get("/history", summary="Wallet transaction history")
def get_history(
    type: Optional[str] = Query(None, description="credit | debit | all"),
    team_leader_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: CurrentUser = Depends(requires_permission("wallet.viewHistory")),
):
    """Team leaders always get their own transactions only."""
    start, end = _day_bounds(start_date, end_date)
    team_leader_id = scoped_team_leader_id(current_user) or team_leader_id

    try:
        rows = wallet_service.fetch_history(type, team_leader_id, start, end, search, limit, offset)
    except Exception as e:
        logger.error(f"Failed to load wallet history: {e}")
        raise HTTPException(500, "Failed to load wallet history")

    return {
        "items": [WalletTransactionRead.from_row(r) for r in rows],
        "limit": limit,
        "offset": offset,
    }


@router.get("/history/export", summary="Export wallet history")
def export_history(
    type: Optional[str] = None,
    team_leader_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    format: str = Query("csv", description="csv | xlsx | pdf"),
    current_user: CurrentUser = Depends(requires_permission("wallet.viewHistory")),
):
    client = get_supabase_client()
    start, end = _day_bounds(start_date, end_date)
    team_leader_id = scoped_team_leader_id(current_user) or team_leader_id

    transactions = wallet_service.fetch_history(type, team_leader_id, start, end, search)
    riders = client.table("riders").select("id, rider_name").execute().data or []
    leaders = client.table("users").select("id, full_name").eq("role", "teamLeader").execute().data or []

    rows = wallet_service.export_rows(
        transactions,
        {r["id"]: r.get("rider_name") or "N/A" for r in riders},
        {u["id"]: u.get("full_name") or "N/A" for u in leaders},
    )

    try:
        file = export_rows(rows, format, "wallet_history", title="Wallet History")
    except ValueError as e:
        raise HTTPException(400, str(e))

    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
    )


# -----------------------------------------------------
# ARCHIVE (admin)
# -----------------------------------------------------
@router.post(
    "/archive",
    summary="Move old credits into daily collections and clear history",
    dependencies=[Depends(requires_role(["admin"]))],
)
def archive_history(days: Optional[int] = Query(None, ge=0)):
    try:
        return wallet_service.archive_transactions(days=days)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Wallet archive failed: {e}")
        raise HTTPException(500, "Failed to archive wallet history")
