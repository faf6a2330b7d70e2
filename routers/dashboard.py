# routers/dashboard.py

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends

from core.supabase_client import get_supabase_client
from core.permission_helpers import has_permission, is_admin, requires_permission, scoped_team_leader_id
from core.utils import report_tz
from dependencies.auth import CurrentUser
from services import live_views
from services.report_aggregator import (
    admin_dashboard_stats,
    collection_by_day,
    lead_stats,
    team_leader_performance,
    wallet_summary,
)


router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


def _fetch_all(table: str):
    def fetch():
        client = get_supabase_client()
        return client.table(table).select("*").execute().data or []
    return fetch


def build_cards(user: CurrentUser, riders: list, leads: list, users: list) -> dict:
    """
    Every card the caller may see, keyed by its ``dashboard.statsCards.*``
    leaf. Cards without a granted leaf are left out entirely.
    """
    stats = admin_dashboard_stats(riders, users)
    wallets = wallet_summary(riders)
    leads_summary = lead_stats(leads)

    values = {
        "totalRiders": stats["totalRiders"],
        "activeRiders": stats["activeRiders"],
        "inactiveRiders": stats["inactiveRiders"],
        "deletedRiders": stats["deletedRiders"],
        "teamLeaders": stats["totalTeamLeaders"],
        "revenue": stats["netWalletBalance"],
        "totalLeads": leads_summary["totalLeads"],
        "newLeads": leads_summary["newLeads"],
        "convertedLeads": leads_summary["convertedLeads"],
        "notConvertedLeads": leads_summary["notConvertedLeads"],
        "walletPositive": {"count": wallets["positiveCount"], "total": wallets["totalPositive"]},
        "walletNegative": {"count": wallets["negativeCount"], "total": wallets["totalNegative"]},
        "walletZero": {"count": wallets["zeroCount"]},
        "walletAverage": wallets["averageWallet"],
    }

    if is_admin(user):
        leaders = [u for u in users if u.get("role") == "teamLeader"]
        values["leaderboard"] = team_leader_performance(riders, leaders)[:5]

    return {
        key: value for key, value in values.items()
        if has_permission(user, f"dashboard.statsCards.{key}")
    }


@router.get("/stats", summary="Stats cards the caller is allowed to see")
def get_stats(current_user: CurrentUser = Depends(requires_permission("dashboard.view"))):
    riders = live_views.get_rows("riders", _fetch_all("riders"))
    leads = live_views.get_rows("leads", _fetch_all("leads"))
    users = live_views.get_rows("users", _fetch_all("users")) if is_admin(current_user) else []

    scope = scoped_team_leader_id(current_user)
    if scope:
        riders = [r for r in riders if r.get("team_leader_id") == scope]
        leads = [l for l in leads if l.get("created_by") == scope]

    return {"cards": build_cards(current_user, riders, leads, users)}


@router.get("/recent-activity", summary="Latest activity log entries")
def recent_activity(
    limit: int = 20,
    current_user: CurrentUser = Depends(requires_permission("dashboard.recentActivity")),
):
    client = get_supabase_client()
    query = client.table("activity_logs").select("*").eq("is_deleted", False)
    if not is_admin(current_user):
        query = query.eq("user_id", current_user.id)
    return query.order("timestamp", desc=True).limit(limit).execute().data or []


@router.get("/collections", summary="Today's and last 7 days' collections")
def collections(current_user: CurrentUser = Depends(requires_permission("dashboard.charts.revenue"))):
    today = datetime.now(report_tz()).date()
    week_start = today - timedelta(days=6)

    transactions = live_views.get_rows("wallet_transactions", _fetch_all("wallet_transactions"))
    weekly = collection_by_day(transactions, week_start, today, scoped_team_leader_id(current_user))

    return {
        "today": weekly[-1]["total"] if weekly else 0.0,
        "weekly": weekly,
    }
