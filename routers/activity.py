# routers/activity.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from core.supabase_client import get_supabase_client
from core.permission_helpers import is_admin, requires_permission
from core.logging_config import logger
from dependencies.auth import CurrentUser, requires_role
from models.activity_log import ActivityLogRead
from services.report_aggregator import in_day_range


router = APIRouter(
    prefix="/activity",
    tags=["Activity Log"],
)


@router.get("", response_model=List[ActivityLogRead], summary="Activity log")
def list_activity(
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 200,
    current_user: CurrentUser = Depends(requires_permission("modules.activityLog")),
):
    """
    Admins see everything; team leaders see their own actions plus events
    about their riders.
    """
    client = get_supabase_client()

    try:
        query = client.table("activity_logs").select("*").eq("is_deleted", False)
        if action_type and action_type != "all":
            query = query.eq("action_type", action_type)
        if target_type and target_type != "all":
            query = query.eq("target_type", target_type)
        rows = query.order("timestamp", desc=True).limit(limit).execute().data or []
    except Exception as e:
        logger.error(f"Failed to load activity log: {e}")
        raise HTTPException(500, "Failed to load activity log")

    if not is_admin(current_user):
        rows = [
            r for r in rows
            if r.get("user_id") == current_user.id
            or (r.get("metadata") or {}).get("teamLeaderId") == current_user.id
        ]

    if start_date and end_date:
        rows = [r for r in rows if in_day_range(r.get("timestamp"), start_date, end_date)]

    return [ActivityLogRead.from_row(r) for r in rows]


@router.delete(
    "/{log_id}",
    summary="Hide an activity log entry",
    dependencies=[Depends(requires_role(["admin"]))],
)
def hide_activity(log_id: str):
    client = get_supabase_client()
    result = client.table("activity_logs").update({"is_deleted": True}).eq("id", log_id).execute()
    if not result.data:
        raise HTTPException(404, "Activity log entry not found")
    return {"success": True, "id": log_id}
