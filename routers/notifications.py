# routers/notifications.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from core.supabase_client import get_supabase_client
from core.permission_helpers import requires_permission
from core.utils import utc_now_iso
from core.logging_config import logger
from dependencies.auth import CurrentUser, get_active_user
from models.notification import AnnouncementCreate, AnnouncementRead, NotificationRead
from services.activity_log import log_activity
from services import live_views
from services.notifications import broadcast, recall_announcement, resolve_broadcast_targets


router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


# ============================================================
# ANNOUNCEMENTS (broadcast)
# ============================================================
@router.get("/announcements", response_model=List[AnnouncementRead], summary="List announcements")
def list_announcements(current_user: CurrentUser = Depends(requires_permission("notifications.view"))):
    def fetch() -> List[dict]:
        client = get_supabase_client()
        return client.table("announcements").select("*").order("created_at", desc=True).execute().data or []

    try:
        rows = live_views.get_rows("announcements", fetch)
    except Exception as e:
        logger.error(f"Failed to list announcements: {e}")
        raise HTTPException(500, "Failed to load announcements")
    return [AnnouncementRead.from_row(r) for r in rows]


@router.post("/announcements", status_code=201, summary="Create and broadcast an announcement")
def create_announcement(
    payload: AnnouncementCreate,
    current_user: CurrentUser = Depends(requires_permission("notifications.broadcast")),
):
    """
    Stores the announcement, then fans out one notification row per
    recipient in batches. A failed batch lowers ``delivered`` but does not
    fail the request.
    """
    target = payload.target_role.value
    if target in ("single_user", "single_rider") and not payload.target_id:
        raise HTTPException(400, "target_id is required for single recipient announcements")

    client = get_supabase_client()

    try:
        result = client.table("announcements").insert({
            "title": payload.title,
            "body": payload.body,
            "type": payload.type.value,
            "priority": payload.priority.value,
            "target_role": target,
            "target_id": payload.target_id,
            "target_name": payload.target_name,
            "tags": payload.tags,
            "created_by": current_user.id,
            "created_at": utc_now_iso(),
        }).execute()
        if not result.data:
            raise HTTPException(500, "Insert returned no data")
        announcement = result.data[0]

        rider_ids: List[str] = []
        team_leader_ids: List[str] = []
        if target in ("rider", "all"):
            riders = client.table("riders").select("id").neq("status", "deleted").execute().data or []
            rider_ids = [r["id"] for r in riders]
        if target in ("teamLeader", "all"):
            leaders = client.table("users").select("id").eq("role", "teamLeader").neq("status", "deleted").execute().data or []
            team_leader_ids = [u["id"] for u in leaders]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create announcement: {e}")
        raise HTTPException(500, "Failed to create announcement")

    recipients = resolve_broadcast_targets(target, payload.target_id, rider_ids, team_leader_ids, current_user.id)
    delivered = broadcast(
        recipients,
        payload.title,
        payload.body,
        payload.type.value,
        payload.priority.value,
        payload.tags,
        announcement["id"],
    )

    log_activity(
        current_user,
        "announcementSent",
        "system",
        announcement["id"],
        f"Broadcast '{payload.title}' to {target} ({delivered} recipients)",
        notify=False,
    )

    return {
        "announcement": AnnouncementRead.from_row(announcement),
        "recipients": len(recipients),
        "delivered": delivered,
    }


@router.delete("/announcements/{announcement_id}", summary="Delete an announcement and recall its notifications")
def delete_announcement(
    announcement_id: str,
    current_user: CurrentUser = Depends(requires_permission("notifications.delete")),
):
    client = get_supabase_client()

    try:
        recalled = recall_announcement(announcement_id)
        result = client.table("announcements").delete().eq("id", announcement_id).execute()
        if not result.data:
            raise HTTPException(404, "Announcement not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete announcement {announcement_id}: {e}")
        raise HTTPException(500, "Failed to delete announcement")

    return {"success": True, "id": announcement_id, "recalled": recalled}


# ============================================================
# INBOX (own notifications)
# ============================================================
@router.get("", response_model=List[NotificationRead], summary="My notifications")
def list_my_notifications(
    unread_only: bool = False,
    limit: int = 50,
    current_user: CurrentUser = Depends(get_active_user),
):
    client = get_supabase_client()
    query = client.table("notifications").select("*").eq("user_id", current_user.id)
    if unread_only:
        query = query.eq("is_read", False)
    rows = query.order("created_at", desc=True).limit(limit).execute().data or []
    return [NotificationRead.from_row(r) for r in rows]


@router.get("/unread-count", summary="Unread notification count")
def unread_count(current_user: CurrentUser = Depends(get_active_user)):
    client = get_supabase_client()
    rows = (
        client.table("notifications")
        .select("id")
        .eq("user_id", current_user.id)
        .eq("is_read", False)
        .execute()
    ).data or []
    return {"unread": len(rows)}


@router.post("/read-all", summary="Mark all my notifications read")
def mark_all_read(current_user: CurrentUser = Depends(get_active_user)):
    client = get_supabase_client()
    result = (
        client.table("notifications")
        .update({"is_read": True, "read_at": utc_now_iso()})
        .eq("user_id", current_user.id)
        .eq("is_read", False)
        .execute()
    )
    return {"updated": len(result.data or [])}


@router.patch("/{notification_id}/read", response_model=NotificationRead, summary="Mark one notification read")
def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_active_user),
):
    client = get_supabase_client()
    result = (
        client.table("notifications")
        .update({"is_read": True, "read_at": utc_now_iso()})
        .eq("id", notification_id)
        .eq("user_id", current_user.id)
        .execute()
    )
    if not result.data:
        raise HTTPException(404, "Notification not found")
    return NotificationRead.from_row(result.data[0])


@router.delete("/{notification_id}", summary="Delete one of my notifications")
def delete_notification(
    notification_id: str,
    current_user: CurrentUser = Depends(get_active_user),
):
    client = get_supabase_client()
    result = (
        client.table("notifications")
        .delete()
        .eq("id", notification_id)
        .eq("user_id", current_user.id)
        .execute()
    )
    if not result.data:
        raise HTTPException(404, "Notification not found")
    return {"success": True, "id": notification_id}
