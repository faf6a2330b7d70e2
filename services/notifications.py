# services/notifications.py

from typing import Any, Dict, List, Optional

from core.config import settings
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import chunked, utc_now_iso


# ============================================================
# Team-leader message templates (rider lifecycle)
# ============================================================
TEAM_LEADER_TEMPLATES = {
    "create": ("New Rider Assigned", "New rider {name} has been assigned to your team.", "success"),
    "update": ("Rider Updated", "Details for rider {name} have been updated.", "info"),
    "status_active": ("Rider Activated", "Rider {name} is now Active.", "success"),
    "status_inactive": ("Rider Deactivated", "Rider {name} has been marked as Inactive.", "warning"),
    "reassign_from": ("Rider Reassigned", "Rider {name} has been reassigned to another Team Leader.", "info"),
    "reassign_to": ("Rider Assigned", "Rider {name} has been reassigned to you.", "success"),
}


def _notification_row(user_id: str, title: str, message: str, type: str, priority: str = "medium", related_entity: Optional[Dict[str, Any]] = None) -> dict:
    return {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": type,
        "priority": priority,
        "related_entity": related_entity or {},
        "is_read": False,
        "created_at": utc_now_iso(),
    }


# ============================================================
# Single user / role fan-out
# ============================================================
def send_notification(
    title: str,
    message: str,
    type: str = "info",
    target_user_id: Optional[str] = None,
    target_role: Optional[str] = None,
    related_entity_id: Optional[str] = None,
    related_entity_type: Optional[str] = None,
    priority: str = "medium",
) -> int:
    """
    Notify one user, or every user with ``target_role``.
    Returns the number of rows written; failures are logged, never raised.
    """
    client = get_supabase_client()
    if client is None:
        logger.warning("Notification skipped: Supabase not configured")
        return 0

    related = {"id": related_entity_id, "type": related_entity_type} if related_entity_id else {}

    try:
        if target_user_id:
            client.table("notifications").insert(
                _notification_row(target_user_id, title, message, type, priority, related)
            ).execute()
            return 1

        if target_role:
            users = client.table("users").select("id").eq("role", target_role).execute().data or []
            rows = [_notification_row(u["id"], title, message, type, priority, related) for u in users]
            if rows:
                client.table("notifications").insert(rows).execute()
            return len(rows)

    except Exception as e:
        logger.error(f"Failed to send notification '{title}': {e}")

    return 0


def notify_admins(title: str, message: str, type: str = "info") -> int:
    return send_notification(title, message, type, target_role="admin", priority="high")


def notify_team_leader(team_leader_id: Optional[str], action: str, rider_name: str, rider_id: str) -> int:
    if not team_leader_id:
        return 0

    template = TEAM_LEADER_TEMPLATES.get(action)
    if template is None:
        logger.warning(f"Unknown team leader notification action: {action}")
        return 0

    title, message, notif_type = template
    return send_notification(
        title,
        message.format(name=rider_name),
        notif_type,
        target_user_id=team_leader_id,
        related_entity_id=rider_id,
        related_entity_type="rider",
    )


# ============================================================
# Broadcasts (announcements)
# ============================================================
def resolve_broadcast_targets(
    target_role: str,
    target_id: Optional[str],
    rider_ids: List[str],
    team_leader_ids: List[str],
    sender_id: Optional[str] = None,
) -> List[str]:
    """
    Recipient ids for an announcement:
      • single_user / single_rider → just ``target_id``
      • rider        → every rider (+ sender)
      • teamLeader   → every team leader (+ sender)
      • all          → riders + team leaders (+ sender)
    Order is preserved and ids are unique.
    """
    if target_role in ("single_user", "single_rider"):
        return [target_id] if target_id else []

    targets: List[str] = []
    if target_role in ("rider", "all"):
        targets.extend(rider_ids)
    if target_role in ("teamLeader", "all"):
        targets.extend(team_leader_ids)

    if sender_id:
        targets.append(sender_id)

    seen = set()
    unique = []
    for t in targets:
        if t and t not in seen:
            seen.add(t)
            unique.append(t)
    return unique


def broadcast(
    user_ids: List[str],
    title: str,
    message: str,
    type: str = "info",
    priority: str = "medium",
    tags: Optional[List[str]] = None,
    announcement_id: Optional[str] = None,
    batch_size: Optional[int] = None,
) -> int:
    """
    Fan out one notification row per user, inserted in chunks. A failed chunk
    is logged and the remaining chunks are still attempted. Returns the number
    of rows inserted.
    """
    client = get_supabase_client()
    if client is None:
        logger.warning("Broadcast skipped: Supabase not configured")
        return 0

    related = {"tags": tags or [], "announcementId": announcement_id}
    rows = [_notification_row(uid, title, message, type, priority, related) for uid in user_ids]

    inserted = 0
    for chunk in chunked(rows, batch_size or settings.BROADCAST_BATCH_SIZE):
        try:
            client.table("notifications").insert(chunk).execute()
            inserted += len(chunk)
        except Exception as e:
            logger.error(f"Broadcast chunk failed after {inserted} rows: {e}")

    logger.info(f"📣 Broadcast '{title}' delivered to {inserted}/{len(rows)} recipients")
    return inserted


def recall_announcement(announcement_id: str) -> int:
    """Delete every notification fanned out from an announcement."""
    client = get_supabase_client()
    if client is None:
        return 0

    result = (
        client.table("notifications")
        .delete()
        .contains("related_entity", {"announcementId": announcement_id})
        .execute()
    )
    return len(result.data or [])
