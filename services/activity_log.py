# services/activity_log.py

from typing import Any, Dict, Optional

from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import utc_now_iso
from services.notifications import notify_admins, send_notification


def classify_notification_type(action_type: str, details: str = "") -> str:
    """Notification type implied by an action; first matching rule wins."""
    action = (action_type or "").lower()
    text = (details or "").lower()

    if any(k in action for k in ("delete", "suspend", "ban")):
        return "alert"
    if any(k in action for k in ("create", "add", "success")):
        return "success"
    if any(k in action for k in ("update", "edit", "modify")):
        return "info"
    if any(k in action for k in ("warn", "fail")) or "error" in text or "failed" in text:
        return "warning"
    return "info"


def log_activity(
    actor: Any,
    action_type: str,
    target_type: str,
    target_id: Optional[str],
    details: str,
    metadata: Optional[Dict[str, Any]] = None,
    notify: bool = True,
) -> Optional[dict]:
    """
    Append an audit entry and dispatch the matching notifications:
      • every admin gets "System Activity: <action>"
      • rider-targeted events also go to ``metadata["teamLeaderId"]``

    ``actor`` is a CurrentUser (or None for system jobs). Never raises.
    """
    metadata = dict(metadata or {})
    actor_id = getattr(actor, "id", None) or "system"
    actor_name = (
        getattr(actor, "full_name", None)
        or getattr(actor, "email", None)
        or "System"
    )
    actor_role = getattr(actor, "role", None) or "admin"

    entry = {
        "user_id": actor_id,
        "user_name": actor_name,
        "user_role": actor_role,
        "action_type": action_type,
        "target_type": target_type,
        "target_id": target_id,
        "details": details,
        "metadata": {**metadata, "timestamp": utc_now_iso()},
        "timestamp": utc_now_iso(),
        "is_deleted": False,
    }

    stored = None
    client = get_supabase_client()
    if client is None:
        logger.warning(f"Activity not logged (Supabase not configured): {action_type}")
        return None

    try:
        result = client.table("activity_logs").insert(entry).execute()
        stored = result.data[0] if result.data else entry
    except Exception as e:
        logger.error(f"Failed to write activity log {action_type}: {e}")

    if not notify:
        return stored

    notif_type = classify_notification_type(action_type, details)
    notify_admins(f"System Activity: {action_type}", f"{details} (by {actor_name})", notif_type)

    team_leader_id = metadata.get("teamLeaderId")
    if target_type == "rider" and team_leader_id:
        send_notification(
            f"Rider Update: {action_type}",
            details,
            notif_type,
            target_user_id=team_leader_id,
            related_entity_id=target_id,
            related_entity_type="rider",
        )

    return stored
