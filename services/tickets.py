# services/tickets.py

from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import utc_now_iso
from models.enums import HIDDEN_REQUEST_STATUSES, OPEN_REQUEST_STATUSES
from services.activity_log import log_activity


FIRST_TICKET_ID = 10001


def _client():
    client = get_supabase_client()
    if client is None:
        raise HTTPException(500, "Supabase client not configured")
    return client


def next_ticket_id(client=None) -> int:
    """Highest stored ticket_id + 1; tickets always have five digits."""
    client = client or _client()
    result = (
        client.table("requests")
        .select("ticket_id")
        .order("ticket_id", desc=True)
        .limit(1)
        .execute()
    )

    current = result.data[0].get("ticket_id") if result.data else None
    if not current:
        return FIRST_TICKET_ID
    return max(int(current) + 1, FIRST_TICKET_ID)


def timeline_event(status: str, remark: str, updated_by: str, role: str) -> Dict[str, Any]:
    return {
        "status": status,
        "remark": remark or "",
        "timestamp": utc_now_iso(),
        "updatedBy": updated_by,
        "role": role,
    }


def is_open(status: Optional[str]) -> bool:
    return status in OPEN_REQUEST_STATUSES


def is_hidden(status: Optional[str]) -> bool:
    return status in HIDDEN_REQUEST_STATUSES


# ============================================================
# CREATE
# ============================================================
def create_ticket(user, payload: Dict[str, Any]) -> dict:
    """
    Insert a pending ticket, then write the activity log. The two writes are
    independent: a failed log does not undo the ticket.
    """
    client = _client()
    ticket_id = next_ticket_id(client)
    now = utc_now_iso()

    row = {
        "ticket_id": ticket_id,
        "type": payload.get("type") or "other",
        "subject": payload["subject"],
        "description": payload.get("description") or "",
        "priority": payload.get("priority") or "medium",
        "user_id": getattr(user, "id", None),
        "user_name": getattr(user, "full_name", None),
        "email": getattr(user, "email", None),
        "user_role": getattr(user, "role", None),
        "status": "pending",
        "created_at": now,
        "updated_at": now,
        "timeline": [
            timeline_event("pending", "Request created", getattr(user, "email", None) or "user", "user"),
        ],
    }

    if payload.get("related_entity_id"):
        row["related_entity_id"] = payload["related_entity_id"]
        row["related_entity_name"] = payload.get("related_entity_name")
        row["related_entity_type"] = payload.get("related_entity_type") or "rider"

    result = client.table("requests").insert(row).execute()
    stored = result.data[0] if result.data else row

    log_activity(
        user,
        "requestCreated",
        "request",
        str(ticket_id),
        f"New Request #{ticket_id} ({row['type']}): {row['subject']}",
        {"priority": row["priority"], "status": "pending"},
    )

    logger.info(f"🎫 Ticket #{ticket_id} created by {row['email']}")
    return stored


# ============================================================
# STATUS UPDATE (admin)
# ============================================================
def build_status_update(existing: Dict[str, Any], status: str, remark: str, actor_name: str, internal_notes: Optional[str] = None, admin_response: Optional[str] = None) -> Dict[str, Any]:
    """
    Update payload for an admin status change: appends a timeline event,
    stamps resolution fields on resolve, clears them when a resolved ticket
    is reopened.
    """
    timeline = existing.get("timeline") if isinstance(existing.get("timeline"), list) else []

    update = {
        "status": status,
        "admin_response": admin_response if admin_response is not None else remark,
        "timeline": timeline + [timeline_event(status, remark, actor_name, "admin")],
        "updated_at": utc_now_iso(),
    }
    if internal_notes is not None:
        update["internal_notes"] = internal_notes

    if status == "resolved":
        update["resolved_at"] = utc_now_iso()
        update["resolved_by"] = actor_name
    elif existing.get("status") == "resolved":
        update["resolved_at"] = None
        update["resolved_by"] = None

    return update


def fetch_ticket(request_id: str, client=None) -> dict:
    client = client or _client()
    result = client.table("requests").select("*").eq("id", request_id).limit(1).execute()
    if not result.data:
        raise HTTPException(404, "Request not found")
    return result.data[0]


def set_status(request_id: str, status: str, client=None) -> dict:
    client = client or _client()
    result = (
        client.table("requests")
        .update({"status": status, "updated_at": utc_now_iso()})
        .eq("id", request_id)
        .execute()
    )
    if not result.data:
        raise HTTPException(404, "Request not found")
    return result.data[0]


def filter_tickets(rows: List[dict], trash: bool = False, status: Optional[str] = None) -> List[dict]:
    """Default view hides deleted/purged; the trash view shows only deleted."""
    if trash:
        rows = [r for r in rows if r.get("status") == "deleted"]
    else:
        rows = [r for r in rows if not is_hidden(r.get("status"))]

    if status == "open":
        rows = [r for r in rows if is_open(r.get("status"))]
    elif status and status != "all":
        rows = [r for r in rows if r.get("status") == status]

    return rows
