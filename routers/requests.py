# routers/requests.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.supabase_client import get_supabase_client
from core.permission_helpers import check_permission, has_permission, is_admin, requires_permission
from core.logging_config import logger
from dependencies.auth import CurrentUser, get_active_user
from models.request import RequestCreate, RequestRead, RequestStatusUpdate
from services.activity_log import log_activity
from services.notifications import send_notification
from services.tickets import build_status_update, create_ticket, fetch_ticket, filter_tickets, set_status


router = APIRouter(
    prefix="/requests",
    tags=["Requests"],
)


def _require_owner_or(user: CurrentUser, ticket: dict, permission: str):
    if ticket.get("user_id") == user.id:
        return
    check_permission(user, permission)


# -----------------------------------------------------
# LIST
# -----------------------------------------------------
@router.get("", response_model=List[RequestRead], summary="List requests")
def list_requests(
    status: Optional[str] = Query(None, description="Status, 'open' or 'all'"),
    trash: bool = Query(False, description="Only soft-deleted requests"),
    current_user: CurrentUser = Depends(requires_permission("requests.view")),
):
    """
    Admins see every request, team leaders only the ones they raised.
    Deleted and purged requests are hidden unless ``trash=true``.
    """
    if trash:
        check_permission(current_user, "requests.delete")

    client = get_supabase_client()

    try:
        query = client.table("requests").select("*")
        if not is_admin(current_user):
            query = query.eq("user_id", current_user.id)
        rows = query.order("created_at", desc=True).execute().data or []
    except Exception as e:
        logger.error(f"Failed to list requests: {e}")
        raise HTTPException(500, "Failed to load requests")

    return [RequestRead.from_row(r) for r in filter_tickets(rows, trash=trash, status=status)]


@router.get("/{request_id}", response_model=RequestRead, summary="Get a request")
def get_request(
    request_id: str,
    current_user: CurrentUser = Depends(requires_permission("requests.view")),
):
    ticket = fetch_ticket(request_id)
    if not is_admin(current_user) and ticket.get("user_id") != current_user.id:
        raise HTTPException(403, "You do not have access to this request")
    return RequestRead.from_row(ticket)


# -----------------------------------------------------
# CREATE (any active console user)
# -----------------------------------------------------
@router.post("", response_model=RequestRead, status_code=201, summary="Raise a request")
def raise_request(
    payload: RequestCreate,
    current_user: CurrentUser = Depends(get_active_user),
):
    try:
        ticket = create_ticket(current_user, payload.model_dump(mode="json"))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create request: {e}")
        raise HTTPException(500, "Failed to create request")

    return RequestRead.from_row(ticket)


# -----------------------------------------------------
# STATUS UPDATE (admin)
# -----------------------------------------------------
@router.patch("/{request_id}/status", response_model=RequestRead, summary="Update request status")
def update_request_status(
    request_id: str,
    payload: RequestStatusUpdate,
    current_user: CurrentUser = Depends(requires_permission("requests.resolve")),
):
    client = get_supabase_client()
    ticket = fetch_ticket(request_id, client)

    update = build_status_update(
        ticket,
        payload.status.value,
        payload.remark or "",
        current_user.display_name,
        internal_notes=payload.internal_notes,
        admin_response=payload.admin_response,
    )

    try:
        result = client.table("requests").update(update).eq("id", request_id).execute()
        updated = result.data[0] if result.data else {**ticket, **update}
    except Exception as e:
        logger.error(f"Failed to update request {request_id}: {e}")
        raise HTTPException(500, "Failed to update request")

    status_label = payload.status.value.replace("_", " ").title()
    if ticket.get("user_id"):
        send_notification(
            f"Request #{ticket.get('ticket_id')} {status_label}",
            payload.remark or f"Your request '{ticket.get('subject')}' is now {status_label}.",
            "success" if payload.status.value == "resolved" else "info",
            target_user_id=ticket["user_id"],
            related_entity_id=request_id,
            related_entity_type="request",
        )

    log_activity(
        current_user,
        "requestUpdated",
        "request",
        str(ticket.get("ticket_id") or request_id),
        f"Request #{ticket.get('ticket_id')} → {status_label}",
        {"from": ticket.get("status"), "to": payload.status.value},
        notify=False,
    )
    return RequestRead.from_row(updated)


# -----------------------------------------------------
# DELETE / PURGE / RESTORE
# -----------------------------------------------------
@router.delete("/{request_id}", summary="Move a request to trash")
def delete_request(
    request_id: str,
    current_user: CurrentUser = Depends(requires_permission("requests.view")),
):
    ticket = fetch_ticket(request_id)
    _require_owner_or(current_user, ticket, "requests.delete")

    set_status(request_id, "deleted")
    logger.info(f"🗑️ Request #{ticket.get('ticket_id')} moved to trash by {current_user.email}")
    return {"success": True, "id": request_id, "status": "deleted"}


@router.post("/{request_id}/restore", response_model=RequestRead, summary="Restore a request from trash")
def restore_request(
    request_id: str,
    current_user: CurrentUser = Depends(requires_permission("requests.delete")),
):
    ticket = fetch_ticket(request_id)
    if ticket.get("status") != "deleted":
        raise HTTPException(400, "Only deleted requests can be restored")
    return RequestRead.from_row(set_status(request_id, "pending"))


@router.delete("/{request_id}/purge", summary="Permanently hide a request")
def purge_request(
    request_id: str,
    current_user: CurrentUser = Depends(requires_permission("requests.delete")),
):
    set_status(request_id, "purged")
    return {"success": True, "id": request_id, "status": "purged"}


@router.get("/summary/counts", summary="Request counts per status")
def request_counts(current_user: CurrentUser = Depends(requires_permission("requests.view"))):
    client = get_supabase_client()
    query = client.table("requests").select("id, status, user_id")
    if not is_admin(current_user):
        query = query.eq("user_id", current_user.id)
    rows = query.execute().data or []

    visible = filter_tickets(rows)
    counts = {"total": len(visible), "open": len(filter_tickets(visible, status="open"))}
    for row in visible:
        counts[row.get("status")] = counts.get(row.get("status"), 0) + 1
    if has_permission(current_user, "requests.delete"):
        counts["trash"] = len(filter_tickets(rows, trash=True))
    return counts
