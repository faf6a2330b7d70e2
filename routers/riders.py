# routers/riders.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.supabase_client import get_supabase_client
from core.permission_helpers import (
    check_permission,
    is_admin,
    require_rider_access,
    requires_permission,
    scoped_team_leader_id,
)
from core.errors import handle_supabase_error
from core.utils import sanitize, search_term, utc_now_iso
from core.validation import digits_only
from core.logging_config import logger
from dependencies.auth import CurrentUser
from models.rider import BulkAssign, BulkStatusChange, RiderCreate, RiderIds, RiderRead, RiderStatusChange, RiderUpdate
from services.activity_log import log_activity
from services.notifications import notify_team_leader


router = APIRouter(
    prefix="/riders",
    tags=["Riders"],
)


# -----------------------------------------------------
# Helpers
# -----------------------------------------------------
def _get_rider(client, rider_id: str) -> dict:
    result = client.table("riders").select("*").eq("id", rider_id).limit(1).execute()
    if not result.data:
        raise HTTPException(404, "Rider not found")
    return result.data[0]


def _team_leader_name(client, team_leader_id: Optional[str]) -> Optional[str]:
    if not team_leader_id:
        return None
    result = client.table("users").select("id, full_name, role, status").eq("id", team_leader_id).limit(1).execute()
    if not result.data:
        raise HTTPException(400, f"Team leader {team_leader_id} does not exist")

    user = result.data[0]
    if user.get("role") != "teamLeader":
        raise HTTPException(400, f"User {team_leader_id} is not a team leader")
    if user.get("status") == "deleted":
        raise HTTPException(400, f"Team leader {team_leader_id} has been deleted")
    return user.get("full_name")


def _check_duplicate(client, mobile: Optional[str], triev_id: Optional[str], exclude_id: Optional[str] = None):
    for column, value in (("mobile_number", mobile), ("triev_id", triev_id)):
        if not value:
            continue
        rows = client.table("riders").select("id").eq(column, value).neq("status", "deleted").execute().data or []
        if any(r["id"] != exclude_id for r in rows):
            label = "mobile number" if column == "mobile_number" else "Triev ID"
            raise HTTPException(400, f"A rider with this {label} already exists")


def _status_action(status: str) -> Optional[str]:
    return {"active": "status_active", "inactive": "status_inactive"}.get(status)


# -----------------------------------------------------
# LIST / GET
# -----------------------------------------------------
@router.get("", response_model=List[RiderRead], summary="List riders")
def list_riders(
    status: Optional[str] = Query(None, description="active | inactive | deleted"),
    client_name: Optional[str] = None,
    team_leader_id: Optional[str] = None,
    search: Optional[str] = Query(None, description="Name, mobile or Triev ID"),
    current_user: CurrentUser = Depends(requires_permission("riders.view")),
):
    """
    Team leaders only ever see their own riders; deleted riders are hidden
    unless ``status=deleted`` is asked for.
    """
    client = get_supabase_client()

    try:
        query = client.table("riders").select("*")

        scope = scoped_team_leader_id(current_user)
        if scope:
            query = query.eq("team_leader_id", scope)
        elif team_leader_id:
            query = query.eq("team_leader_id", team_leader_id)

        if status and status != "all":
            query = query.eq("status", status)
        else:
            query = query.neq("status", "deleted")

        if client_name and client_name != "all":
            query = query.eq("client_name", client_name)

        term = search_term(search)
        if term:
            query = query.or_(f"rider_name.ilike.%{term}%,mobile_number.ilike.%{term}%,triev_id.ilike.%{term}%")

        rows = query.order("created_at", desc=True).execute().data or []
        return [RiderRead.from_row(r) for r in rows]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list riders: {e}")
        raise HTTPException(500, "Failed to load riders")


@router.get("/{rider_id}", response_model=RiderRead, summary="Get a rider")
def get_rider(
    rider_id: str,
    current_user: CurrentUser = Depends(requires_permission("riders.view")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)
    return RiderRead.from_row(rider)


# -----------------------------------------------------
# CREATE
# -----------------------------------------------------
@router.post("", response_model=RiderRead, status_code=201, summary="Create a rider")
def create_rider(
    payload: RiderCreate,
    current_user: CurrentUser = Depends(requires_permission("riders.create")),
):
    client = get_supabase_client()
    data = payload.model_dump(mode="json")
    data["mobile_number"] = digits_only(data["mobile_number"])

    if not is_admin(current_user):
        data["team_leader_id"] = current_user.id

    try:
        _check_duplicate(client, data["mobile_number"], data.get("triev_id"))
        data["team_leader_name"] = _team_leader_name(client, data.get("team_leader_id")) or "Unassigned"
        data["created_at"] = utc_now_iso()
        data["updated_at"] = utc_now_iso()

        result = client.table("riders").insert(sanitize(data)).execute()
        if not result.data:
            raise HTTPException(500, "Insert returned no data")
        rider = result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create rider")

    notify_team_leader(rider.get("team_leader_id"), "create", rider.get("rider_name"), rider["id"])
    log_activity(
        current_user,
        "riderAdded",
        "rider",
        rider["id"],
        f"Added rider {rider.get('rider_name')}",
        {"teamLeaderId": rider.get("team_leader_id")},
        notify=False,
    )
    return RiderRead.from_row(rider)


# -----------------------------------------------------
# UPDATE
# -----------------------------------------------------
@router.patch("/{rider_id}", response_model=RiderRead, summary="Edit a rider")
def update_rider(
    rider_id: str,
    payload: RiderUpdate,
    current_user: CurrentUser = Depends(requires_permission("riders.edit")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    changes = payload.model_dump(exclude_unset=True, mode="json")
    if not changes:
        raise HTTPException(400, "No changes supplied")

    previous_tl = rider.get("team_leader_id")
    reassigning = "team_leader_id" in changes and changes["team_leader_id"] != previous_tl
    if reassigning:
        check_permission(current_user, "riders.bulkActions.assignTeamLeader")

    if changes.get("mobile_number"):
        changes["mobile_number"] = digits_only(changes["mobile_number"])

    try:
        _check_duplicate(client, changes.get("mobile_number"), changes.get("triev_id"), exclude_id=rider_id)
        if reassigning:
            changes["team_leader_name"] = _team_leader_name(client, changes["team_leader_id"]) or "Unassigned"
        changes["updated_at"] = utc_now_iso()

        result = client.table("riders").update(sanitize(changes)).eq("id", rider_id).execute()
        updated = result.data[0] if result.data else {**rider, **changes}

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to update rider")

    name = updated.get("rider_name")
    if reassigning:
        notify_team_leader(previous_tl, "reassign_from", name, rider_id)
        notify_team_leader(updated.get("team_leader_id"), "reassign_to", name, rider_id)
    else:
        notify_team_leader(updated.get("team_leader_id"), "update", name, rider_id)

    log_activity(
        current_user,
        "riderEdited",
        "rider",
        rider_id,
        f"Updated rider {name}: {', '.join(sorted(k for k in changes if k != 'updated_at'))}",
        {"teamLeaderId": updated.get("team_leader_id")},
        notify=False,
    )
    return RiderRead.from_row(updated)


@router.patch("/{rider_id}/status", response_model=RiderRead, summary="Change rider status")
def change_rider_status(
    rider_id: str,
    payload: RiderStatusChange,
    current_user: CurrentUser = Depends(requires_permission("riders.statusChange")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    status = payload.status.value
    changes = {"status": status, "updated_at": utc_now_iso()}
    if status == "deleted":
        changes["deleted_at"] = utc_now_iso()

    result = client.table("riders").update(changes).eq("id", rider_id).execute()
    updated = result.data[0] if result.data else {**rider, **changes}

    action = _status_action(status)
    if action:
        notify_team_leader(updated.get("team_leader_id"), action, updated.get("rider_name"), rider_id)

    log_activity(
        current_user,
        "statusChanged",
        "rider",
        rider_id,
        f"{updated.get('rider_name')} status: {rider.get('status')} → {status}",
        {"teamLeaderId": updated.get("team_leader_id"), "from": rider.get("status"), "to": status},
        notify=False,
    )
    return RiderRead.from_row(updated)


# -----------------------------------------------------
# DELETE (soft / hard) + RESTORE
# -----------------------------------------------------
@router.delete("/{rider_id}", summary="Soft delete a rider")
def delete_rider(
    rider_id: str,
    current_user: CurrentUser = Depends(requires_permission("riders.delete")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    client.table("riders").update({
        "status": "deleted",
        "deleted_at": utc_now_iso(),
        "updated_at": utc_now_iso(),
    }).eq("id", rider_id).execute()

    log_activity(
        current_user,
        "riderDeleted",
        "rider",
        rider_id,
        f"Deleted rider {rider.get('rider_name')}",
        {"teamLeaderId": rider.get("team_leader_id")},
    )
    return {"success": True, "id": rider_id}


@router.delete("/{rider_id}/permanent", summary="Permanently delete a rider")
def hard_delete_rider(
    rider_id: str,
    current_user: CurrentUser = Depends(requires_permission("riders.hardDelete")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    try:
        client.table("riders").delete().eq("id", rider_id).execute()
    except Exception as e:
        raise handle_supabase_error(e, "Failed to delete rider")

    log_activity(
        current_user,
        "riderDeleted",
        "rider",
        rider_id,
        f"Permanently deleted rider {rider.get('rider_name')}",
        {"teamLeaderId": rider.get("team_leader_id"), "permanent": True},
    )
    return {"success": True, "id": rider_id, "permanent": True}


@router.post("/{rider_id}/restore", response_model=RiderRead, summary="Restore a soft-deleted rider")
def restore_rider(
    rider_id: str,
    current_user: CurrentUser = Depends(requires_permission("riders.delete")),
):
    client = get_supabase_client()
    rider = _get_rider(client, rider_id)
    require_rider_access(current_user, rider)

    if rider.get("status") != "deleted":
        raise HTTPException(400, "Rider is not deleted")

    changes = {"status": "active", "deleted_at": None, "updated_at": utc_now_iso()}
    result = client.table("riders").update(changes).eq("id", rider_id).execute()
    updated = result.data[0] if result.data else {**rider, **changes}

    log_activity(current_user, "statusChanged", "rider", rider_id, f"Restored rider {rider.get('rider_name')}", {"teamLeaderId": rider.get("team_leader_id")}, notify=False)
    return RiderRead.from_row(updated)


# -----------------------------------------------------
# BULK ACTIONS
# -----------------------------------------------------
def _load_scoped(client, user: CurrentUser, rider_ids: List[str]) -> List[dict]:
    if not rider_ids:
        raise HTTPException(400, "rider_ids is required")
    rows = client.table("riders").select("*").in_("id", rider_ids).execute().data or []
    for row in rows:
        require_rider_access(user, row)
    return rows


@router.post("/bulk/status", summary="Change status of many riders")
def bulk_status(
    payload: BulkStatusChange,
    current_user: CurrentUser = Depends(requires_permission("riders.bulkActions.statusChange")),
):
    client = get_supabase_client()
    riders = _load_scoped(client, current_user, payload.rider_ids)
    status = payload.status.value

    changes = {"status": status, "updated_at": utc_now_iso()}
    if status == "deleted":
        changes["deleted_at"] = utc_now_iso()

    client.table("riders").update(changes).in_("id", [r["id"] for r in riders]).execute()

    action = _status_action(status)
    if action:
        for rider in riders:
            notify_team_leader(rider.get("team_leader_id"), action, rider.get("rider_name"), rider["id"])

    log_activity(current_user, "statusChanged", "system", "multiple", f"Set {len(riders)} riders to {status}", {"riderIds": [r["id"] for r in riders]})
    return {"updated": len(riders), "status": status}


@router.post("/bulk/delete", summary="Soft delete many riders")
def bulk_delete(
    payload: RiderIds,
    current_user: CurrentUser = Depends(requires_permission("riders.bulkActions.delete")),
):
    client = get_supabase_client()
    riders = _load_scoped(client, current_user, payload.rider_ids)

    client.table("riders").update({
        "status": "deleted",
        "deleted_at": utc_now_iso(),
        "updated_at": utc_now_iso(),
    }).in_("id", [r["id"] for r in riders]).execute()

    log_activity(current_user, "riderDeleted", "system", "multiple", f"Deleted {len(riders)} riders", {"riderIds": [r["id"] for r in riders]})
    return {"deleted": len(riders)}


@router.post("/bulk/assign", summary="Assign many riders to a team leader")
def bulk_assign(
    payload: BulkAssign,
    current_user: CurrentUser = Depends(requires_permission("riders.bulkActions.assignTeamLeader")),
):
    client = get_supabase_client()
    riders = _load_scoped(client, current_user, payload.rider_ids)
    tl_name = _team_leader_name(client, payload.team_leader_id)

    client.table("riders").update({
        "team_leader_id": payload.team_leader_id,
        "team_leader_name": tl_name,
        "updated_at": utc_now_iso(),
    }).in_("id", [r["id"] for r in riders]).execute()

    for rider in riders:
        if rider.get("team_leader_id") == payload.team_leader_id:
            continue
        notify_team_leader(rider.get("team_leader_id"), "reassign_from", rider.get("rider_name"), rider["id"])
        notify_team_leader(payload.team_leader_id, "reassign_to", rider.get("rider_name"), rider["id"])

    log_activity(
        current_user,
        "riderEdited",
        "system",
        "multiple",
        f"Assigned {len(riders)} riders to {tl_name or payload.team_leader_id}",
        {"riderIds": [r["id"] for r in riders], "teamLeaderId": payload.team_leader_id},
    )
    return {"assigned": len(riders), "team_leader_id": payload.team_leader_id}
