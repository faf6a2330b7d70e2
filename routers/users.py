# routers/users.py

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.supabase_client import get_supabase_client
from core.permission_helpers import requires_permission
from core.permissions import (
    PERMISSION_CATALOG,
    bulk_set_permissions,
    default_permissions,
    effective_permissions,
    is_known_path,
    search_catalog,
)
from core.utils import parse_timestamp, sanitize, utc_now_iso
from core.validation import format_phone_number, generate_user_id, validate_password_strength
from core.logging_config import logger
from dependencies.auth import CurrentUser
from models.user import PermissionToggle, SuspendRequest, UserCreate, UserRead, UserUpdate
from services.activity_log import log_activity


router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


def _get_user_row(client, user_id: str) -> dict:
    result = client.table("users").select("*").eq("id", user_id).limit(1).execute()
    if not result.data:
        raise HTTPException(404, "User not found")
    return result.data[0]


def _update_user_row(client, user_id: str, data: dict) -> dict:
    data["updated_at"] = utc_now_iso()
    result = client.table("users").update(data).eq("id", user_id).execute()
    if not result.data:
        raise HTTPException(404, "User not found")
    return result.data[0]


def lift_expired_suspension(client, row: dict, now: Optional[datetime] = None) -> dict:
    """
    A suspension with a past ``suspended_until`` is lifted when the user is
    next read: status goes back to active.
    """
    if row.get("status") != "suspended":
        return row

    until = parse_timestamp(row.get("suspended_until"))
    if until is None or until > (now or datetime.now(timezone.utc)):
        return row

    try:
        client.table("users").update({
            "status": "active",
            "suspended_until": None,
            "updated_at": utc_now_iso(),
        }).eq("id", row["id"]).execute()
        logger.info(f"⏱️ Suspension expired for {row.get('email')}")
    except Exception as e:
        logger.error(f"Failed to lift expired suspension for {row['id']}: {e}")
        return row

    return {**row, "status": "active", "suspended_until": None}


# -----------------------------------------------------
# PERMISSION CATALOG (editor tabs)
# -----------------------------------------------------
@router.get(
    "/permissions/catalog",
    summary="Permission editor tabs",
    dependencies=[Depends(requires_permission("users.managePermissions"))],
)
def permission_catalog(
    tab: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Filter by label/description"),
):
    if tab:
        return {"tab": tab, "permissions": search_catalog(tab, q or "")}

    return [
        {"id": t["id"], "label": t["label"], "permissions": search_catalog(t["id"], q or "")}
        for t in PERMISSION_CATALOG
    ]


# -----------------------------------------------------
# LIST USERS
# -----------------------------------------------------
@router.get("", summary="List console users")
def list_users(
    role: Optional[str] = None,
    status: Optional[str] = None,
    include_deleted: bool = False,
    current_user: CurrentUser = Depends(requires_permission("users.view")),
):
    client = get_supabase_client()

    try:
        query = client.table("users").select("*")
        if role:
            query = query.eq("role", role)
        if status:
            query = query.eq("status", status)
        elif not include_deleted:
            query = query.neq("status", "deleted")

        rows = query.order("created_at", desc=True).execute().data or []
    except Exception as e:
        logger.error(f"Failed to list users: {e}")
        raise HTTPException(500, "Failed to load users")

    rows = [lift_expired_suspension(client, r) for r in rows]
    return [UserRead.from_row(r) for r in rows]


@router.get("/{user_id}", summary="Get one user with effective permissions")
def get_user(
    user_id: str,
    current_user: CurrentUser = Depends(requires_permission("users.view")),
):
    client = get_supabase_client()
    row = lift_expired_suspension(client, _get_user_row(client, user_id))

    user = UserRead.from_row(row)
    return {
        **user.model_dump(mode="json"),
        "effective_permissions": effective_permissions(user.role, user.permissions),
    }


# -----------------------------------------------------
# CREATE USER (auth account + profile row)
# -----------------------------------------------------
@router.post("", summary="Create a staff account", status_code=201)
def create_user(
    payload: UserCreate,
    current_user: CurrentUser = Depends(requires_permission("users.create")),
):
    ok, message = validate_password_strength(payload.password)
    if not ok:
        raise HTTPException(400, message)

    client = get_supabase_client()
    email = payload.email.strip().lower()

    try:
        existing = client.table("users").select("id").eq("email", email).limit(1).execute()
        if existing.data:
            raise HTTPException(400, "A user with this email already exists")

        auth_resp = client.auth.admin.create_user({
            "email": email,
            "password": payload.password,
            "email_confirm": True,
            "user_metadata": {"full_name": payload.full_name, "role": payload.role.value},
        })
        if not auth_resp or not auth_resp.user:
            raise HTTPException(500, "Failed to create auth user")
        auth_id = auth_resp.user.id

        user_id = payload.user_id
        if not user_id and payload.role.value == "teamLeader":
            count = len(client.table("users").select("id").eq("role", "teamLeader").execute().data or [])
            user_id = generate_user_id(count)

        row = sanitize({
            "id": auth_id,
            "email": email,
            "full_name": payload.full_name,
            "mobile": format_phone_number(payload.mobile) if payload.mobile else None,
            "username": payload.username,
            "reporting_manager": payload.reporting_manager,
            "job_location": payload.job_location,
            "remarks": payload.remarks,
            "role": payload.role.value,
            "status": "active",
            "user_id": user_id,
            "permissions": default_permissions(payload.role.value),
            "force_password_change": True,
            "created_at": utc_now_iso(),
            "updated_at": utc_now_iso(),
        })

        result = client.table("users").insert(row).execute()
        stored = result.data[0] if result.data else row

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create user {email}: {e}")
        raise HTTPException(500, f"Failed to create user: {e}")

    log_activity(current_user, "userCreated", "user", auth_id, f"Created {payload.role.value} {payload.full_name} ({email})")
    return UserRead.from_row(stored)


# -----------------------------------------------------
# EDIT USER
# -----------------------------------------------------
@router.patch("/{user_id}", summary="Edit a user profile")
def update_user(
    user_id: str,
    payload: UserUpdate,
    current_user: CurrentUser = Depends(requires_permission("users.edit")),
):
    changes = payload.model_dump(exclude_unset=True, mode="json")
    if not changes:
        raise HTTPException(400, "No changes supplied")

    if changes.get("mobile"):
        changes["mobile"] = format_phone_number(changes["mobile"])

    client = get_supabase_client()

    try:
        stored = _update_user_row(client, user_id, sanitize(changes))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update user {user_id}: {e}")
        raise HTTPException(500, "Failed to update user")

    log_activity(current_user, "userEdited", "user", user_id, f"Updated {stored.get('full_name') or user_id}: {', '.join(sorted(changes))}")
    return UserRead.from_row(stored)


# -----------------------------------------------------
# SUSPEND / REACTIVATE / DELETE / RESTORE
# -----------------------------------------------------
@router.post("/{user_id}/suspend", summary="Suspend a user")
def suspend_user(
    user_id: str,
    payload: SuspendRequest,
    current_user: CurrentUser = Depends(requires_permission("users.suspend")),
):
    if user_id == current_user.id:
        raise HTTPException(400, "You cannot suspend your own account")

    suspended_until = None
    if payload.duration_minutes > 0:
        suspended_until = (datetime.now(timezone.utc) + timedelta(minutes=payload.duration_minutes)).isoformat()

    client = get_supabase_client()
    stored = _update_user_row(client, user_id, {
        "status": "suspended",
        "suspended_until": suspended_until,
    })

    until_text = f"until {suspended_until}" if suspended_until else "indefinitely"
    reason = f" Reason: {payload.reason}" if payload.reason else ""
    log_activity(current_user, "userSuspended", "user", user_id, f"Suspended {stored.get('full_name') or user_id} {until_text}.{reason}")

    return UserRead.from_row(stored)


@router.post("/{user_id}/reactivate", summary="Reactivate a suspended or inactive user")
def reactivate_user(
    user_id: str,
    current_user: CurrentUser = Depends(requires_permission("users.suspend")),
):
    client = get_supabase_client()
    row = _get_user_row(client, user_id)

    if row.get("status") == "deleted":
        raise HTTPException(400, "Deleted users must be restored, not reactivated")

    stored = _update_user_row(client, user_id, {"status": "active", "suspended_until": None})
    log_activity(current_user, "userEdited", "user", user_id, f"Reactivated {stored.get('full_name') or user_id}")
    return UserRead.from_row(stored)


@router.delete("/{user_id}", summary="Soft delete a user")
def delete_user(
    user_id: str,
    current_user: CurrentUser = Depends(requires_permission("users.delete")),
):
    if user_id == current_user.id:
        raise HTTPException(400, "You cannot delete your own account")

    client = get_supabase_client()
    stored = _update_user_row(client, user_id, {"status": "deleted", "deleted_at": utc_now_iso()})

    log_activity(current_user, "userDeleted", "user", user_id, f"Deleted {stored.get('full_name') or user_id}")
    return {"success": True, "id": user_id}


@router.post("/{user_id}/restore", summary="Restore a soft-deleted user")
def restore_user(
    user_id: str,
    current_user: CurrentUser = Depends(requires_permission("users.delete")),
):
    client = get_supabase_client()
    stored = _update_user_row(client, user_id, {"status": "active", "deleted_at": None, "suspended_until": None})

    log_activity(current_user, "userRestored", "user", user_id, f"Restored {stored.get('full_name') or user_id}")
    return UserRead.from_row(stored)


@router.post("/{user_id}/reset-password", summary="Issue a temporary password")
def reset_user_password(
    user_id: str,
    current_user: CurrentUser = Depends(requires_permission("system.resetUserPassword")),
):
    """
    Sets a random temporary password, forces a change on next login and
    resolves any pending password_reset request for the user.
    """
    client = get_supabase_client()
    row = _get_user_row(client, user_id)
    temporary = secrets.token_urlsafe(9)

    try:
        client.auth.admin.update_user_by_id(user_id, {"password": temporary})
    except Exception as e:
        logger.error(f"Password reset failed for {user_id}: {e}")
        raise HTTPException(500, "Failed to reset password")

    _update_user_row(client, user_id, {"force_password_change": True})

    try:
        client.table("requests").update({
            "status": "resolved",
            "resolved_at": utc_now_iso(),
            "resolved_by": current_user.display_name,
            "admin_response": "Password has been reset",
            "updated_at": utc_now_iso(),
        }).eq("user_id", user_id).eq("type", "password_reset").eq("status", "pending").execute()
    except Exception as e:
        logger.warning(f"Could not resolve password reset requests for {user_id}: {e}")

    log_activity(current_user, "userEdited", "user", user_id, f"Reset password for {row.get('full_name') or user_id}", notify=False)
    return {"success": True, "temporary_password": temporary}


# -----------------------------------------------------
# PERMISSION TOGGLES (auto-save)
# -----------------------------------------------------
@router.patch("/{user_id}/permissions", summary="Toggle one or more permission leaves")
def toggle_permissions(
    user_id: str,
    payload: PermissionToggle,
    current_user: CurrentUser = Depends(requires_permission("users.managePermissions")),
):
    """
    Applies the toggle to the user's effective tree and saves the whole tree.
    A failed save is logged and reported as ``persisted: false``; the
    returned tree still reflects the toggle and nothing is rolled back.
    """
    paths = list(payload.paths or [])
    if payload.path:
        paths.append(payload.path)
    if not paths:
        raise HTTPException(400, "path or paths is required")

    unknown = [p for p in paths if not is_known_path(p)]
    if unknown:
        raise HTTPException(400, f"Unknown permission path(s): {', '.join(unknown)}")

    client = get_supabase_client()
    row = _get_user_row(client, user_id)

    tree = effective_permissions(row.get("role"), row.get("permissions"))
    updated = bulk_set_permissions(tree, paths, payload.value)

    persisted = True
    try:
        client.table("users").update({
            "permissions": updated,
            "updated_at": utc_now_iso(),
        }).eq("id", user_id).execute()
    except Exception as e:
        persisted = False
        logger.error(f"Permission auto-save failed for {user_id}: {e}")

    if persisted:
        state = "granted" if payload.value else "revoked"
        log_activity(
            current_user,
            "permissionChanged",
            "user",
            user_id,
            f"{state.title()} {', '.join(paths)} for {row.get('full_name') or user_id}",
            {"paths": paths, "value": payload.value},
        )

    return {"id": user_id, "permissions": updated, "persisted": persisted}
