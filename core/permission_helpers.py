from fastapi import Depends, HTTPException
from typing import Optional
from dependencies.auth import get_active_user, CurrentUser
from core.permissions import get_permission


# -----------------------------------------------------
# Permission evaluation against the effective tree
#   • role default tree
#   • merged with the user's stored (partial) tree
# -----------------------------------------------------
def has_permission(user: CurrentUser, permission: str) -> bool:
    return get_permission(user.permission_tree(), permission)


# -----------------------------------------------------
# FastAPI dependency wrapper
# -----------------------------------------------------
def requires_permission(permission: str):
    """
    Usage:
        @router.post("/", dependencies=[Depends(requires_permission("riders.create"))])

    The route guard (status checks) runs first via get_active_user.
    """

    def dependency(current_user: CurrentUser = Depends(get_active_user)):
        if not has_permission(current_user, permission):
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions: '{permission}' required"
            )
        return current_user

    return dependency


def check_permission(user: CurrentUser, permission: str):
    """Inline variant for checks that depend on the request body."""
    if not has_permission(user, permission):
        raise HTTPException(
            status_code=403,
            detail=f"Insufficient permissions: '{permission}' required"
        )


# ============================================================
# ROLE HELPERS
# ============================================================

def is_admin(user: CurrentUser) -> bool:
    return user.role == "admin"


# ============================================================
# TEAM-LEADER SCOPING
# ============================================================

def scoped_team_leader_id(user: CurrentUser) -> Optional[str]:
    """
    Team leaders only ever see their own riders, leads and wallet rows.
    Returns None for admins (no scoping).
    """
    if is_admin(user):
        return None
    return user.id


def require_rider_access(user: CurrentUser, rider: dict):
    """Admins bypass; team leaders must own the rider."""
    if is_admin(user):
        return

    if rider.get("team_leader_id") != user.id:
        raise HTTPException(
            status_code=403,
            detail="You do not have access to this rider"
        )


def require_lead_access(user: CurrentUser, lead: dict):
    if is_admin(user):
        return

    if lead.get("created_by") != user.id:
        raise HTTPException(
            status_code=403,
            detail="You do not have access to this lead"
        )
