# routers/session.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.route_guard import (
    allowed_roles_for_path,
    evaluate_access,
    home_path_for,
    navigation_for,
)
from dependencies.auth import CurrentUser, get_session_context, guard_profile


router = APIRouter(
    prefix="/session",
    tags=["Session"],
)


# -----------------------------------------------------
# GET /session?path=/portal/riders
# What the console shell needs before rendering a page
# -----------------------------------------------------
@router.get("", summary="Route guard decision, permissions and navigation for the caller")
def read_session(
    path: Optional[str] = Query(None, description="Console path being opened"),
    current_user: CurrentUser = Depends(get_session_context),
):
    """
    Never raises for blocked accounts: the decision (``unauthorized``,
    ``suspended``, ...) is returned so the client can show the right screen.
    """
    allowed_roles = allowed_roles_for_path(path)
    decision = evaluate_access(current_user, guard_profile(current_user), False, allowed_roles)

    body = {
        "user": {
            "id": current_user.id,
            "email": current_user.email,
            "role": current_user.role,
            "status": current_user.status,
            "full_name": current_user.full_name,
            "user_id": current_user.user_id,
        },
        "path": path,
        "decision": decision.model_dump(mode="json"),
        "home_path": home_path_for(current_user.role),
    }

    if decision.allowed:
        body["permissions"] = current_user.permission_tree()
        body["navigation"] = navigation_for(current_user.role, current_user.permissions)
    else:
        body["permissions"] = {}
        body["navigation"] = []

    return body
