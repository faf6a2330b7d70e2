from typing import Any, Dict, Optional
from datetime import datetime
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel, Field
from supabase import Client

from core.supabase_client import get_supabase_client
from core.permissions import effective_permissions, parse_permissions
from core.route_guard import AccessDecision, evaluate_access
from core.logging_config import logger
from models.enums import AccessOutcome


bearer_scheme = HTTPBearer()

GUEST_ROLE = "guest"


# ============================================================
# Current User Model (auth identity + profile row)
# ============================================================
class CurrentUser(BaseModel):
    id: str                         # Supabase Auth UID (= users.id)
    email: Optional[str] = None
    role: str = GUEST_ROLE
    status: str = "active"

    full_name: Optional[str] = None
    username: Optional[str] = None
    user_id: Optional[str] = None   # console id, e.g. TRIEV_TL0001
    mobile: Optional[str] = None
    suspended_until: Optional[datetime] = None

    # stored tree (possibly partial); see effective_permissions()
    permissions: Dict[str, Any] = Field(default_factory=dict)

    # False when the auth user has no row in `users`
    has_profile: bool = True

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or self.email or self.id

    def permission_tree(self) -> Dict[str, Any]:
        return effective_permissions(self.role, self.permissions)


def _user_from_profile(auth_user: Any, profile: Optional[dict]) -> CurrentUser:
    if not profile:
        # Authenticated but no profile row → guest; the route guard blocks it
        return CurrentUser(
            id=auth_user.id,
            email=auth_user.email,
            role=GUEST_ROLE,
            has_profile=False,
        )

    return CurrentUser(
        id=auth_user.id,
        email=profile.get("email") or auth_user.email,
        role=profile.get("role") or GUEST_ROLE,
        status=profile.get("status") or "active",
        full_name=profile.get("full_name"),
        username=profile.get("username"),
        user_id=profile.get("user_id"),
        mobile=profile.get("mobile"),
        suspended_until=profile.get("suspended_until"),
        permissions=parse_permissions(profile.get("permissions")),
    )


# ============================================================
# AUTH DECODING (Supabase: validates JWT + loads profile)
# ============================================================
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> CurrentUser:

    token = credentials.credentials

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    client: Client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")

    # ---------------------------------------------------------
    # Validate JWT via Supabase GoTrue
    # ---------------------------------------------------------
    try:
        auth_resp = client.auth.get_user(token)
        if not auth_resp or not auth_resp.user:
            raise unauthorized
        auth_user = auth_resp.user
    except HTTPException:
        raise
    except Exception:
        raise unauthorized

    # ---------------------------------------------------------
    # Load profile row
    # ---------------------------------------------------------
    try:
        result = (
            client.table("users")
            .select("*")
            .eq("id", auth_user.id)
            .limit(1)
            .execute()
        )
        profile = result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Failed to load profile for {auth_user.id}: {e}")
        raise HTTPException(500, "Failed to load user profile")

    return _user_from_profile(auth_user, profile)


# ============================================================
# ROUTE GUARD → HTTP
# ============================================================
def get_session_context(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Identity without any guard applied (used by GET /session)."""
    return current_user


def raise_for_decision(decision: AccessDecision):
    if decision.allowed:
        return

    if decision.outcome in (AccessOutcome.redirect_login, AccessOutcome.loading):
        raise HTTPException(
            status_code=401,
            detail={"outcome": decision.outcome.value, "redirect_to": decision.redirect_to},
            headers={"WWW-Authenticate": "Bearer"},
        )

    raise HTTPException(
        status_code=403,
        detail={
            "outcome": decision.outcome.value,
            "message": decision.message,
            "redirect_to": decision.redirect_to,
        },
    )


def guard_profile(user: CurrentUser) -> Optional[dict]:
    if not user.has_profile:
        return {"role": GUEST_ROLE, "status": user.status}
    return {"role": user.role, "status": user.status}


def requires_role(allowed_roles: Optional[list[str]] = None):
    """
    Usage:
        @router.get("/", dependencies=[Depends(requires_role(["admin"]))])

    ``None`` admits any role that passes the status checks.
    """
    def checker(current_user: CurrentUser = Depends(get_current_user)):
        decision = evaluate_access(current_user, guard_profile(current_user), False, allowed_roles)
        raise_for_decision(decision)
        return current_user
    return checker


# Any signed-in, active console user
get_active_user = requires_role(None)

