# core/route_guard.py

"""
Decides whether a session may open a console area.

``evaluate_access`` is pure: it looks at the auth identity, the profile row
and the requested role list, and returns the first blocking outcome in a
fixed order. Dependencies in ``dependencies/auth.py`` turn the decision
into HTTP errors; ``GET /session`` returns it as-is.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from models.enums import AccessOutcome
from core.permissions import effective_permissions, get_permission


LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"

# Path prefix → roles allowed to open it
ROUTE_ROLES: Dict[str, List[str]] = {
    "/portal": ["admin"],
    "/team-leader": ["teamLeader"],
}

HOME_PATHS = {
    "admin": "/portal",
    "teamLeader": "/team-leader",
}

BLOCKED_MESSAGES = {
    AccessOutcome.profile_missing: "Your account exists but no profile was found. Contact an administrator.",
    AccessOutcome.unauthorized: "You do not have access to this area.",
    AccessOutcome.suspended: "Your account has been suspended. Contact an administrator.",
    AccessOutcome.inactive: "Your account is inactive. Contact an administrator to reactivate it.",
    AccessOutcome.deleted: "This account has been deleted.",
}


class AccessDecision(BaseModel):
    outcome: AccessOutcome
    redirect_to: Optional[str] = None
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == AccessOutcome.allowed


def _field(profile: Any, name: str) -> Any:
    if profile is None:
        return None
    if isinstance(profile, dict):
        return profile.get(name)
    return getattr(profile, name, None)


def evaluate_access(
    auth_user: Any,
    profile: Any,
    loading: bool = False,
    allowed_roles: Optional[List[str]] = None,
) -> AccessDecision:
    """
    Order of checks:
      1. still loading           → loading
      2. no auth user / profile  → redirect_login
      3. role == guest           → profile_missing
      4. role not allowed        → unauthorized
      5. status suspended        → suspended
      6. status inactive         → inactive
      7. status deleted          → deleted
    """
    if loading:
        return AccessDecision(outcome=AccessOutcome.loading)

    if not auth_user or not profile:
        return AccessDecision(outcome=AccessOutcome.redirect_login, redirect_to=LOGIN_PATH)

    role = _field(profile, "role")
    if role == "guest":
        return AccessDecision(
            outcome=AccessOutcome.profile_missing,
            message=BLOCKED_MESSAGES[AccessOutcome.profile_missing],
        )

    if allowed_roles is not None and role not in allowed_roles:
        return AccessDecision(
            outcome=AccessOutcome.unauthorized,
            redirect_to=UNAUTHORIZED_PATH,
            message=BLOCKED_MESSAGES[AccessOutcome.unauthorized],
        )

    status = _field(profile, "status")
    for outcome in (AccessOutcome.suspended, AccessOutcome.inactive, AccessOutcome.deleted):
        if status == outcome.value:
            return AccessDecision(outcome=outcome, message=BLOCKED_MESSAGES[outcome])

    return AccessDecision(outcome=AccessOutcome.allowed)


# ------------------------------------------------------------
# Path segregation
# ------------------------------------------------------------
def allowed_roles_for_path(path: Optional[str]) -> Optional[List[str]]:
    """Roles for the longest matching prefix; None means any signed-in role."""
    if not path:
        return None

    matches = [
        prefix for prefix in ROUTE_ROLES
        if path == prefix or path.startswith(prefix + "/")
    ]
    if not matches:
        return None
    return ROUTE_ROLES[max(matches, key=len)]


def home_path_for(role: Optional[str]) -> str:
    return HOME_PATHS.get(role, HOME_PATHS["teamLeader"])


# ------------------------------------------------------------
# Sidebar
# ------------------------------------------------------------
NAVIGATION = {
    "admin": [
        ("dashboard", "Dashboard", "", "dashboard.view"),
        ("leads", "Leads", "/leads", "modules.leads"),
        ("riders", "Riders", "/riders", "modules.riders"),
        ("users", "Users", "/users", "modules.users"),
        ("data", "Data Management", "/data", "modules.dataManagement"),
        ("notifications", "Notifications", "/notifications", "modules.notifications"),
        ("requests", "Requests", "/requests", "modules.requests"),
        ("activity", "Activity Log", "/activity", "modules.activityLog"),
        ("reports", "Reports", "/reports", "modules.reports"),
        ("profile", "Profile", "/profile", "modules.profile"),
    ],
    "teamLeader": [
        ("dashboard", "Dashboard", "", "dashboard.view"),
        ("leads", "My Leads", "/leads", "modules.leads"),
        ("riders", "My Riders", "/riders", "modules.riders"),
        ("wallet", "Wallet History", "/wallet", "wallet.viewHistory"),
        ("requests", "Requests", "/requests", "modules.requests"),
        ("activity", "Activity", "/activity", "modules.activityLog"),
        ("reports", "Reports", "/reports", "modules.reports"),
        ("profile", "Profile", "/profile", "modules.profile"),
    ],
}


def navigation_for(role: Optional[str], stored_permissions: Any = None) -> List[Dict[str, Any]]:
    """Sidebar entries for a role; visibility comes from the effective tree."""
    tree = effective_permissions(role, stored_permissions)
    base = home_path_for(role)

    return [
        {
            "id": entry_id,
            "label": label,
            "path": f"{base}{suffix}",
            "permission": path,
            "visible": get_permission(tree, path),
        }
        for entry_id, label, suffix, path in NAVIGATION.get(role, [])
    ]
