# core/permissions.py

"""
Per-user permission tree.

Every user row carries a nested ``permissions`` object of booleans keyed by
feature area. Stored objects are partial (records written before a key was
introduced simply lack it), so every read goes through ``merge_permissions``
against the role's default tree. A path that does not exist in the merged
tree is denied.
"""

import copy
import json
from typing import Any, Dict, Iterable, List, Optional

from core.logging_config import logger


# ============================================
# CANONICAL SHAPE (every leaf False)
# ============================================
PERMISSION_SHAPE: Dict[str, Any] = {
    "dashboard": {
        "view": False,
        "statsCards": {
            "totalRiders": False,
            "activeRiders": False,
            "inactiveRiders": False,
            "deletedRiders": False,
            "teamLeaders": False,
            "revenue": False,
            "totalLeads": False,
            "newLeads": False,
            "convertedLeads": False,
            "notConvertedLeads": False,
            "walletPositive": False,
            "walletNegative": False,
            "walletZero": False,
            "walletAverage": False,
            "leaderboard": False,
        },
        "charts": {"revenue": False, "onboarding": False},
        "recentActivity": False,
    },
    "modules": {
        "leads": False,
        "riders": False,
        "users": False,
        "notifications": False,
        "requests": False,
        "dataManagement": False,
        "activityLog": False,
        "reports": False,
        "profile": False,
    },
    "riders": {
        "view": False,
        "create": False,
        "edit": False,
        "delete": False,
        "hardDelete": False,
        "statusChange": False,
        "export": False,
        "call": False,
        "whatsapp": False,
        "bulkActions": {
            "statusChange": False,
            "delete": False,
            "sendReminders": False,
            "assignTeamLeader": False,
            "export": False,
        },
        "fields": {"viewSensitive": False},
    },
    "leads": {
        "view": False,
        "create": False,
        "edit": False,
        "delete": False,
        "statusChange": False,
        "export": False,
        "bulkActions": {
            "statusChange": False,
            "delete": False,
            "assign": False,
            "export": False,
        },
    },
    "users": {
        "view": False,
        "create": False,
        "edit": False,
        "delete": False,
        "managePermissions": False,
        "suspend": False,
    },
    "wallet": {
        "view": False,
        "addFunds": False,
        "deductFunds": False,
        "viewHistory": False,
        "bulkUpdate": False,
    },
    "notifications": {"view": False, "broadcast": False, "delete": False},
    "requests": {"view": False, "resolve": False, "delete": False},
    "reports": {"view": False, "generate": False, "export": False},
    "profile": {
        "view": False,
        "editPersonalDetails": False,
        "editBankDetails": False,
        "changePassword": False,
    },
    "system": {"resetUserPassword": False},
}


# Leaves granted to a team leader when nothing is stored for them.
TEAM_LEADER_GRANTS = [
    "dashboard.view",
    "dashboard.statsCards.totalRiders",
    "dashboard.statsCards.activeRiders",
    "dashboard.statsCards.inactiveRiders",
    "dashboard.statsCards.totalLeads",
    "dashboard.statsCards.newLeads",
    "dashboard.statsCards.convertedLeads",
    "dashboard.statsCards.notConvertedLeads",
    "dashboard.recentActivity",
    "modules.leads",
    "modules.riders",
    "modules.reports",
    "modules.activityLog",
    "modules.requests",
    "modules.profile",
    "riders.view",
    "riders.call",
    "riders.whatsapp",
    "leads.view",
    "leads.create",
    "wallet.view",
    "wallet.viewHistory",
    "notifications.view",
    "requests.view",
    "reports.view",
    "reports.generate",
    "profile.view",
    "profile.editPersonalDetails",
    "profile.changePassword",
]


# ============================================
# TREE HELPERS
# ============================================
def _fill(tree: Dict[str, Any], value: bool) -> Dict[str, Any]:
    return {
        key: _fill(node, value) if isinstance(node, dict) else value
        for key, node in tree.items()
    }


def flatten_permissions(tree: Dict[str, Any], prefix: str = "") -> Dict[str, bool]:
    """Flatten a nested tree into ``{"riders.bulkActions.delete": bool}``."""
    flat = {}
    for key, node in tree.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(node, dict):
            flat.update(flatten_permissions(node, path))
        else:
            flat[path] = bool(node)
    return flat


ALL_PERMISSION_PATHS: List[str] = list(flatten_permissions(PERMISSION_SHAPE).keys())


def is_known_path(path: str) -> bool:
    return path in ALL_PERMISSION_PATHS


def set_permission(tree: Dict[str, Any], path: str, value: bool) -> Dict[str, Any]:
    """Return a copy of ``tree`` with ``path`` set; missing parents are created."""
    updated = copy.deepcopy(tree) if tree else {}
    parts = path.split(".")
    node = updated
    for part in parts[:-1]:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[parts[-1]] = bool(value)
    return updated


def bulk_set_permissions(tree: Dict[str, Any], paths: Iterable[str], value: bool) -> Dict[str, Any]:
    updated = copy.deepcopy(tree) if tree else {}
    for path in paths:
        updated = set_permission(updated, path, value)
    return updated


def get_permission(tree: Optional[Dict[str, Any]], path: str) -> bool:
    """
    Resolve a dotted path. Anything that is not an explicit ``True`` leaf
    (missing key, subtree, non-boolean) is denied.
    """
    node: Any = tree or {}
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return False
        node = node[part]
    return node is True


# ============================================
# DEFAULTS + MERGE
# ============================================
def default_permissions(role: Optional[str]) -> Dict[str, Any]:
    """
    Default tree for a role:
      • admin       → every leaf True
      • teamLeader  → TEAM_LEADER_GRANTS, everything else False
      • other/guest → every leaf False
    """
    if role == "admin":
        return _fill(PERMISSION_SHAPE, True)
    if role == "teamLeader":
        return bulk_set_permissions(_fill(PERMISSION_SHAPE, False), TEAM_LEADER_GRANTS, True)
    return _fill(PERMISSION_SHAPE, False)


def parse_permissions(raw: Any) -> Dict[str, Any]:
    """Stored permissions may arrive as a dict, a JSON string, or nothing."""
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unparseable permissions payload")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def merge_permissions(stored: Optional[Dict[str, Any]], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge a stored (possibly partial) tree over ``defaults``.

    The result has every key of ``defaults``. Explicit booleans in ``stored``
    win. A stored value that is neither a dict nor a bool is ignored where
    the default has a leaf, and never replaces a default subtree. Keys that
    only exist in ``stored`` are kept.
    """
    result = copy.deepcopy(defaults)
    for key, value in (stored or {}).items():
        default_node = defaults.get(key)
        if isinstance(value, dict):
            base = default_node if isinstance(default_node, dict) else {}
            result[key] = merge_permissions(value, base)
        elif isinstance(value, bool):
            if isinstance(default_node, dict):
                continue
            result[key] = value
        elif key not in defaults:
            result[key] = value
    return result


def effective_permissions(role: Optional[str], stored: Any) -> Dict[str, Any]:
    return merge_permissions(parse_permissions(stored), default_permissions(role))


# ============================================
# EDITOR CATALOG (tabs shown in the permission manager)
# ============================================
def _perm(pid: str, label: str, description: str, risk: str, path: str) -> Dict[str, str]:
    return {"id": pid, "label": label, "description": description, "risk": risk, "path": path}


PERMISSION_CATALOG: List[Dict[str, Any]] = [
    {
        "id": "dashboard",
        "label": "Dashboard & Analytics",
        "permissions": [
            _perm("dash_view", "View Dashboard", "Access the main dashboard overview", "low", "dashboard.view"),
            _perm("dash_revenue", "View Revenue Stats", "See financial metrics and revenue charts", "medium", "dashboard.statsCards.revenue"),
            _perm("dash_recent", "Recent Activity", "View latest system actions log", "low", "dashboard.recentActivity"),
            _perm("dash_charts", "View Growth Charts", "Access rider onboarding and performance charts", "low", "dashboard.charts.onboarding"),
            _perm("dash_leaderboard", "Leaderboard Stats", "View leaderboard toplist", "low", "dashboard.statsCards.leaderboard"),
            _perm("dash_total_riders", "Total Riders Card", "View total riders count", "low", "dashboard.statsCards.totalRiders"),
            _perm("dash_active_riders", "Active Riders Card", "View active riders count", "low", "dashboard.statsCards.activeRiders"),
            _perm("dash_inactive_riders", "Inactive Riders Card", "View inactive riders count", "low", "dashboard.statsCards.inactiveRiders"),
            _perm("dash_deleted_riders", "Deleted Riders Card", "View deleted riders count", "low", "dashboard.statsCards.deletedRiders"),
            _perm("dash_total_leads", "Total Leads Card", "View total leads count", "low", "dashboard.statsCards.totalLeads"),
            _perm("dash_new_leads", "New Leads Card", "View new leads count", "low", "dashboard.statsCards.newLeads"),
            _perm("dash_conv_leads", "Converted Leads Card", "View converted leads count", "low", "dashboard.statsCards.convertedLeads"),
            _perm("dash_nonconv_leads", "Not Converted Leads Card", "View not converted leads count", "low", "dashboard.statsCards.notConvertedLeads"),
            _perm("dash_wallet_pos", "Positive Wallet Card", "View positive wallet stats", "medium", "dashboard.statsCards.walletPositive"),
            _perm("dash_wallet_neg", "Negative Wallet Card", "View negative wallet stats", "medium", "dashboard.statsCards.walletNegative"),
            _perm("dash_wallet_zero", "Zero Wallet Card", "View zero wallet stats", "medium", "dashboard.statsCards.walletZero"),
            _perm("dash_wallet_avg", "Average Wallet Card", "View average wallet stats", "medium", "dashboard.statsCards.walletAverage"),
        ],
    },
    {
        "id": "modules",
        "label": "Sidebar Modules",
        "permissions": [
            _perm("mod_leads", "Leads Module", "Show Leads in sidebar", "low", "modules.leads"),
            _perm("mod_riders", "Riders Module", "Show Riders in sidebar", "low", "modules.riders"),
            _perm("mod_users", "Users Module", "Show Users in sidebar", "low", "modules.users"),
            _perm("mod_reports", "Reports Module", "Show Reports in sidebar", "low", "modules.reports"),
            _perm("mod_data", "Data/Wallet Module", "Show Wallet/Data in sidebar", "low", "modules.dataManagement"),
            _perm("mod_activity", "Activity Module", "Show Activity Log in sidebar", "low", "modules.activityLog"),
            _perm("mod_notif", "Notifications Module", "Show Notifications in sidebar", "low", "modules.notifications"),
            _perm("mod_req", "Requests Module", "Show Requests in sidebar", "low", "modules.requests"),
        ],
    },
    {
        "id": "riders",
        "label": "Rider Management",
        "permissions": [
            _perm("riders_view", "View Rider List", "See all registered riders", "low", "riders.view"),
            _perm("riders_create", "Add New Riders", "Register new riders into the system", "medium", "riders.create"),
            _perm("riders_edit", "Edit Rider Details", "Modify rider profiles and information", "medium", "riders.edit"),
            _perm("riders_sensitive", "View Sensitive Data", "Access bank details and documents", "high", "riders.fields.viewSensitive"),
            _perm("riders_delete", "Delete Riders (Soft)", "Mark riders as deleted (recoverable)", "high", "riders.delete"),
            _perm("riders_hard_delete", "Hard Delete Riders", "Permanently remove rider data", "high", "riders.hardDelete"),
            _perm("riders_export", "Export Data", "Download rider lists as CSV/Excel", "medium", "riders.export"),
            _perm("riders_status", "Change Status", "Activate or deactivate riders", "medium", "riders.statusChange"),
        ],
    },
    {
        "id": "leads",
        "label": "Lead Management",
        "permissions": [
            _perm("leads_view", "View Leads", "Browse and search leads", "low", "leads.view"),
            _perm("leads_create", "Create Leads", "Add new potential riders", "low", "leads.create"),
            _perm("leads_status", "Change Status", "Update lead progress (e.g. New -> Convert)", "medium", "leads.statusChange"),
            _perm("leads_delete", "Delete Leads", "Remove leads from the system", "high", "leads.delete"),
        ],
    },
    {
        "id": "wallet",
        "label": "Wallet & Finance",
        "permissions": [
            _perm("wallet_view", "View Wallets", "See rider wallet balances", "medium", "wallet.view"),
            _perm("wallet_add", "Add Funds", "Credit amounts to rider wallets", "high", "wallet.addFunds"),
            _perm("wallet_deduct", "Deduct Funds", "Debit amounts from rider wallets", "high", "wallet.deductFunds"),
            _perm("wallet_history", "Wallet History", "View wallet transaction history", "medium", "wallet.viewHistory"),
            _perm("wallet_bulk", "Bulk Update", "Bulk wallet operations", "high", "wallet.bulkUpdate"),
        ],
    },
    {
        "id": "users",
        "label": "User Management",
        "permissions": [
            _perm("users_view", "View Users", "See list of admins and team leaders", "low", "users.view"),
            _perm("users_create", "Create Users", "Add new staff members", "high", "users.create"),
            _perm("users_perms", "Manage Permissions", "Grant or revoke system access", "high", "users.managePermissions"),
            _perm("users_suspend", "Suspend Users", "Temporarily block access", "high", "users.suspend"),
            _perm("system_pass", "Reset Passwords", "Force reset other users' passwords", "high", "system.resetUserPassword"),
        ],
    },
    {
        "id": "reports",
        "label": "Reports & Export",
        "permissions": [
            _perm("reports_gen", "Generate Reports", "Create custom analytics reports", "low", "reports.generate"),
            _perm("reports_export", "Export Data", "Download system-wide data", "medium", "reports.export"),
        ],
    },
    {
        "id": "communication",
        "label": "Communication",
        "permissions": [
            _perm("notif_broadcast", "Broadcast Messages", "Send push notifications to all users", "high", "notifications.broadcast"),
            _perm("notif_delete", "Delete Broadcasts", "Remove sent announcements", "medium", "notifications.delete"),
            _perm("requests_resolve", "Resolve Requests", "Mark tickets as completed", "medium", "requests.resolve"),
            _perm("requests_delete", "Delete Requests", "Remove tickets", "medium", "requests.delete"),
        ],
    },
    {
        "id": "profile",
        "label": "Profile Permissions",
        "permissions": [
            _perm("prof_edit", "Edit Personal Details", "Change name, email, etc.", "medium", "profile.editPersonalDetails"),
            _perm("prof_bank", "Edit Bank Details", "Update bank info", "high", "profile.editBankDetails"),
            _perm("prof_pass", "Change Password", "Change own password", "medium", "profile.changePassword"),
        ],
    },
    {
        "id": "system",
        "label": "System Settings",
        "permissions": [
            _perm("data_module", "Data Management Access", "Access bulk data tools", "high", "modules.dataManagement"),
        ],
    },
]


def search_catalog(tab_id: str, query: str = "") -> List[Dict[str, str]]:
    """Permissions of one tab whose label or description contains ``query``."""
    tab = next((t for t in PERMISSION_CATALOG if t["id"] == tab_id), None)
    if tab is None:
        return []

    needle = (query or "").strip().lower()
    if not needle:
        return list(tab["permissions"])

    return [
        p for p in tab["permissions"]
        if needle in p["label"].lower() or needle in p["description"].lower()
    ]
