# services/report_aggregator.py

"""
Pure reductions over fetched row arrays.

Every function takes plain Supabase rows (snake_case dicts) and returns
summary dicts or flat, display-ready rows. Nothing here touches the
database; routers fetch, scope by team leader, and pass the rows in.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from core.config import settings
from core.utils import parse_timestamp, to_local


# ============================================================
# VALUE HELPERS
# ============================================================
def wallet_of(row: Dict[str, Any]) -> float:
    value = row.get("wallet_amount")
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def to_day(value: Any) -> Optional[date]:
    """
    Calendar day of a stored value. Plain ``YYYY-MM-DD`` strings are taken
    as-is; timestamps are converted into the reporting timezone first.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if len(text) == 10:
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None

    local = to_local(text)
    return local.date() if local else None


def in_day_range(value: Any, start: Optional[date], end: Optional[date]) -> bool:
    """Inclusive whole-day range; an open bound matches everything."""
    if start is None and end is None:
        return True
    day = to_day(value)
    if day is None:
        return False
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Any, decimals: Optional[int] = None) -> str:
    """₹ with Indian digit grouping, e.g. 1234567.5 → ₹12,34,567.50"""
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0

    if decimals is None:
        decimals = 0 if value.is_integer() else 2

    sign = "-" if value < 0 else ""
    text = f"{abs(value):.{decimals}f}"
    whole, _, frac = text.partition(".")
    grouped = _group_indian(whole)

    return f"{settings.CURRENCY_SYMBOL}{sign}{grouped}{'.' + frac if frac else ''}"


def _title(value: Optional[str], default: str = "Unknown") -> str:
    if not value:
        return default
    return value[0].upper() + value[1:]


def _format_local(value: Any, fmt: str = "%d/%m/%Y %H:%M") -> str:
    local = to_local(value)
    return local.strftime(fmt) if local else "-"


# ============================================================
# DASHBOARD
# ============================================================
def dashboard_stats(riders: List[Dict[str, Any]]) -> Dict[str, Any]:
    stats = {
        "totalRiders": len(riders),
        "activeRiders": 0,
        "inactiveRiders": 0,
        "deletedRiders": 0,
        "totalPositiveWallet": 0.0,
        "totalNegativeWallet": 0.0,
        "netWalletBalance": 0.0,
    }

    for rider in riders:
        status = rider.get("status")
        if status == "active":
            stats["activeRiders"] += 1
        elif status == "inactive":
            stats["inactiveRiders"] += 1
        elif status == "deleted":
            stats["deletedRiders"] += 1

        wallet = wallet_of(rider)
        if wallet > 0:
            stats["totalPositiveWallet"] += wallet
        elif wallet < 0:
            stats["totalNegativeWallet"] += abs(wallet)

    stats["netWalletBalance"] = stats["totalPositiveWallet"] - stats["totalNegativeWallet"]
    return stats


def admin_dashboard_stats(riders: List[Dict[str, Any]], users: List[Dict[str, Any]]) -> Dict[str, Any]:
    stats = dashboard_stats(riders)
    team_leaders = [u for u in users if u.get("role") == "teamLeader"]

    stats["totalTeamLeaders"] = len(team_leaders)
    stats["activeTeamLeaders"] = sum(1 for u in team_leaders if u.get("status") == "active")
    stats["suspendedTeamLeaders"] = sum(1 for u in team_leaders if u.get("status") == "suspended")
    return stats


def lead_stats(leads: List[Dict[str, Any]]) -> Dict[str, Any]:
    live = [l for l in leads if not l.get("deleted_at")]
    stats = {
        "totalLeads": len(live),
        "newLeads": 0,
        "convertedLeads": 0,
        "notConvertedLeads": 0,
        "categories": {"Genuine": 0, "Match": 0, "Duplicate": 0},
    }

    for lead in live:
        status = lead.get("status")
        if status == "New":
            stats["newLeads"] += 1
        elif status == "Convert":
            stats["convertedLeads"] += 1
        elif status == "Not Convert":
            stats["notConvertedLeads"] += 1

        category = lead.get("category")
        if category in stats["categories"]:
            stats["categories"][category] += 1

    return stats


# ============================================================
# RIDER FILTERS
# ============================================================
def filter_riders(
    riders: List[Dict[str, Any]],
    status: Optional[str] = None,
    client: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    team_leader_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Filters are ANDed. The date range applies to ``allotment_date`` and only
    when both ends are given; riders without an allotment date are then
    excluded.
    """
    result = list(riders)

    if status and status != "all":
        result = [r for r in result if r.get("status") == status]

    if client and client != "all":
        result = [r for r in result if r.get("client_name") == client]

    if team_leader_id:
        result = [r for r in result if r.get("team_leader_id") == team_leader_id]

    if start_date and end_date:
        result = [r for r in result if in_day_range(r.get("allotment_date"), start_date, end_date)]

    return result


# ============================================================
# WALLET
# ============================================================
def wallet_summary(riders: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Invariants:
      positiveCount + negativeCount + zeroCount == len(riders)
      totalPositive - totalNegative == sum of wallet amounts
    ``totalNegative`` is reported as an absolute value.
    """
    summary = {
        "totalPositive": 0.0,
        "totalNegative": 0.0,
        "totalZero": 0.0,
        "positiveCount": 0,
        "negativeCount": 0,
        "zeroCount": 0,
        "averageWallet": 0.0,
        "netBalance": 0.0,
    }

    for rider in riders:
        wallet = wallet_of(rider)
        if wallet > 0:
            summary["totalPositive"] += wallet
            summary["positiveCount"] += 1
        elif wallet < 0:
            summary["totalNegative"] += abs(wallet)
            summary["negativeCount"] += 1
        else:
            summary["zeroCount"] += 1

    net = summary["totalPositive"] - summary["totalNegative"]
    summary["netBalance"] = net
    summary["averageWallet"] = net / len(riders) if riders else 0.0
    return summary


def wallet_summary_rows(riders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    s = wallet_summary(riders)
    return [
        {"Category": "Positive Balances", "Count": s["positiveCount"], "Total": s["totalPositive"]},
        {"Category": "Negative Balances", "Count": s["negativeCount"], "Total": -s["totalNegative"]},
        {"Category": "Zero Balances", "Count": s["zeroCount"], "Total": 0},
        {"Category": "Net Total", "Count": len(riders), "Total": s["netBalance"]},
    ]


def negative_wallet_riders(riders: List[Dict[str, Any]], threshold: float = 0) -> List[Dict[str, Any]]:
    """Riders below ``threshold``, most negative first."""
    below = [r for r in riders if wallet_of(r) < threshold]
    return sorted(below, key=wallet_of)


# ============================================================
# GROUPINGS
# ============================================================
def client_distribution(riders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for rider in riders:
        groups.setdefault(rider.get("client_name") or "Unassigned", []).append(rider)

    distribution = []
    for client_name, members in groups.items():
        total = sum(wallet_of(r) for r in members)
        distribution.append({
            "clientName": client_name,
            "riderCount": len(members),
            "totalWallet": total,
            "averageWallet": total / len(members) if members else 0.0,
        })

    return sorted(distribution, key=lambda d: d["riderCount"], reverse=True)


def date_range_stats(riders: List[Dict[str, Any]], start_date: date, end_date: date) -> Dict[str, Any]:
    in_range = [r for r in riders if in_day_range(r.get("allotment_date"), start_date, end_date)]
    return {
        "ridersInRange": in_range,
        "totalAdded": len(in_range),
        "walletChange": sum(wallet_of(r) for r in in_range),
    }


def team_leader_performance(
    riders: List[Dict[str, Any]],
    team_leaders: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """One row per known team leader, ordered by total riders (desc)."""
    performance: Dict[str, Dict[str, Any]] = {}
    for tl in team_leaders:
        performance[tl["id"]] = {
            "teamLeaderName": tl.get("full_name") or tl.get("email") or tl["id"],
            "totalRiders": 0,
            "activeRiders": 0,
            "inactiveRiders": 0,
            "deletedRiders": 0,
            "totalWallet": 0.0,
            "averageWallet": 0.0,
        }

    for rider in riders:
        row = performance.get(rider.get("team_leader_id"))
        if row is None:
            continue

        row["totalRiders"] += 1
        row["totalWallet"] += wallet_of(rider)

        status = rider.get("status")
        if status == "active":
            row["activeRiders"] += 1
        elif status == "inactive":
            row["inactiveRiders"] += 1
        elif status == "deleted":
            row["deletedRiders"] += 1

    for row in performance.values():
        if row["totalRiders"]:
            row["averageWallet"] = row["totalWallet"] / row["totalRiders"]

    return sorted(performance.values(), key=lambda r: r["totalRiders"], reverse=True)


def inactive_riders(
    riders: List[Dict[str, Any]],
    days_since: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Inactive riders whose last update is older than ``days_since`` days."""
    days = settings.INACTIVE_RIDER_DAYS if days_since is None else days_since
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)

    result = []
    for rider in riders:
        if rider.get("status") != "inactive":
            continue
        updated = parse_timestamp(rider.get("updated_at"))
        if updated is not None and updated < cutoff:
            result.append(rider)
    return result


# ============================================================
# REQUESTS / ACTIVITY / HEALTH
# ============================================================
def request_report(
    requests: List[Dict[str, Any]],
    status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    rows = list(requests)

    if status and status != "all":
        rows = [r for r in rows if r.get("status") == status]

    if start_date and end_date:
        rows = [r for r in rows if in_day_range(r.get("created_at"), start_date, end_date)]

    return [
        {
            "Ticket": r.get("ticket_id") or "-",
            "Type": "Password Reset" if r.get("type") == "password_reset" else (r.get("type") or "-"),
            "Email": r.get("email") or "-",
            "User ID": r.get("user_id") or "N/A",
            "Status": _title(r.get("status")),
            "Date": _format_local(r.get("created_at")),
            "Resolved By": r.get("resolved_by") or "-",
            "Resolved At": _format_local(r.get("resolved_at")) if r.get("resolved_at") else "-",
        }
        for r in rows
    ]


def activity_report(
    logs: List[Dict[str, Any]],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    action_type: Optional[str] = None,
) -> List[Dict[str, Any]]:
    rows = [l for l in logs if not l.get("is_deleted")]

    if start_date and end_date:
        rows = [l for l in rows if in_day_range(l.get("timestamp"), start_date, end_date)]

    if action_type and action_type != "all":
        rows = [l for l in rows if l.get("action_type") == action_type]

    return [
        {
            "Action": l.get("action_type") or "-",
            "Entity": l.get("target_type") or "-",
            "Details": l.get("details") or "",
            "Performed By": l.get("user_name") or "System",
            "Date": _format_local(l.get("timestamp")),
            "IP": (l.get("metadata") or {}).get("ip") or "-",
        }
        for l in rows
    ]


def system_health(
    riders: List[Dict[str, Any]],
    users: List[Dict[str, Any]],
    requests: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    active = sum(1 for r in riders if r.get("status") == "active")
    inactive = sum(1 for r in riders if r.get("status") == "inactive")
    total_wallet = sum(wallet_of(r) for r in riders)
    pending = sum(1 for r in requests if r.get("status") == "pending")

    return [
        {"Metric": "Total Users", "Value": len(users), "Status": "Info"},
        {"Metric": "Total Riders", "Value": len(riders), "Status": "Info"},
        {"Metric": "Active Riders", "Value": active, "Status": "Good"},
        {"Metric": "Inactive Riders", "Value": inactive, "Status": "Warning"},
        {"Metric": "Total Wallet Float", "Value": format_currency(total_wallet), "Status": "Good" if total_wallet > 0 else "Alert"},
        {"Metric": "Pending Requests", "Value": pending, "Status": "Warning" if pending > 0 else "Good"},
    ]


# ============================================================
# TL DAILY COLLECTION MATRIX
# ============================================================
def _day_key(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def _collection_entry(row: Dict[str, Any]):
    """
    (amount, type, team_leader_id, timestamp) from a wallet_transactions row,
    or from a legacy ``wallet_transaction`` activity log; None otherwise.
    """
    if "amount" in row and "team_leader_id" in row:
        return row.get("amount"), row.get("type"), row.get("team_leader_id"), row.get("timestamp") or row.get("created_at")

    metadata = row.get("metadata")
    if isinstance(metadata, dict) and row.get("action_type") == "wallet_transaction":
        return metadata.get("amount"), metadata.get("type"), metadata.get("teamLeaderId"), row.get("timestamp")

    return None


def tl_daily_collection(
    transactions: List[Dict[str, Any]],
    team_leaders: List[Dict[str, Any]],
    start_date: date,
    end_date: date,
    selected_ids: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Matrix of credited amounts: one row per team leader, one ``dd/mm/yyyy``
    column per day in the inclusive range, a ``Total`` column and a final
    ``GRAND TOTAL`` row. Only credits count. With no selection, credits
    attributed to a team leader missing from ``team_leaders`` get an
    ``Unknown (abcd...)`` row; with a selection, everything else is dropped.
    """
    selected = set(selected_ids or [])

    day_keys: List[str] = []
    day = start_date
    while day <= end_date:
        day_keys.append(_day_key(day))
        day += timedelta(days=1)

    def blank(name: str) -> Dict[str, Any]:
        row = {"Team Leader": name}
        row.update({k: 0.0 for k in day_keys})
        row["Total"] = 0.0
        return row

    matrix: Dict[str, Dict[str, Any]] = {}
    for tl in team_leaders:
        if selected and tl["id"] not in selected:
            continue
        matrix[tl["id"]] = blank(tl.get("full_name") or tl.get("email") or tl["id"])

    for tx in transactions:
        entry = _collection_entry(tx)
        if entry is None:
            continue

        amount, tx_type, tl_id, timestamp = entry
        if tx_type != "credit" or not tl_id:
            continue

        if tl_id not in matrix:
            if selected:
                continue
            matrix[tl_id] = blank(f"Unknown ({str(tl_id)[:4]}...)")

        tx_day = to_day(timestamp)
        if tx_day is None:
            continue

        key = _day_key(tx_day)
        if key not in day_keys:
            continue

        try:
            value = float(amount or 0)
        except (TypeError, ValueError):
            continue

        matrix[tl_id][key] += value
        matrix[tl_id]["Total"] += value

    result = list(matrix.values())

    if result:
        grand = {"Team Leader": "GRAND TOTAL"}
        grand_total = 0.0
        for key in day_keys:
            column = sum(r[key] for r in result)
            grand[key] = column
            grand_total += column
        grand["Total"] = grand_total
        result.append(grand)

    return result


def collection_by_day(
    transactions: List[Dict[str, Any]],
    start_date: date,
    end_date: date,
    team_leader_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Credited total per local day in the inclusive range (zero days included)."""
    totals: Dict[date, float] = {}
    day = start_date
    while day <= end_date:
        totals[day] = 0.0
        day += timedelta(days=1)

    for tx in transactions:
        entry = _collection_entry(tx)
        if entry is None:
            continue
        amount, tx_type, tl_id, timestamp = entry
        if tx_type != "credit":
            continue
        if team_leader_id and tl_id != team_leader_id:
            continue
        tx_day = to_day(timestamp)
        if tx_day not in totals:
            continue
        try:
            totals[tx_day] += float(amount or 0)
        except (TypeError, ValueError):
            continue

    return [{"date": d.isoformat(), "total": v} for d, v in totals.items()]


# ============================================================
# DISPLAY / EXPORT ROWS
# ============================================================
def transform_rider_row(rider: Dict[str, Any]) -> Dict[str, Any]:
    allotment = to_day(rider.get("allotment_date"))
    return {
        "Triev ID": rider.get("triev_id") or "-",
        "Name": rider.get("rider_name") or "N/A",
        "Mobile": rider.get("mobile_number") or "-",
        "Status": _title(rider.get("status")),
        "Client": rider.get("client_name") or "Unassigned",
        "Team Leader": rider.get("team_leader_name") or "-",
        "Wallet Balance": f"{settings.CURRENCY_SYMBOL}{wallet_of(rider):.2f}",
        "Date Added": allotment.strftime("%d/%m/%Y") if allotment else "-",
    }


def format_report_for_export(report_id: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Turns numeric report rows into labelled, currency-formatted rows."""
    if report_id == "wallet_summary":
        return [
            {
                "Category": r["Category"],
                "Count": r["Count"],
                "Total Amount": format_currency(r["Total"]),
                "Average": format_currency(r["Total"] / r["Count"] if r["Count"] else 0, 2),
            }
            for r in rows
        ]

    if report_id == "client_distribution":
        return [
            {
                "Client Name": r["clientName"],
                "Rider Count": r["riderCount"],
                "Total Wallet": format_currency(r["totalWallet"]),
                "Average Wallet": format_currency(r["averageWallet"], 2),
            }
            for r in rows
        ]

    if report_id == "team_leader_performance":
        return [
            {
                "Team Leader": r["teamLeaderName"],
                "Total Riders": r["totalRiders"],
                "Active": r["activeRiders"],
                "Inactive": r["inactiveRiders"],
                "Deleted": r["deletedRiders"],
                "Total Wallet": format_currency(r["totalWallet"]),
                "Average Wallet": format_currency(r["averageWallet"], 2),
            }
            for r in rows
        ]

    if report_id == "tl_daily_collection":
        return [
            {
                k: format_currency(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v
                for k, v in r.items()
            }
            for r in rows
        ]

    return rows


# ============================================================
# TEMPLATES + DISPATCH
# ============================================================
REPORT_TEMPLATES: List[Dict[str, Any]] = [
    {"id": "tl_daily_collection", "name": "TL Daily Collection",
     "description": "Matrix of daily collections per Team Leader",
     "parameters": ["dateRange", "teamLeaderSelect"], "admin_only": True},
    {"id": "active_riders", "name": "Active Riders Report",
     "description": "List of all currently active riders",
     "parameters": ["dateRange", "client"], "admin_only": False},
    {"id": "wallet_summary", "name": "Wallet Summary Report",
     "description": "Financial overview with positive/negative wallet analysis",
     "parameters": ["dateRange"], "admin_only": False},
    {"id": "client_distribution", "name": "Client-wise Distribution",
     "description": "Riders grouped by client with statistics",
     "parameters": ["status"], "admin_only": False},
    {"id": "inactive_riders", "name": "Inactive Riders Report",
     "description": "List of inactive riders requiring attention",
     "parameters": ["dateRange"], "admin_only": False},
    {"id": "negative_wallet", "name": "Negative Wallet Report",
     "description": "Riders with negative wallet balances",
     "parameters": ["threshold"], "admin_only": False},
    {"id": "team_leader_performance", "name": "Team Leader Performance",
     "description": "Performance metrics for all team leaders",
     "parameters": ["dateRange"], "admin_only": True},
    {"id": "request_history", "name": "Request History",
     "description": "Log of password resets and user requests",
     "parameters": ["status", "dateRange"], "admin_only": True},
    {"id": "activity_log_report", "name": "Activity Audit Log",
     "description": "Detailed system activity and security audit trail",
     "parameters": ["dateRange", "actionType"], "admin_only": True},
    {"id": "system_health", "name": "System Health & Stats",
     "description": "Overview of system counts and status distribution",
     "parameters": [], "admin_only": True},
]

TEMPLATE_IDS = [t["id"] for t in REPORT_TEMPLATES]


def get_template(report_id: str) -> Optional[Dict[str, Any]]:
    return next((t for t in REPORT_TEMPLATES if t["id"] == report_id), None)


def build_report(report_id: str, data: Dict[str, List[Dict[str, Any]]], filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """
    ``data`` keys used: riders, team_leaders, users, requests, logs,
    transactions. ``filters`` keys: start_date, end_date, status, client,
    team_leader_ids, action_type, threshold, now.
    Raises ValueError for an unknown template id.
    """
    filters = filters or {}
    riders = data.get("riders", [])
    team_leaders = data.get("team_leaders", [])
    start, end = filters.get("start_date"), filters.get("end_date")

    if report_id == "active_riders":
        rows = filter_riders(riders, status="active", client=filters.get("client"))
        return [transform_rider_row(r) for r in rows]

    if report_id == "inactive_riders":
        return [transform_rider_row(r) for r in inactive_riders(riders, now=filters.get("now"))]

    if report_id == "negative_wallet":
        threshold = float(filters.get("threshold") or 0)
        return [transform_rider_row(r) for r in negative_wallet_riders(riders, threshold)]

    if report_id == "wallet_summary":
        return wallet_summary_rows(riders)

    if report_id == "client_distribution":
        return client_distribution(filter_riders(riders, status=filters.get("status")))

    if report_id == "team_leader_performance":
        return team_leader_performance(riders, team_leaders)

    if report_id == "request_history":
        return request_report(data.get("requests", []), filters.get("status"), start, end)

    if report_id == "activity_log_report":
        return activity_report(data.get("logs", []), start, end, filters.get("action_type"))

    if report_id == "system_health":
        return system_health(riders, data.get("users", team_leaders), data.get("requests", []))

    if report_id == "tl_daily_collection":
        if not start or not end:
            raise ValueError("tl_daily_collection requires start_date and end_date")
        return tl_daily_collection(
            data.get("transactions", []),
            team_leaders,
            start,
            end,
            filters.get("team_leader_ids"),
        )

    raise ValueError(f"Unknown report template: {report_id}")


# ============================================================
# OVERVIEW (KPI cards + distributions for the reports page)
# ============================================================
def report_overview(
    riders: List[Dict[str, Any]],
    requests: List[Dict[str, Any]],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    client: Optional[str] = None,
) -> Dict[str, Any]:
    in_period = [
        r for r in riders
        if in_day_range(r.get("created_at"), start_date, end_date)
        and (not client or client == "all" or r.get("client_name") == client)
    ]
    requests_in_period = [r for r in requests if in_day_range(r.get("created_at"), start_date, end_date)]

    growth: Dict[str, int] = {}
    for r in in_period:
        day = to_day(r.get("created_at"))
        if day:
            key = day.isoformat()
            growth[key] = growth.get(key, 0) + 1

    status_counts: Dict[str, int] = {}
    client_counts: Dict[str, int] = {}
    for r in riders:
        status_counts[r.get("status") or "unknown"] = status_counts.get(r.get("status") or "unknown", 0) + 1
        name = r.get("client_name") or "Unknown"
        client_counts[name] = client_counts.get(name, 0) + 1

    return {
        "kpi": {
            "totalWallet": sum(wallet_of(r) for r in riders),
            "activeRidersCount": sum(1 for r in riders if r.get("status") == "active"),
            "openTickets": sum(1 for r in requests if r.get("status") not in ("resolved", "rejected", "deleted", "purged")),
            "filteredRidersCount": len(in_period),
            "newRequestsCount": len(requests_in_period),
        },
        "growth": [{"date": k, "count": v} for k, v in sorted(growth.items())],
        "status": [{"name": k, "value": v} for k, v in status_counts.items()],
        "clients": [{"name": k, "value": v} for k, v in client_counts.items()],
    }
