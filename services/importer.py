# services/importer.py

import re
import tempfile
from typing import Any, Dict, List, Optional, Set, Tuple

import numpy as np
import pandas as pd

from core.config import settings
from core.logging_config import logger
from core.supabase_client import get_supabase_client
from core.utils import utc_now_iso
from core.validation import VALID_RIDER_STATUSES, digits_only, validate_import_row
from models.enums import ClientName, ImportStatus, ImportType
from services.activity_log import log_activity


RIDER_COLUMNS = [
    "Rider Name",
    "Mobile Number",
    "Triev ID",
    "Chassis Number",
    "Client Name",
    "Client ID",
    "Team Leader",
    "Allotment Date",
    "Wallet Amount",
    "Status",
    "Remarks",
]

WALLET_COLUMNS = ["Triev ID", "Mobile Number", "Wallet Amount"]

IDENTIFIER_FIELDS = ("mobile_number", "triev_id", "chassis_number")

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


# ============================================================
# Spreadsheet reading
# ============================================================
def _clean_value(value: Any) -> Any:
    """pandas/numpy scalars → plain Python; NaN/NaT → None."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.isoformat()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def read_spreadsheet(filename: str, contents: bytes) -> List[Dict[str, Any]]:
    """Rows of a .csv/.xlsx upload as dicts keyed by the header text."""
    name = (filename or "").lower()
    if name.endswith(".xls"):
        raise ValueError("Legacy .xls files are not supported, save the sheet as .xlsx or .csv")
    if not (name.endswith(".csv") or name.endswith(".xlsx")):
        raise ValueError("File must be .csv or .xlsx")

    # identifiers such as mobile numbers must stay text; a blank cell would
    # otherwise turn the whole column into float64
    with tempfile.NamedTemporaryFile(delete=True) as tmp:
        tmp.write(contents)
        tmp.flush()

        if name.endswith(".csv"):
            df = pd.read_csv(tmp.name, dtype=str, keep_default_na=False)
        else:
            df = pd.read_excel(tmp.name, engine="openpyxl", dtype=str, keep_default_na=False)

    if df.empty:
        raise ValueError("File is empty")

    df.columns = [str(c).strip() for c in df.columns]
    rows = []
    for _, row in df.iterrows():
        rows.append({col: _clean_value(row[col]) for col in df.columns})
    return rows


def auto_map_columns(headers: List[str], required: List[str]) -> Dict[str, str]:
    """
    Match each required column to a sheet header: exact (case-insensitive),
    then containment. "Team Leader" also accepts a "Base" column.
    """
    mapping: Dict[str, str] = {}
    lowered = {h: h.lower().strip() for h in headers}

    for column in required:
        target = column.lower()
        match = next((h for h, low in lowered.items() if low == target), None)
        if match is None:
            match = next((h for h, low in lowered.items() if target in low), None)
        if match is None and column == "Mobile Number":
            match = next((h for h, low in lowered.items() if "mobile" in low), None)
        if match is None and column == "Triev ID":
            match = next((h for h, low in lowered.items() if "triev" in low), None)
        if match is None and column == "Team Leader":
            match = next((h for h, low in lowered.items() if low == "base"), None)
        if match is not None:
            mapping[column] = match

    return mapping


def apply_mapping(rows: List[Dict[str, Any]], mapping: Dict[str, str]) -> List[Dict[str, Any]]:
    return [{column: row.get(header) for column, header in mapping.items()} for row in rows]


# ============================================================
# Value parsing
# ============================================================
def parse_currency(value: Any) -> Optional[float]:
    """
    "500" → 500, "-500" → -500, "(-) 500" → -500, "(500)" → -500,
    "₹1,200" → 1200; empty → 0; unparseable → None.
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    text = str(value).strip()
    if not text:
        return 0.0

    if text.startswith("(-)") or (text.startswith("(") and text.endswith(")")):
        number = re.sub(r"[^0-9.]", "", text)
        try:
            return -float(number)
        except ValueError:
            return None

    number = re.sub(r"[^0-9.\-]", "", text)
    try:
        return float(number)
    except ValueError:
        return None


def parse_allotment_date(value: Any) -> str:
    if value:
        parsed = pd.to_datetime(value, errors="coerce")
        if not pd.isna(parsed):
            return parsed.isoformat()
    return utc_now_iso()


def normalize_client(value: Any) -> str:
    name = str(value or "").strip()
    return name if name in ClientName.list() else ClientName.other.value


# ============================================================
# Team leader resolution
# ============================================================
class TeamLeaderIndex:
    """Lookup of users by id, email, full name and name without "(...)" suffix."""

    def __init__(self, users: List[dict]):
        self.ids: Set[str] = set()
        self.emails: Dict[str, str] = {}
        self.names: Dict[str, str] = {}

        for user in users:
            user_id = user.get("id")
            if not user_id:
                continue
            self.ids.add(user_id)

            email = (user.get("email") or "").strip().lower()
            if email:
                self.emails[email] = user_id

            full_name = (user.get("full_name") or "").strip()
            if full_name:
                self.names[full_name.lower()] = user_id
                clean = re.sub(r"\s*\(.*?\)\s*", "", full_name).strip().lower()
                if clean:
                    self.names.setdefault(clean, user_id)

    def resolve(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        text = str(value).strip()
        key = text.lower()

        if UUID_RE.match(text) and text in self.ids:
            return text
        if key in self.emails:
            return self.emails[key]
        return self.names.get(key)


# ============================================================
# Summary / history
# ============================================================
def new_summary(total: int) -> Dict[str, Any]:
    return {"total": total, "success": 0, "failed": 0, "warnings": 0, "errors": []}


def summary_status(summary: Dict[str, Any]) -> str:
    if summary["failed"] == 0:
        return ImportStatus.success.value
    if summary["success"] == 0:
        return ImportStatus.failed.value
    return ImportStatus.partial.value


def record_import_history(client, actor, import_type: str, summary: Dict[str, Any]) -> None:
    try:
        client.table("import_history").insert({
            "admin_id": getattr(actor, "id", None),
            "admin_name": getattr(actor, "full_name", None) or getattr(actor, "email", None),
            "import_type": import_type,
            "total_rows": summary["total"],
            "success_count": summary["success"],
            "failure_count": summary["failed"],
            "status": summary_status(summary),
            "errors": summary["errors"][: settings.IMPORT_ERROR_LIMIT],
            "timestamp": utc_now_iso(),
        }).execute()
    except Exception as e:
        logger.error(f"Failed to record import history: {e}")


def preview_rows(rows: List[Dict[str, Any]]) -> List[str]:
    """Validation problems for every row, without touching the database."""
    problems: List[str] = []
    for idx, row in enumerate(rows):
        problems.extend(validate_import_row(row, idx + 2))
    return problems


# ============================================================
# Rider import
# ============================================================
def _find_existing_rider(client, triev_id: str, mobile: str, chassis: str) -> Optional[dict]:
    for column, value in (("triev_id", triev_id), ("mobile_number", mobile), ("chassis_number", chassis)):
        if not value:
            continue
        result = client.table("riders").select("id").eq(column, value).limit(1).execute()
        if result.data:
            return result.data[0]
    return None


def import_riders(rows: List[Dict[str, Any]], actor) -> Dict[str, Any]:
    """
    Create or update one rider per row. An existing rider is matched by any of
    Triev ID, mobile or chassis. An unknown team leader is a warning, and the
    rider is stored unassigned.
    """
    client = get_supabase_client()
    summary = new_summary(len(rows))

    try:
        users = client.table("users").select("id, full_name, email, role").execute().data or []
    except Exception as e:
        logger.error(f"Could not load users for team leader matching: {e}")
        users = []
    index = TeamLeaderIndex(users)

    for idx, row in enumerate(rows):
        row_num = idx + 2
        rider_name = str(row.get("Rider Name") or "").strip()

        try:
            triev_id = str(row.get("Triev ID") or "").strip()
            mobile = digits_only(row.get("Mobile Number"))
            chassis = str(row.get("Chassis Number") or "").strip()

            if not triev_id and not mobile and not chassis:
                raise ValueError("Missing Identifier (Triev ID, Mobile, or Chassis required)")
            if not rider_name:
                raise ValueError("Missing Rider Name")

            wallet = parse_currency(row.get("Wallet Amount"))
            if wallet is None:
                raise ValueError("Invalid wallet amount")

            tl_label = str(row.get("Team Leader") or row.get("Base") or "").strip()
            team_leader_id = index.resolve(tl_label)
            if tl_label and not team_leader_id:
                summary["warnings"] += 1
                summary["errors"].append({
                    "row": row_num,
                    "identifier": rider_name,
                    "reason": f"Warning: Team Leader '{tl_label}' not found. Rider assigned to 'Unassigned'.",
                })

            status = str(row.get("Status") or "active").strip().lower()
            if status not in VALID_RIDER_STATUSES:
                status = "active"

            data = {
                "rider_name": rider_name,
                "mobile_number": mobile or None,
                "triev_id": triev_id or None,
                "chassis_number": chassis or None,
                "client_name": normalize_client(row.get("Client Name")),
                "client_id": str(row.get("Client ID") or ""),
                "wallet_amount": wallet,
                "allotment_date": parse_allotment_date(row.get("Allotment Date")),
                "remarks": str(row.get("Remarks") or ""),
                "team_leader_id": team_leader_id,
                "team_leader_name": tl_label if team_leader_id else "Unassigned",
                "status": status,
                "updated_at": utc_now_iso(),
            }

            existing = _find_existing_rider(client, triev_id, mobile, chassis)
            if existing:
                # a blank identifier cell keeps what is stored
                changes = {k: v for k, v in data.items() if not (k in IDENTIFIER_FIELDS and v is None)}
                client.table("riders").update(changes).eq("id", existing["id"]).execute()
            else:
                client.table("riders").insert({**data, "created_at": utc_now_iso()}).execute()

            summary["success"] += 1

        except Exception as e:
            summary["failed"] += 1
            summary["errors"].append({
                "row": row_num,
                "identifier": rider_name or f"Row {row_num}",
                "reason": str(e) or "Unknown error",
            })

    log_activity(
        actor,
        "bulkImport",
        "system",
        "multiple",
        f"Imported {summary['success']} riders, {summary['failed']} failures.",
        {"success": summary["success"], "failed": summary["failed"]},
    )
    record_import_history(client, actor, ImportType.rider.value, summary)

    logger.info(f"📥 Rider import: {summary['success']}/{summary['total']} rows applied")
    return summary


# ============================================================
# Wallet bulk update
# ============================================================
def _match_rider(client, triev_id: str, mobile: str) -> Tuple[Optional[dict], str]:
    if triev_id:
        result = client.table("riders").select("id, rider_name").eq("triev_id", triev_id).limit(1).execute()
        if result.data:
            return result.data[0], f"Triev ID: {triev_id}"
    if mobile:
        result = client.table("riders").select("id, rider_name").eq("mobile_number", mobile).limit(1).execute()
        if result.data:
            return result.data[0], f"Mobile: {mobile}"
    return None, ""


def update_wallets(rows: List[Dict[str, Any]], actor) -> Dict[str, Any]:
    """Set each matched rider's wallet to the sheet value (Triev ID first, then mobile)."""
    client = get_supabase_client()
    summary = new_summary(len(rows))

    for idx, row in enumerate(rows):
        row_num = idx + 2
        triev_id = str(row.get("Triev ID") or "").strip()
        mobile = digits_only(row.get("Mobile Number"))

        try:
            if not triev_id and not mobile:
                raise ValueError("Missing Identifier: 'Triev ID' or 'Mobile Number' is required column.")

            amount = parse_currency(row.get("Wallet Amount"))
            if amount is None:
                raise ValueError("Invalid Wallet Amount value.")

            rider, matched_by = _match_rider(client, triev_id, mobile)
            if rider is None:
                label = f"Triev ID: {triev_id}" if triev_id else f"Mobile: {mobile}"
                raise ValueError(f"Rider not found for {label}. Ensure rider exists in system.")

            client.table("riders").update({
                "wallet_amount": amount,
                "updated_at": utc_now_iso(),
            }).eq("id", rider["id"]).execute()

            logger.debug(f"Wallet set for {rider.get('rider_name')} using {matched_by}")
            summary["success"] += 1

        except Exception as e:
            summary["failed"] += 1
            summary["errors"].append({
                "row": row_num,
                "identifier": triev_id or mobile or f"Row {row_num}",
                "reason": str(e) or "Unknown error",
            })

    log_activity(
        actor,
        "walletUpdated",
        "system",
        "multiple",
        f"Updated wallets for {summary['success']} riders, {summary['failed']} failures.",
        {"success": summary["success"], "failed": summary["failed"]},
    )
    record_import_history(client, actor, ImportType.wallet.value, summary)

    logger.info(f"📥 Wallet update: {summary['success']}/{summary['total']} rows applied")
    return summary
