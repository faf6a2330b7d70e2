# core/validation.py

import re
from typing import List, Optional, Tuple


PHONE_RE = re.compile(r"^\+91[6-9]\d{9}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CHASSIS_RE = re.compile(r"^[A-Z0-9]{6,17}$", re.IGNORECASE)
TRIEV_ID_RE = re.compile(r"^TR\d+$", re.IGNORECASE)

VALID_RIDER_STATUSES = ("active", "inactive", "deleted")


# -----------------------------------------------------
# Phone numbers
# -----------------------------------------------------
def format_phone_number(phone: str) -> str:
    """
    Normalize to +91XXXXXXXXXX when the digits allow it:
      9876543210     → +919876543210
      91 98765 43210 → +919876543210
    Anything else is returned unchanged.
    """
    if not phone:
        return phone
    digits = re.sub(r"\D", "", str(phone))
    if digits.startswith("91") and len(digits) == 12:
        return f"+{digits}"
    if len(digits) == 10:
        return f"+91{digits}"
    return phone


def validate_phone_number(phone: str) -> bool:
    return bool(phone) and bool(PHONE_RE.match(phone))


def digits_only(value) -> str:
    return re.sub(r"[^0-9]", "", str(value or ""))


# -----------------------------------------------------
# Identifiers
# -----------------------------------------------------
def validate_email(email: str) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email))


def validate_chassis_number(chassis: str) -> bool:
    return bool(chassis) and bool(CHASSIS_RE.match(chassis))


def validate_triev_id(triev_id: str) -> bool:
    return bool(triev_id) and bool(TRIEV_ID_RE.match(triev_id))


def generate_user_id(existing_count: int = 0) -> str:
    """Team leader ids run TRIEV_TL0001, TRIEV_TL0002, ..."""
    return f"TRIEV_TL{existing_count + 1:04d}"


# -----------------------------------------------------
# Free text
# -----------------------------------------------------
def sanitize_input(text: Optional[str]) -> str:
    """Strip angle brackets and quotes from user-entered text."""
    if not text:
        return ""
    return re.sub(r"[<>'\"]", "", text).strip()


def normalize_text(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (text or "").strip())


def validate_password_strength(password: str) -> Tuple[bool, str]:
    if not password or len(password) < 8:
        return False, "Password must be at least 8 characters long"
    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"
    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", password):
        return False, "Password must contain at least one number"
    return True, "Password is strong"


# -----------------------------------------------------
# Import rows
# -----------------------------------------------------
def validate_import_row(row: dict, row_num: int) -> List[str]:
    """Problems with one spreadsheet row; ``row_num`` is the sheet row (header = 1)."""
    errors: List[str] = []

    if not str(row.get("Rider Name") or "").strip():
        errors.append(f"Row {row_num}: Rider Name is required")

    mobile = row.get("Mobile Number")
    if mobile and not validate_phone_number(format_phone_number(str(mobile))):
        errors.append(f"Row {row_num}: Invalid mobile number format")

    triev_id = row.get("Triev ID")
    if triev_id and not validate_triev_id(str(triev_id)):
        errors.append(f"Row {row_num}: Invalid Triev ID format (should be TR followed by numbers)")

    status = row.get("Status")
    if status and str(status).lower() not in VALID_RIDER_STATUSES:
        errors.append(f"Row {row_num}: Status must be active, inactive, or deleted")

    return errors
