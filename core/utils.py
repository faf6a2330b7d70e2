# core/utils.py

import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

import pandas as pd
import pytz

from core.config import settings


def sanitize(data: dict) -> dict:
    """
    Sanitize dictionary data before it is written to Supabase:
    - Empty strings → None
    - Preserve booleans, None values, numbers, dicts and lists
    - Strip string whitespace

    Numeric-looking strings are kept as strings: mobile numbers and
    Triev IDs must not be coerced to integers.
    """
    clean = {}

    for k, v in data.items():
        if v is None or isinstance(v, bool):
            clean[k] = v
            continue

        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped if stripped != "" else None
            continue

        clean[k] = v

    return clean


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def search_term(value: Optional[str]) -> str:
    """
    Free text for an ilike clause inside a PostgREST ``or=(...)`` filter.
    Commas, parentheses, quotes and backslashes would end or nest the
    clause, and ``*`` / ``%`` are wildcards, so they become spaces.
    """
    text = re.sub(r'[,()"\\*%]', " ", value or "")
    return " ".join(text.split())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse Supabase timestamps (ISO strings, with or without 'Z'), dates and
    datetimes into timezone-aware datetimes. Naive values are treated as UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    elif hasattr(value, "year") and hasattr(value, "month") and hasattr(value, "day"):
        dt = datetime(value.year, value.month, value.day)
    else:
        # PostgREST trims trailing zeros from fractional seconds (e.g. .12345)
        parsed = pd.to_datetime(str(value).strip(), errors="coerce")
        if pd.isna(parsed):
            return None
        dt = parsed.to_pydatetime()

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def report_tz():
    return pytz.timezone(settings.REPORT_TIMEZONE)


def to_local(value: Any) -> Optional[datetime]:
    """Convert a stored timestamp into the reporting timezone."""
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(report_tz())


def chunked(items: List[Any], size: int) -> Iterable[List[Any]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]

