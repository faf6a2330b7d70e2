# services/leads.py

from typing import Optional

from core.logging_config import logger
from core.supabase_client import get_supabase_client
from models.enums import LeadCategory


FIRST_LEAD_ID = 10001


def categorize_lead(mobile_number: str, exclude_lead_id: Optional[str] = None, client=None) -> str:
    """
    Category for a lead's mobile number:
      • Duplicate → another lead already has it
      • Match     → an existing rider has it
      • Genuine   → neither (also the fallback when the lookup fails)
    """
    client = client or get_supabase_client()
    if client is None or not mobile_number:
        return LeadCategory.genuine.value

    try:
        leads = (
            client.table("leads")
            .select("id")
            .eq("mobile_number", mobile_number)
            .limit(10)
            .execute()
        ).data or []

        if any(row.get("id") != exclude_lead_id for row in leads):
            return LeadCategory.duplicate.value

        riders = (
            client.table("riders")
            .select("id")
            .eq("mobile_number", mobile_number)
            .limit(1)
            .execute()
        ).data or []

        if riders:
            return LeadCategory.match.value

    except Exception as e:
        logger.warning(f"Lead category lookup failed for {mobile_number}: {e}")

    return LeadCategory.genuine.value


def next_lead_id(client=None) -> int:
    client = client or get_supabase_client()
    result = (
        client.table("leads")
        .select("lead_id")
        .order("lead_id", desc=True)
        .limit(1)
        .execute()
    )
    current = result.data[0].get("lead_id") if result.data else None
    if not current:
        return FIRST_LEAD_ID
    return max(int(current) + 1, FIRST_LEAD_ID)
