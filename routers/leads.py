# routers/leads.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from core.supabase_client import get_supabase_client
from core.permission_helpers import require_lead_access, requires_permission, scoped_team_leader_id
from core.errors import handle_supabase_error
from core.utils import sanitize, utc_now_iso
from core.validation import digits_only
from core.logging_config import logger
from dependencies.auth import CurrentUser
from models.lead import LeadCreate, LeadRead, LeadStatusChange
from services.activity_log import log_activity
from services.leads import categorize_lead, next_lead_id
from services.report_aggregator import lead_stats


router = APIRouter(
    prefix="/leads",
    tags=["Leads"],
)


def _get_lead(client, lead_id: str) -> dict:
    result = client.table("leads").select("*").eq("id", lead_id).limit(1).execute()
    if not result.data:
        raise HTTPException(404, "Lead not found")
    return result.data[0]


def _visible_leads(client, user: CurrentUser) -> List[dict]:
    query = client.table("leads").select("*").is_("deleted_at", "null")
    scope = scoped_team_leader_id(user)
    if scope:
        query = query.eq("created_by", scope)
    return query.order("created_at", desc=True).execute().data or []


# -----------------------------------------------------
# LIST / STATS
# -----------------------------------------------------
@router.get("", response_model=List[LeadRead], summary="List leads")
def list_leads(
    status: Optional[str] = Query(None, description="New | Convert | Not Convert"),
    category: Optional[str] = Query(None, description="Genuine | Match | Duplicate"),
    source: Optional[str] = None,
    search: Optional[str] = None,
    current_user: CurrentUser = Depends(requires_permission("leads.view")),
):
    """Team leaders see only the leads they captured."""
    client = get_supabase_client()

    try:
        rows = _visible_leads(client, current_user)
    except Exception as e:
        logger.error(f"Failed to list leads: {e}")
        raise HTTPException(500, "Failed to load leads")

    if status and status != "all":
        rows = [r for r in rows if r.get("status") == status]
    if category and category != "all":
        rows = [r for r in rows if r.get("category") == category]
    if source and source != "all":
        rows = [r for r in rows if r.get("source") == source]
    if search:
        term = search.strip().lower()
        rows = [
            r for r in rows
            if term in (r.get("rider_name") or "").lower()
            or term in (r.get("mobile_number") or "")
            or term in str(r.get("lead_id") or "")
        ]

    return [LeadRead.from_row(r) for r in rows]


@router.get("/stats", summary="Lead counts by status, category and source")
def get_lead_stats(current_user: CurrentUser = Depends(requires_permission("leads.view"))):
    client = get_supabase_client()
    return lead_stats(_visible_leads(client, current_user))


@router.get("/check-mobile", summary="Category a lead with this mobile would get")
def check_mobile(
    mobile: str,
    exclude_id: Optional[str] = None,
    current_user: CurrentUser = Depends(requires_permission("leads.create")),
):
    mobile = digits_only(mobile)
    return {"mobile_number": mobile, "category": categorize_lead(mobile, exclude_id)}


@router.get("/{lead_id}", response_model=LeadRead, summary="Get a lead")
def get_lead(
    lead_id: str,
    current_user: CurrentUser = Depends(requires_permission("leads.view")),
):
    client = get_supabase_client()
    lead = _get_lead(client, lead_id)
    require_lead_access(current_user, lead)
    return LeadRead.from_row(lead)


# -----------------------------------------------------
# CREATE / UPDATE
# -----------------------------------------------------
@router.post("", response_model=LeadRead, status_code=201, summary="Capture a lead")
def create_lead(
    payload: LeadCreate,
    current_user: CurrentUser = Depends(requires_permission("leads.create")),
):
    client = get_supabase_client()
    data = payload.model_dump(mode="json")
    data["mobile_number"] = digits_only(data["mobile_number"])

    try:
        data.update({
            "lead_id": next_lead_id(client),
            "category": categorize_lead(data["mobile_number"], client=client),
            "status": "New",
            "created_by": current_user.id,
            "created_by_name": current_user.display_name,
            "created_at": utc_now_iso(),
            "updated_at": utc_now_iso(),
        })
        result = client.table("leads").insert(sanitize(data)).execute()
        if not result.data:
            raise HTTPException(500, "Insert returned no data")
        lead = result.data[0]

    except HTTPException:
        raise
    except Exception as e:
        raise handle_supabase_error(e, "Failed to create lead")

    log_activity(
        current_user,
        "leadCreated",
        "lead",
        str(lead.get("lead_id") or lead["id"]),
        f"New Lead {lead.get('lead_id')} captured by {current_user.display_name} ({lead.get('category')})",
        {"category": lead.get("category")},
    )
    return LeadRead.from_row(lead)


@router.patch("/{lead_id}", response_model=LeadRead, summary="Edit a lead")
def update_lead(
    lead_id: str,
    payload: LeadCreate,
    current_user: CurrentUser = Depends(requires_permission("leads.edit")),
):
    client = get_supabase_client()
    lead = _get_lead(client, lead_id)
    require_lead_access(current_user, lead)

    changes = payload.model_dump(exclude_unset=True, mode="json")
    changes["mobile_number"] = digits_only(changes.get("mobile_number") or lead.get("mobile_number"))

    # category is re-derived only when the number changes
    if changes["mobile_number"] != lead.get("mobile_number"):
        changes["category"] = categorize_lead(changes["mobile_number"], exclude_lead_id=lead_id, client=client)
    changes["updated_at"] = utc_now_iso()

    result = client.table("leads").update(sanitize(changes)).eq("id", lead_id).execute()
    updated = result.data[0] if result.data else {**lead, **changes}
    return LeadRead.from_row(updated)


@router.patch("/{lead_id}/status", response_model=LeadRead, summary="Change lead status")
def change_lead_status(
    lead_id: str,
    payload: LeadStatusChange,
    current_user: CurrentUser = Depends(requires_permission("leads.statusChange")),
):
    client = get_supabase_client()
    lead = _get_lead(client, lead_id)
    require_lead_access(current_user, lead)

    status = payload.status.value
    result = (
        client.table("leads")
        .update({"status": status, "updated_at": utc_now_iso()})
        .eq("id", lead_id)
        .execute()
    )
    updated = result.data[0] if result.data else {**lead, "status": status}

    log_activity(
        current_user,
        "leadStatusChange",
        "lead",
        str(lead.get("lead_id") or lead_id),
        f"Lead {lead.get('lead_id')} ({lead.get('rider_name')}): {lead.get('status')} → {status}",
        {"from": lead.get("status"), "to": status},
    )
    return LeadRead.from_row(updated)


@router.delete("/{lead_id}", summary="Soft delete a lead")
def delete_lead(
    lead_id: str,
    current_user: CurrentUser = Depends(requires_permission("leads.delete")),
):
    client = get_supabase_client()
    lead = _get_lead(client, lead_id)
    require_lead_access(current_user, lead)

    client.table("leads").update({"deleted_at": utc_now_iso()}).eq("id", lead_id).execute()
    log_activity(current_user, "leadDeleted", "lead", str(lead.get("lead_id") or lead_id), f"Deleted lead {lead.get('lead_id')} ({lead.get('rider_name')})")
    return {"success": True, "id": lead_id}
