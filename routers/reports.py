# routers/reports.py

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from core.supabase_client import get_supabase_client
from core.permission_helpers import is_admin, requires_permission, scoped_team_leader_id
from core.logging_config import logger
from dependencies.auth import CurrentUser
from models.report import ReportExportRequest, ReportRequest
from services import live_views
from services.activity_log import log_activity
from services.exporter import export_rows
from services.report_aggregator import (
    REPORT_TEMPLATES,
    build_report,
    format_report_for_export,
    get_template,
    report_overview,
)


router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


# -----------------------------------------------------
# Data loading (live view when synced, else a direct read)
# -----------------------------------------------------
def _fetch_all(table: str):
    def fetch() -> List[dict]:
        client = get_supabase_client()
        return client.table(table).select("*").execute().data or []
    return fetch


def load_report_data(user: CurrentUser) -> Dict[str, List[dict]]:
    riders = live_views.get_rows("riders", _fetch_all("riders"))
    users = live_views.get_rows("users", _fetch_all("users"))

    scope = scoped_team_leader_id(user)
    if scope:
        riders = [r for r in riders if r.get("team_leader_id") == scope]

    data = {
        "riders": riders,
        "users": users,
        "team_leaders": [u for u in users if u.get("role") == "teamLeader"],
        "requests": [],
        "logs": [],
        "transactions": [],
    }

    # admin-only templates read these
    if is_admin(user):
        data["requests"] = live_views.get_rows("requests", _fetch_all("requests"))
        data["logs"] = live_views.get_rows("activity_logs", _fetch_all("activity_logs"))
        data["transactions"] = live_views.get_rows("wallet_transactions", _fetch_all("wallet_transactions"))

    return data


def _filters(payload: ReportRequest) -> dict:
    return {
        "start_date": payload.start_date,
        "end_date": payload.end_date,
        "status": payload.status,
        "client": payload.client,
        "team_leader_ids": payload.team_leader_ids,
        "action_type": payload.action_type,
        "threshold": payload.threshold,
    }


def _check_template(user: CurrentUser, report_id: str) -> dict:
    template = get_template(report_id)
    if template is None:
        raise HTTPException(404, f"Unknown report template: {report_id}")
    if template["admin_only"] and not is_admin(user):
        raise HTTPException(403, "This report is only available to administrators")
    return template


def _generate(user: CurrentUser, payload: ReportRequest) -> List[dict]:
    data = load_report_data(user)
    try:
        return build_report(payload.report_id, data, _filters(payload))
    except ValueError as e:
        raise HTTPException(400, str(e))


# -----------------------------------------------------
# TEMPLATES
# -----------------------------------------------------
@router.get("/templates", summary="Report templates available to the caller")
def list_templates(current_user: CurrentUser = Depends(requires_permission("reports.view"))):
    if is_admin(current_user):
        return REPORT_TEMPLATES
    return [t for t in REPORT_TEMPLATES if not t["admin_only"]]


# -----------------------------------------------------
# GENERATE
# -----------------------------------------------------
@router.post("/generate", summary="Generate a report")
def generate_report(
    payload: ReportRequest,
    current_user: CurrentUser = Depends(requires_permission("reports.generate")),
):
    template = _check_template(current_user, payload.report_id)

    try:
        rows = _generate(current_user, payload)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Report {payload.report_id} failed: {e}")
        raise HTTPException(500, "Failed to generate report")

    log_activity(
        current_user,
        "reportGenerated",
        "report",
        payload.report_id,
        f"Generated {template['name']} ({len(rows)} rows)",
        notify=False,
    )
    return {"report_id": payload.report_id, "name": template["name"], "count": len(rows), "rows": rows}


# -----------------------------------------------------
# EXPORT
# -----------------------------------------------------
@router.post("/export", summary="Export a report as CSV, Excel or PDF")
def export_report(
    payload: ReportExportRequest,
    current_user: CurrentUser = Depends(requires_permission("reports.export")),
):
    template = _check_template(current_user, payload.report_id)

    rows = format_report_for_export(payload.report_id, _generate(current_user, payload))
    file = export_rows(rows, payload.format.value, payload.report_id, title=template["name"])

    log_activity(
        current_user,
        "reportGenerated",
        "report",
        payload.report_id,
        f"Exported {template['name']} as {payload.format.value} ({len(rows)} rows)",
        notify=False,
    )

    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
    )


# -----------------------------------------------------
# OVERVIEW (reports page cards + charts)
# -----------------------------------------------------
@router.get("/overview", summary="KPI cards and distributions")
def get_overview(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    client: Optional[str] = None,
    current_user: CurrentUser = Depends(requires_permission("reports.view")),
):
    data = load_report_data(current_user)
    requests = data["requests"]
    if not is_admin(current_user):
        requests = [
            r for r in live_views.get_rows("requests", _fetch_all("requests"))
            if r.get("user_id") == current_user.id
        ]
    return report_overview(data["riders"], requests, start_date, end_date, client)
