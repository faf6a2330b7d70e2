# routers/data.py

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from core.config import settings
from core.supabase_client import get_supabase_client
from core.permission_helpers import requires_permission, scoped_team_leader_id
from core.logging_config import logger
from dependencies.auth import CurrentUser
from services.exporter import export_rows, import_template
from services.importer import (
    RIDER_COLUMNS,
    WALLET_COLUMNS,
    apply_mapping,
    auto_map_columns,
    import_riders,
    preview_rows,
    read_spreadsheet,
    update_wallets,
)
from services.report_aggregator import filter_riders, transform_rider_row


router = APIRouter(
    prefix="/data",
    tags=["Data Management"],
)


def _file_response(file) -> Response:
    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
    )


async def _read_upload(file: UploadFile, required: list):
    contents = await file.read()
    try:
        rows = read_spreadsheet(file.filename, contents)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise HTTPException(400, f"Failed to read spreadsheet: {e}")

    mapping = auto_map_columns(list(rows[0].keys()), required)
    logger.info(f"Import {file.filename}: {len(rows)} rows, mapped columns {mapping}")
    return rows, mapping


# ----------------------------------------
# TEMPLATES
# ----------------------------------------
@router.get(
    "/templates/{kind}",
    summary="Download an import template",
    dependencies=[Depends(requires_permission("modules.dataManagement"))],
)
def download_template(kind: str, format: str = "csv"):
    try:
        return _file_response(import_template(kind, format))
    except ValueError as e:
        raise HTTPException(400, str(e))


# ----------------------------------------
# PREVIEW (no writes)
# ----------------------------------------
@router.post(
    "/preview",
    summary="Column mapping and validation problems for an upload",
    dependencies=[Depends(requires_permission("modules.dataManagement"))],
)
async def preview_import(
    file: UploadFile = File(...),
    kind: str = Form("rider"),
):
    required = WALLET_COLUMNS if kind == "wallet" else RIDER_COLUMNS
    rows, mapping = await _read_upload(file, required)
    mapped = apply_mapping(rows, mapping)
    problems = preview_rows(mapped) if kind == "rider" else []

    return {
        "rows": len(rows),
        "mapping": mapping,
        "unmapped": [c for c in required if c not in mapping],
        "sample": mapped[:5],
        "problems": problems[: settings.IMPORT_ERROR_LIMIT],
    }


# ----------------------------------------
# IMPORTS
# ----------------------------------------
@router.post("/import/riders", summary="Bulk create/update riders from a spreadsheet")
async def import_rider_sheet(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(requires_permission("modules.dataManagement")),
):
    rows, mapping = await _read_upload(file, RIDER_COLUMNS)
    if not any(c in mapping for c in ("Triev ID", "Mobile Number", "Chassis Number")):
        raise HTTPException(400, "Spreadsheet needs a Triev ID, Mobile Number or Chassis Number column")

    summary = import_riders(apply_mapping(rows, mapping), current_user)
    summary["errors"] = summary["errors"][: settings.IMPORT_ERROR_LIMIT]
    return summary


@router.post("/import/wallets", summary="Bulk set rider wallet balances from a spreadsheet")
async def import_wallet_sheet(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(requires_permission("wallet.bulkUpdate")),
):
    rows, mapping = await _read_upload(file, WALLET_COLUMNS)
    if "Wallet Amount" not in mapping:
        raise HTTPException(400, "Spreadsheet needs a Wallet Amount column")

    summary = update_wallets(apply_mapping(rows, mapping), current_user)
    summary["errors"] = summary["errors"][: settings.IMPORT_ERROR_LIMIT]
    return summary


@router.get(
    "/import-history",
    summary="Previous imports",
    dependencies=[Depends(requires_permission("modules.dataManagement"))],
)
def import_history(limit: int = 50):
    client = get_supabase_client()
    return (
        client.table("import_history")
        .select("*")
        .order("timestamp", desc=True)
        .limit(limit)
        .execute()
    ).data or []


# ----------------------------------------
# RIDER EXPORT
# ----------------------------------------
@router.get("/export/riders", summary="Export riders")
def export_riders(
    format: str = "csv",
    status: Optional[str] = None,
    client_name: Optional[str] = None,
    current_user: CurrentUser = Depends(requires_permission("riders.export")),
):
    client = get_supabase_client()
    riders = client.table("riders").select("*").execute().data or []
    riders = filter_riders(riders, status=status, client=client_name, team_leader_id=scoped_team_leader_id(current_user))
    if not status:
        riders = [r for r in riders if r.get("status") != "deleted"]

    try:
        file = export_rows([transform_rider_row(r) for r in riders], format, "riders", title="Riders")
    except ValueError as e:
        raise HTTPException(400, str(e))
    return _file_response(file)
