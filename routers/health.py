# routers/health.py

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.config import settings
from core.supabase_client import ping_supabase
from services import live_views

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# -----------------------------------------------------
# GET /health/app
# -----------------------------------------------------
@router.get("/app", summary="App health check")
async def health_app():
    return {
        "service": settings.PROJECT_NAME,
        "status": "ok",
        "env": settings.ENV,
        "realtime": settings.REALTIME_ENABLED,
        "scheduler": settings.SCHEDULER_ENABLED,
    }


# -----------------------------------------------------
# GET /health/db
# One-row probe per console table. 503 unless every table answers,
# so uptime monitors can alert on a single broken table.
# -----------------------------------------------------
@router.get("/db", summary="Supabase table probe")
def health_db():
    report = ping_supabase()
    healthy = report.get("status") == "ok"

    tables = report.get("tables") or {}
    body = {
        "service": "Supabase",
        "status": report.get("status", "unknown"),
        "failing": sorted(t for t, r in tables.items() if r.get("status") != "ok"),
        "details": report,
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


# -----------------------------------------------------
# GET /health/realtime
# -----------------------------------------------------
@router.get("/realtime", summary="Live table views")
async def health_realtime():
    views = live_views.status()
    return {
        "enabled": settings.REALTIME_ENABLED,
        "running": sorted(t for t in views if live_views.is_running(t)),
        "tables": views,
    }
