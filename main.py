from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Core
from core.config import settings
from core.config_validator import validate_config_on_startup
from core.logging_config import logger
from core.scheduler import start_scheduler, stop_scheduler

from routers import api_router
from services import live_views


def log_routes(routes) -> List[str]:
    """Log every registered path. Included routers without a path of their own are skipped."""
    lines = []
    logger.info("📍 Registered Routes:")
    for route in routes:
        path = getattr(route, "path", None)
        if path is None:
            continue
        methods = ",".join(sorted(getattr(route, "methods", None) or []))
        lines.append(f"{methods:10s} {path}")
        logger.info(f"➡️ {lines[-1]}")
    return lines


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Rider, lead and wallet administration for the fleet console, backed by Supabase",
    )

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup / shutdown
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.ENV})")
        validate_config_on_startup()

        if settings.REALTIME_ENABLED:
            try:
                await live_views.start()
            except Exception as e:
                logger.error(f"Live views failed to start: {e}")

        if settings.SCHEDULER_ENABLED:
            start_scheduler()

        log_routes(app.routes)

    @app.on_event("shutdown")
    async def on_shutdown():
        await live_views.stop()
        stop_scheduler()
        logger.info("👋 Shutdown complete")

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url}: {exc.detail}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------
    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return {"service": settings.PROJECT_NAME, "docs": "/docs"}

    return app


# Create the global FastAPI instance
app = create_app()
