# routers/__init__.py

from fastapi import APIRouter

from .auth import router as auth_router
from .session import router as session_router
from .users import router as users_router

from .riders import router as riders_router
from .leads import router as leads_router
from .requests import router as requests_router
from .notifications import router as notifications_router
from .wallet import router as wallet_router

from .reports import router as reports_router
from .dashboard import router as dashboard_router
from .data import router as data_router
from .activity import router as activity_router
from .health import router as health_router


api_router = APIRouter()

# Auth / session
api_router.include_router(auth_router)
api_router.include_router(session_router)
api_router.include_router(users_router)

# Console data
api_router.include_router(riders_router)
api_router.include_router(leads_router)
api_router.include_router(requests_router)
api_router.include_router(notifications_router)
api_router.include_router(wallet_router)

# Reporting
api_router.include_router(reports_router)
api_router.include_router(dashboard_router)
api_router.include_router(data_router)
api_router.include_router(activity_router)

# Health
api_router.include_router(health_router)

__all__ = ["api_router"]
