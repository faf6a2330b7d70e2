# core/supabase_client.py

from typing import Optional

from supabase import create_client, acreate_client, Client, AsyncClient
from core.config import settings
from core.logging_config import logger


# Tables checked by the DB health probe
HEALTH_TABLES = [
    "users",
    "riders",
    "leads",
    "requests",
    "announcements",
    "notifications",
    "activity_logs",
    "wallet_transactions",
    "daily_collections",
    "chat_sessions",
    "chat_messages",
]


# ============================================================
# Supabase Client Factory (ALWAYS service role)
# ============================================================

def get_supabase_client() -> Optional[Client]:
    """
    Creates a Supabase client using the SERVICE ROLE KEY.
    REQUIRED for:
        - auth.admin.create_user (user management)
        - auth.get_user (token validation)
        - full read/write on all tables (RLS bypass)
    """
    try:
        supabase_url = settings.SUPABASE_URL
        supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY  # MUST be service-role

        if not supabase_url or not supabase_key:
            logger.error("Missing Supabase credentials")
            logger.error(f"   URL: {supabase_url}")
            logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
            return None

        return create_client(supabase_url, supabase_key)

    except Exception as e:
        logger.error(f"Supabase Init Error: {e}", exc_info=True)
        return None


# ============================================================
# Async client (realtime change feeds)
# ============================================================

async def get_async_supabase_client() -> Optional[AsyncClient]:
    """
    Realtime subscriptions are only available on the async client.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("Missing Supabase credentials, realtime unavailable")
        return None

    try:
        return await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        logger.error(f"Supabase Async Init Error: {e}", exc_info=True)
        return None


# ============================================================
# Ping Supabase for health checks
# ============================================================

def ping_supabase() -> dict:
    """
    Simple connectivity check.
    Does NOT query auth tables.
    """
    try:
        client = get_supabase_client()
        if client is None:
            return {"service": "Supabase", "status": "not_configured"}

        results = {}

        for t in HEALTH_TABLES:
            try:
                res = client.table(t).select("id").limit(1).execute()
                results[t] = {
                    "status": "ok",
                    "rows_found": len(res.data or [])
                }
            except Exception as err:
                results[t] = {"status": "error", "detail": str(err)}

        degraded = any(r["status"] != "ok" for r in results.values())

        return {
            "service": "Supabase",
            "status": "degraded" if degraded else "ok",
            "tables": results,
        }

    except Exception as e:
        logger.error(f"Supabase Ping Error: {e}", exc_info=True)
        return {"service": "Supabase", "status": "error", "detail": str(e)}
