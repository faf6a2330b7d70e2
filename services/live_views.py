# services/live_views.py

from typing import Callable, Dict, List, Optional

from core.config import settings
from core.logging_config import logger
from core.realtime import TableSync
from core.supabase_client import get_supabase_client, get_async_supabase_client


# Tables whose change events are applied as deltas instead of a refetch
PATCH_EVENTS = {
    "notifications": ("INSERT",),
}

FETCH_LIMITS = {
    "notifications": 500,
}


_syncs: Dict[str, TableSync] = {}
_client = None


def _table_fetcher(table: str) -> Callable[[], List[dict]]:
    def fetch() -> List[dict]:
        client = get_supabase_client()
        if client is None:
            raise RuntimeError("Supabase client not configured")

        query = client.table(table).select("*").order("created_at", desc=True)
        if table in FETCH_LIMITS:
            query = query.limit(FETCH_LIMITS[table])
        return query.execute().data or []

    return fetch


def build_sync(table: str) -> TableSync:
    return TableSync(
        table=table,
        fetch=_table_fetcher(table),
        patch_events=PATCH_EVENTS.get(table, ()),
        max_rows=FETCH_LIMITS.get(table),
    )


# ============================================================
# Lifecycle (called from main.py startup/shutdown)
# ============================================================
async def start(tables: Optional[List[str]] = None, client=None) -> Dict[str, TableSync]:
    global _client

    if _syncs:
        return _syncs

    client = client or await get_async_supabase_client()
    if client is None:
        logger.warning("⚠️ Realtime disabled: async Supabase client unavailable")
        return _syncs

    _client = client
    for table in tables or settings.REALTIME_TABLES:
        sync = build_sync(table)
        await sync.refresh()
        try:
            await sync.attach(client)
        except Exception as e:
            logger.error(f"Failed to subscribe to {table}: {e}")
            await sync.close()
            continue
        _syncs[table] = sync

    logger.info(f"✅ Live views running for: {', '.join(_syncs) or 'none'}")
    return _syncs


async def stop():
    global _client

    for sync in list(_syncs.values()):
        await sync.close()
    _syncs.clear()
    _client = None


def is_running(table: str) -> bool:
    sync = _syncs.get(table)
    return sync is not None and not sync.closed and sync.loaded


def get_rows(table: str, fallback: Callable[[], List[dict]]) -> List[dict]:
    """Live rows when the table is synced, otherwise a direct fetch."""
    if is_running(table):
        return list(_syncs[table].rows)
    return fallback()


def status() -> Dict[str, dict]:
    return {
        table: {
            "rows": len(sync.rows),
            "version": sync.version,
            "last_synced_at": sync.last_synced_at,
        }
        for table, sync in _syncs.items()
    }
