# core/realtime.py

"""
Live copies of Supabase tables driven by postgres_changes feeds.

A ``TableSync`` owns the rows of one table. On a change event it either
re-runs its full fetch or, for event types listed in ``patch_events``,
applies the delta to the local rows by ``id``.

Refreshes may overlap (several change events in quick succession). Each
refresh takes a ticket when it starts; only the holder of the newest ticket
may publish, so an older response that resolves late never overwrites a
newer one. Once ``close()`` has run, late responses and events are ignored.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.logging_config import logger
from core.utils import utc_now_iso


EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


# ============================================================
# Change payloads
# ============================================================
@dataclass
class ChangeEvent:
    event_type: str
    table: Optional[str] = None
    record: Dict[str, Any] = field(default_factory=dict)
    old_record: Dict[str, Any] = field(default_factory=dict)
    commit_timestamp: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ChangeEvent":
        """
        Accepts both payload shapes seen from Supabase:
          • {"data": {"type", "table", "record", "old_record", "commit_timestamp"}}
          • {"eventType", "table", "new", "old", "commit_timestamp"}
        """
        payload = payload or {}
        data = payload.get("data")

        if isinstance(data, dict):
            return cls(
                event_type=str(data.get("type") or data.get("eventType") or "").upper(),
                table=data.get("table"),
                record=data.get("record") or {},
                old_record=data.get("old_record") or {},
                commit_timestamp=data.get("commit_timestamp"),
            )

        return cls(
            event_type=str(payload.get("eventType") or payload.get("type") or "").upper(),
            table=payload.get("table"),
            record=payload.get("new") or payload.get("record") or {},
            old_record=payload.get("old") or payload.get("old_record") or {},
            commit_timestamp=payload.get("commit_timestamp"),
        )

    @property
    def row_id(self) -> Optional[Any]:
        return self.record.get("id") or self.old_record.get("id")


# ============================================================
# Per-table sync
# ============================================================
class TableSync:
    def __init__(
        self,
        table: str,
        fetch: Callable[[], List[Dict[str, Any]]],
        patch_events: Iterable[str] = (),
        event: str = "*",
        filter: Optional[str] = None,
        on_update: Optional[Callable[["TableSync"], None]] = None,
        max_rows: Optional[int] = None,
    ):
        self.table = table
        self.fetch = fetch
        self.patch_events = {e.upper() for e in patch_events}
        self.event = event
        self.filter = filter
        self.on_update = on_update
        self.max_rows = max_rows

        self.rows: List[Dict[str, Any]] = []
        self.version = 0
        self.last_synced_at: Optional[str] = None

        self._issued = 0
        self._closed = False
        self._client = None
        self._channel = None
        self._tasks: set = set()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def loaded(self) -> bool:
        return self.version > 0

    # --------------------------------------------------------
    # Full refetch
    # --------------------------------------------------------
    async def refresh(self) -> bool:
        """Run the fetch in a worker thread; True when the result was published."""
        if self._closed:
            return False

        self._issued += 1
        ticket = self._issued

        try:
            rows = await asyncio.to_thread(self.fetch)
        except Exception as e:
            logger.error(f"[realtime] {self.table} fetch failed: {e}")
            return False

        return self._publish(ticket, rows)

    def _publish(self, ticket: int, rows: Optional[List[Dict[str, Any]]]) -> bool:
        if self._closed:
            logger.debug(f"[realtime] {self.table}: ignoring response after close")
            return False

        if ticket != self._issued:
            logger.debug(
                f"[realtime] {self.table}: dropping stale response "
                f"(ticket {ticket}, newest {self._issued})"
            )
            return False

        self.rows = list(rows or [])
        self._touch()
        return True

    def _touch(self):
        self.version += 1
        self.last_synced_at = utc_now_iso()
        if self.on_update:
            try:
                self.on_update(self)
            except Exception as e:
                logger.error(f"[realtime] {self.table} on_update hook failed: {e}")

    # --------------------------------------------------------
    # Delta application
    # --------------------------------------------------------
    def apply_delta(self, event: ChangeEvent) -> bool:
        row_id = event.row_id
        if row_id is None:
            return False

        if event.event_type == "DELETE":
            before = len(self.rows)
            self.rows = [r for r in self.rows if r.get("id") != row_id]
            changed = len(self.rows) != before
        elif event.event_type == "INSERT":
            if any(r.get("id") == row_id for r in self.rows):
                return False
            self.rows = [dict(event.record)] + self.rows
            changed = True
        elif event.event_type == "UPDATE":
            replaced = False
            updated = []
            for r in self.rows:
                if r.get("id") == row_id:
                    updated.append({**r, **event.record})
                    replaced = True
                else:
                    updated.append(r)
            if not replaced:
                updated.insert(0, dict(event.record))
            self.rows = updated
            changed = True
        else:
            return False

        # deltas never grow the view past what a full fetch returns
        if self.max_rows is not None and len(self.rows) > self.max_rows:
            self.rows = self.rows[: self.max_rows]

        if changed:
            self._touch()
        return changed

    async def apply_change(self, payload: Dict[str, Any]) -> bool:
        if self._closed:
            return False

        event = ChangeEvent.from_payload(payload)
        if event.event_type not in EVENT_TYPES:
            logger.debug(f"[realtime] {self.table}: ignoring event {event.event_type!r}")
            return False

        if event.event_type in self.patch_events:
            return self.apply_delta(event)

        return await self.refresh()

    def handle_change(self, payload: Dict[str, Any]):
        """Channel callback; schedules apply_change on the running loop."""
        if self._closed:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"[realtime] {self.table}: change received outside an event loop")
            return None

        task = loop.create_task(self.apply_change(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # --------------------------------------------------------
    # Channel lifecycle
    # --------------------------------------------------------
    async def attach(self, client, channel_name: Optional[str] = None):
        channel = client.channel(channel_name or f"{self.table}-changes")

        options = {
            "event": self.event,
            "schema": "public",
            "table": self.table,
            "callback": self.handle_change,
        }
        if self.filter:
            options["filter"] = self.filter

        channel.on_postgres_changes(**options)
        await channel.subscribe()

        self._client = client
        self._channel = channel
        logger.info(f"📡 Subscribed to {self.table} changes")
        return channel

    async def close(self):
        if self._closed:
            return
        self._closed = True

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        if self._client is not None and self._channel is not None:
            try:
                await self._client.remove_channel(self._channel)
            except Exception as e:
                logger.warning(f"[realtime] {self.table}: failed to remove channel: {e}")

        self._channel = None
        logger.info(f"🔌 Unsubscribed from {self.table} changes")
