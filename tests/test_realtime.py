# tests/test_realtime.py

"""
Tests for the live table copies: stale-response protection, delta patches
and teardown.
"""

import asyncio

from core.realtime import ChangeEvent, TableSync
from services import live_views


def test_change_event_accepts_both_payload_shapes():
    nested = ChangeEvent.from_payload({
        "data": {"type": "insert", "table": "riders", "record": {"id": "r1"}, "old_record": {}},
    })
    flat = ChangeEvent.from_payload({"eventType": "DELETE", "table": "riders", "old": {"id": "r2"}})

    assert nested.event_type == "INSERT"
    assert nested.row_id == "r1"
    assert flat.event_type == "DELETE"
    assert flat.row_id == "r2"


def test_older_response_never_overwrites_newer():
    async def scenario():
        sync = TableSync("riders", fetch=lambda: [])

        # two refreshes in flight; the first one resolves last
        sync._issued += 1
        first = sync._issued
        sync._issued += 1
        second = sync._issued

        assert sync._publish(second, [{"id": "new"}]) is True
        assert sync._publish(first, [{"id": "old"}]) is False
        return sync

    sync = asyncio.run(scenario())
    assert sync.rows == [{"id": "new"}]
    assert sync.version == 1


def test_overlapping_refreshes_publish_latest_fetch():
    async def scenario():
        responses = iter([[{"id": "a"}], [{"id": "b"}]])
        sync = TableSync("riders", fetch=lambda: next(responses))
        results = await asyncio.gather(sync.refresh(), sync.refresh())
        return sync, results

    sync, results = asyncio.run(scenario())
    assert results.count(True) >= 1
    assert sync.loaded


def test_fetch_failure_keeps_previous_rows():
    def broken():
        raise RuntimeError("network down")

    async def scenario():
        sync = TableSync("riders", fetch=lambda: [{"id": "r1"}])
        await sync.refresh()
        sync.fetch = broken
        ok = await sync.refresh()
        return sync, ok

    sync, ok = asyncio.run(scenario())
    assert ok is False
    assert sync.rows == [{"id": "r1"}]


def test_responses_after_close_are_ignored():
    async def scenario():
        sync = TableSync("riders", fetch=lambda: [{"id": "r1"}])
        sync._issued += 1
        ticket = sync._issued
        await sync.close()
        published = sync._publish(ticket, [{"id": "late"}])
        refreshed = await sync.refresh()
        changed = await sync.apply_change({"eventType": "INSERT", "new": {"id": "x"}})
        return sync, published, refreshed, changed

    sync, published, refreshed, changed = asyncio.run(scenario())
    assert sync.closed
    assert (published, refreshed, changed) == (False, False, False)
    assert sync.rows == []


def test_insert_delta_prepends_without_refetch():
    calls = []

    def fetch():
        calls.append(1)
        return [{"id": "n1", "title": "old"}]

    async def scenario():
        sync = TableSync("notifications", fetch=fetch, patch_events=["INSERT"])
        await sync.refresh()
        await sync.apply_change({"eventType": "INSERT", "new": {"id": "n2", "title": "new"}})
        # duplicate insert is a no-op
        await sync.apply_change({"eventType": "INSERT", "new": {"id": "n2", "title": "new"}})
        return sync

    sync = asyncio.run(scenario())
    assert len(calls) == 1
    assert [r["id"] for r in sync.rows] == ["n2", "n1"]


def test_insert_delta_is_capped_at_the_fetch_limit():
    sync = TableSync("notifications", fetch=lambda: [], patch_events=["INSERT"], max_rows=2)
    sync.rows = [{"id": "n1"}, {"id": "n2"}]

    assert sync.apply_delta(ChangeEvent("INSERT", record={"id": "n3"}))
    assert [r["id"] for r in sync.rows] == ["n3", "n1"]


def test_notifications_view_uses_fetch_limit():
    sync = live_views.build_sync("notifications")
    assert sync.max_rows == live_views.FETCH_LIMITS["notifications"]
    assert sync.patch_events == {"INSERT"}


def test_update_and_delete_deltas():
    sync = TableSync("notifications", fetch=lambda: [], patch_events=["UPDATE", "DELETE"])
    sync.rows = [{"id": "n1", "is_read": False}, {"id": "n2", "is_read": False}]

    assert sync.apply_delta(ChangeEvent("UPDATE", record={"id": "n1", "is_read": True}))
    assert sync.rows[0] == {"id": "n1", "is_read": True}

    assert sync.apply_delta(ChangeEvent("DELETE", old_record={"id": "n2"}))
    assert [r["id"] for r in sync.rows] == ["n1"]

    assert not sync.apply_delta(ChangeEvent("DELETE", old_record={"id": "missing"}))


def test_non_patched_event_triggers_refetch():
    async def scenario():
        data = [[{"id": "r1"}], [{"id": "r1"}, {"id": "r2"}]]
        sync = TableSync("riders", fetch=lambda: data.pop(0))
        await sync.refresh()
        await sync.apply_change({"eventType": "INSERT", "new": {"id": "r2"}})
        return sync

    sync = asyncio.run(scenario())
    assert [r["id"] for r in sync.rows] == ["r1", "r2"]


def test_unknown_event_type_is_ignored():
    async def scenario():
        sync = TableSync("riders", fetch=lambda: [{"id": "r1"}])
        return await sync.apply_change({"eventType": "TRUNCATE"})

    assert asyncio.run(scenario()) is False


class FakeChannel:
    def __init__(self):
        self.options = None
        self.subscribed = False

    def on_postgres_changes(self, **options):
        self.options = options
        return self

    async def subscribe(self):
        self.subscribed = True
        return self


class FakeRealtimeClient:
    def __init__(self):
        self.channels = []
        self.removed = []

    def channel(self, name):
        ch = FakeChannel()
        self.channels.append((name, ch))
        return ch

    async def remove_channel(self, channel):
        self.removed.append(channel)


def test_attach_and_close_remove_the_channel():
    client = FakeRealtimeClient()

    async def scenario():
        sync = TableSync("riders", fetch=lambda: [], filter="team_leader_id=eq.tl-1")
        await sync.attach(client)
        await sync.close()
        await sync.close()

    asyncio.run(scenario())
    name, channel = client.channels[0]
    assert name == "riders-changes"
    assert channel.subscribed
    assert channel.options["table"] == "riders"
    assert channel.options["filter"] == "team_leader_id=eq.tl-1"
    assert client.removed == [channel]


def test_live_views_lifecycle(fake_db):
    fake_db.seed("riders", {"id": "r1", "created_at": "2024-01-01"})
    client = FakeRealtimeClient()

    async def scenario():
        await live_views.start(["riders"], client=client)
        running = live_views.is_running("riders")
        rows = live_views.get_rows("riders", lambda: [])
        status = live_views.status()
        await live_views.stop()
        return running, rows, status

    running, rows, status = asyncio.run(scenario())
    assert running
    assert [r["id"] for r in rows] == ["r1"]
    assert status["riders"]["rows"] == 1
    assert not live_views.is_running("riders")
    assert live_views.get_rows("riders", lambda: ["fallback"]) == ["fallback"]
