"""
Unit Tests for the tamper alert Redis bridge.

Redis is replaced by in-memory doubles exposing the slice of the
redis.asyncio API the bridge uses.
"""

import asyncio
import json
import time

import pytest

from pharmachain.services.supply_chain import AlertStatus
from pharmachain.services.supply_chain.alert_sync import AlertSyncBridge, BackgroundAlertSync


def alert_record(alert_id="a9", status="open"):
    return {
        "id": alert_id,
        "batch_id": "b1",
        "batch_number": "BATCH-2024-001",
        "alert_type": "temperature_violation",
        "severity": "high",
        "description": "Reefer unit failure",
        "location": "Delhi, India",
        "status": status,
        "timestamp": "2024-03-02T08:00:00+00:00",
    }


class FakePubSub:
    def __init__(self):
        self.channels = set()
        self.closed = False
        self._queue = None

    @property
    def queue(self):
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    async def subscribe(self, channel):
        self.channels.add(channel)
        self.queue.put_nowait({"type": "subscribe", "channel": channel, "data": 1})

    async def unsubscribe(self, channel):
        self.channels.discard(channel)

    async def aclose(self):
        self.closed = True

    async def listen(self):
        while True:
            yield await self.queue.get()

    def publish(self, payload):
        self.queue.put_nowait({"type": "message", "data": json.dumps(payload)})


class FakeRedis:
    def __init__(self, snapshot=None, fail=False):
        self.snapshot = snapshot or {}
        self.fail = fail
        self.pubsub_client = FakePubSub()

    async def hgetall(self, key):
        if self.fail:
            raise ConnectionError("Connection refused")
        return dict(self.snapshot)

    def pubsub(self):
        return self.pubsub_client


async def wait_for(condition, timeout=1.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestAlertSyncBridge:
    """Tests for the asyncio bridge."""

    @pytest.mark.asyncio
    async def test_unreachable_feed_keeps_local_state(self, seeded_store):
        before = seeded_store.list_tamper_alerts()
        bridge = AlertSyncBridge(seeded_store, client=FakeRedis(fail=True))

        assert await bridge.start() is False
        assert bridge.running is False
        assert seeded_store.list_tamper_alerts() == before

    @pytest.mark.asyncio
    async def test_snapshot_replaces_alerts(self, seeded_store):
        client = FakeRedis(snapshot={
            "a9": json.dumps(alert_record()),
            "bad": "{not json",
        })
        bridge = AlertSyncBridge(seeded_store, client=client)

        assert await bridge.start() is True
        try:
            assert [a.id for a in seeded_store.list_tamper_alerts()] == ["a9"]
            assert "tamper_alerts" in client.pubsub_client.channels
        finally:
            await bridge.stop()

    @pytest.mark.asyncio
    async def test_empty_snapshot_keeps_local_alerts(self, seeded_store):
        bridge = AlertSyncBridge(seeded_store, client=FakeRedis())

        await bridge.start()
        try:
            assert len(seeded_store.list_tamper_alerts()) == 3
        finally:
            await bridge.stop()

    @pytest.mark.asyncio
    async def test_notifications_are_merged(self, seeded_store):
        client = FakeRedis()
        bridge = AlertSyncBridge(seeded_store, client=client)
        await bridge.start()

        try:
            client.pubsub_client.publish({"operation": "INSERT", "table": "tamper_alerts", "record": alert_record()})
            client.pubsub_client.publish({"operation": "UPDATE", "table": "tamper_alerts",
                                          "record": alert_record("a1", status="resolved")})
            client.pubsub_client.publish({"operation": "DELETE", "table": "tamper_alerts", "old": {"id": "a3"}})
            await wait_for(lambda: bridge.messages_applied == 3)
        finally:
            await bridge.stop()

        alerts = {a.id: a for a in seeded_store.list_tamper_alerts()}
        assert set(alerts) == {"a9", "a1", "a2"}
        assert alerts["a1"].status == AlertStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_stop_releases_channel(self, store):
        client = FakeRedis()
        bridge = AlertSyncBridge(store, client=client)
        await bridge.start()
        assert bridge.running

        await bridge.stop()

        assert bridge.running is False
        assert client.pubsub_client.closed is True
        assert client.pubsub_client.channels == set()

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, store):
        bridge = AlertSyncBridge(store, client=FakeRedis())
        assert await bridge.start()
        try:
            assert await bridge.start()
        finally:
            await bridge.stop()


class TestHandleMessage:
    """Tests for notification validation."""

    def test_applies_valid_insert(self, store):
        bridge = AlertSyncBridge(store, client=FakeRedis())
        assert bridge.handle_message(json.dumps({"operation": "insert", "record": alert_record()}))
        assert store.list_tamper_alerts()[0].id == "a9"
        assert bridge.messages_applied == 1

    @pytest.mark.parametrize("payload", [
        "not json",
        json.dumps({"operation": "INSERT"}),
        json.dumps({"record": alert_record()}),
        json.dumps({"operation": "INSERT", "record": {"id": "a9"}}),
        json.dumps({"operation": "INSERT", "record": alert_record(status="escalated")}),
        json.dumps(["INSERT", "a9"]),
    ])
    def test_drops_malformed(self, store, payload):
        bridge = AlertSyncBridge(store, client=FakeRedis())

        assert bridge.handle_message(payload) is False
        assert bridge.messages_dropped == 1
        assert store.list_tamper_alerts() == []

    def test_ignores_other_tables(self, store):
        bridge = AlertSyncBridge(store, client=FakeRedis())
        payload = {"operation": "INSERT", "table": "batches", "record": alert_record()}

        assert bridge.handle_message(payload) is False
        assert store.list_tamper_alerts() == []


class TestBackgroundAlertSync:
    """Tests for the thread wrapper used by the Flask app."""

    def test_start_and_stop(self, store):
        client = FakeRedis(snapshot={"a9": json.dumps(alert_record())})
        sync = BackgroundAlertSync(AlertSyncBridge(store, client=client))

        sync.start()
        deadline = time.monotonic() + 2.0
        while not (sync.bridge.running and sync._loop.is_running()) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert sync.bridge.running

        sync.stop()

        assert [a.id for a in store.list_tamper_alerts()] == ["a9"]
        assert client.pubsub_client.closed is True
