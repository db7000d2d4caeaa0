"""
Tamper Alert Sync - Redis Pub/Sub Bridge

Optional realtime link between the store's tamper alert collection and an
external store. On start it loads a snapshot from a Redis hash (alert id ->
JSON record), then listens on a pub/sub channel for change notifications:

    {"operation": "INSERT" | "UPDATE" | "DELETE",
     "table": "tamper_alerts",
     "record": {...}}

Notifications are merged into the store by alert id, last write wins. Any
failure on this path is logged and dropped; the store keeps serving its
last known state.
"""

import asyncio
import json
import logging
import threading
from typing import Any, Dict, Optional

import redis.asyncio as aioredis

from .records import TamperAlert
from .store import SupplyChainStore

logger = logging.getLogger(__name__)

ALERT_TABLE = "tamper_alerts"


class AlertSyncBridge:
    """
    Long-lived subscription feeding external alert changes into the store.

    ``start`` returns False instead of raising when the feed is unreachable.
    ``stop`` cancels the listener task and releases the pub/sub connection.
    """

    def __init__(
        self,
        store: SupplyChainStore,
        redis_url: str = "redis://localhost:6379",
        channel: str = ALERT_TABLE,
        snapshot_key: str = ALERT_TABLE,
        client: Optional[Any] = None,
    ):
        self.store = store
        self.redis_url = redis_url
        self.channel = channel
        self.snapshot_key = snapshot_key
        self._redis = client
        self._pubsub = None
        self._task: Optional[asyncio.Task] = None
        self.messages_applied = 0
        self.messages_dropped = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        if self.running:
            return True

        try:
            if self._redis is None:
                self._redis = aioredis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            await self._load_snapshot()
            self._pubsub = self._redis.pubsub()
            await self._pubsub.subscribe(self.channel)
        except Exception as e:
            logger.warning(f"Alert sync unavailable ({self.redis_url}): {e}")
            await self._release()
            return False

        self._task = asyncio.create_task(self._listen())
        logger.info(f"Alert sync subscribed to {self.channel}")
        return True

    async def stop(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self._release()
        logger.info(f"Alert sync stopped for {self.channel}")

    async def _release(self):
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self.channel)
                await self._pubsub.aclose()
            except Exception as e:
                logger.debug(f"Error closing alert pub/sub: {e}")
            self._pubsub = None

    async def _load_snapshot(self):
        rows = await self._redis.hgetall(self.snapshot_key)
        if not rows:
            return

        alerts = []
        for alert_id, raw in rows.items():
            try:
                alerts.append(TamperAlert.from_dict(json.loads(raw)))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed alert {alert_id} in snapshot: {e}")
        self.store.replace_alerts(alerts)

    async def _listen(self):
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                self.handle_message(message.get("data"))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Alert sync listener stopped: {e}")

    def handle_message(self, data: Any) -> bool:
        """Merge one notification into the store. Returns False when it was dropped."""
        try:
            payload: Dict[str, Any] = json.loads(data) if isinstance(data, (str, bytes)) else data
            if payload.get("table", ALERT_TABLE) != ALERT_TABLE:
                self.messages_dropped += 1
                return False

            operation = str(payload.get("operation", "")).upper()
            record = payload.get("record") or payload.get("new") or payload.get("old")
            if not operation or not record:
                raise ValueError("notification missing operation or record")

            self.store.merge_alert(operation, record)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Dropping alert notification: {e}")
            self.messages_dropped += 1
            return False

        self.messages_applied += 1
        return True


class BackgroundAlertSync:
    """Runs an ``AlertSyncBridge`` on its own event loop in a daemon thread."""

    def __init__(self, bridge: AlertSyncBridge):
        self.bridge = bridge
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is not None:
            return

        self._loop = asyncio.new_event_loop()

        def run():
            asyncio.set_event_loop(self._loop)
            if self._loop.run_until_complete(self.bridge.start()):
                self._loop.run_forever()
            self._loop.close()

        self._thread = threading.Thread(target=run, name="alert-sync", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        if self._thread is None or self._loop is None:
            return

        if self._loop.is_running():
            future = asyncio.run_coroutine_threadsafe(self.bridge.stop(), self._loop)
            try:
                future.result(timeout)
            except Exception as e:
                logger.warning(f"Alert sync did not stop cleanly: {e}")
            self._loop.call_soon_threadsafe(self._loop.stop)

        self._thread.join(timeout)
        self._thread = None
        self._loop = None
