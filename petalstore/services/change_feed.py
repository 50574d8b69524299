# petalstore/services/change_feed.py
"""Publish/subscribe over table changes.

Records are published as plain dicts after each insert/update, subscribers
filter by table, event and equality on record fields. Delivery is at most
once; readers that must not miss rows also poll.
"""
import json
import threading
from typing import Callable, Dict, List

import redis

from petalstore.utils.retry import redis_retry
from petalstore.utils.settings import REDIS_URL
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[dict], None]
Unsubscribe = Callable[[], None]


def _matches(record: dict, filters: Dict[str, object] | None) -> bool:
    if not filters:
        return True
    return all(record.get(key) == value for key, value in filters.items())


class InMemoryChangeFeed:
    """Process-local feed, callbacks run synchronously in the publisher."""

    def __init__(self):
        self._subs: List[tuple] = []
        self._lock = threading.Lock()

    def publish(self, table: str, event: str, record: dict) -> None:
        with self._lock:
            subs = list(self._subs)
        for sub_table, sub_event, filters, callback in subs:
            if sub_table == table and sub_event == event and _matches(record, filters):
                callback(record)

    def subscribe(
        self,
        table: str,
        callback: Callback,
        event: str = "INSERT",
        filters: Dict[str, object] | None = None,
    ) -> Unsubscribe:
        entry = (table, event, filters, callback)
        with self._lock:
            self._subs.append(entry)

        def unsubscribe():
            with self._lock:
                if entry in self._subs:
                    self._subs.remove(entry)

        return unsubscribe


class RedisChangeFeed:
    """Feed over Redis pub/sub, one channel per table: ``changes:<table>``."""

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)

    @staticmethod
    def channel(table: str) -> str:
        return f"changes:{table}"

    @redis_retry()
    def publish(self, table: str, event: str, record: dict) -> None:
        payload = json.dumps({"event": event, "record": record}, default=str)
        self.redis.publish(self.channel(table), payload)

    def subscribe(
        self,
        table: str,
        callback: Callback,
        event: str = "INSERT",
        filters: Dict[str, object] | None = None,
    ) -> Unsubscribe:
        def handler(message):
            try:
                payload = json.loads(message["data"])
            except (TypeError, ValueError):
                logger.warning(f"Skipping malformed change on {table}")
                return
            record = payload.get("record") or {}
            if payload.get("event") == event and _matches(record, filters):
                callback(record)

        pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{self.channel(table): handler})
        worker = pubsub.run_in_thread(sleep_time=0.1, daemon=True)
        logger.info(f"Subscribed to {self.channel(table)} ({event})")

        def unsubscribe():
            worker.stop()
            pubsub.close()

        return unsubscribe
