# petalstore/services/draft_store.py
"""Device-local cart draft used while the shopper is signed out."""
import threading
from typing import Dict, List

import redis
from pydantic import TypeAdapter

from petalstore.domain.schemas import CartLine
from petalstore.utils.retry import redis_retry
from petalstore.utils.settings import REDIS_URL, CART_DRAFT_TTL_SECONDS
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)

_lines = TypeAdapter(List[CartLine])


class InMemoryDraftStore:
    def __init__(self):
        self._drafts: Dict[str, List[CartLine]] = {}
        self._lock = threading.Lock()

    def load(self, device_id: str) -> List[CartLine]:
        with self._lock:
            return [line.model_copy() for line in self._drafts.get(device_id, [])]

    def save(self, device_id: str, lines: List[CartLine]) -> None:
        with self._lock:
            self._drafts[device_id] = [line.model_copy() for line in lines]

    def clear(self, device_id: str) -> None:
        with self._lock:
            self._drafts.pop(device_id, None)


class RedisDraftStore:
    """Draft kept under ``cart:draft:<device>``, expires after the TTL."""

    def __init__(self, url: str | None = None, ttl: int = CART_DRAFT_TTL_SECONDS, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def key(device_id: str) -> str:
        return f"cart:draft:{device_id}"

    @redis_retry()
    def load(self, device_id: str) -> List[CartLine]:
        raw = self.redis.get(self.key(device_id))
        if not raw:
            return []
        return _lines.validate_json(raw)

    @redis_retry()
    def save(self, device_id: str, lines: List[CartLine]) -> None:
        key = self.key(device_id)
        if not lines:
            self.redis.delete(key)
            return
        #SET cart:draft:<device> <json> EX <ttl>, every save pushes the expiry out
        self.redis.set(name=key, value=_lines.dump_json(lines).decode(), ex=self.ttl)
        logger.info(f"Draft cart saved for device {device_id} ({len(lines)} lines)")

    @redis_retry()
    def clear(self, device_id: str) -> None:
        self.redis.delete(self.key(device_id))
