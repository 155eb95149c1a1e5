"""
Redis key-value store - JSON strings under a namespaced key
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional
import redis

from eventeye.errors import StoreUnavailableError
from eventeye.store.base import KeyValueStore

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def escape_glob(value: str) -> str:
    """Escape Redis MATCH glob characters so they match literally"""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisKeyValueStore(KeyValueStore):
    """Key-value store backed by Redis strings"""

    SCAN_BATCH = 500

    def __init__(self, client: redis.Redis, namespace: str = ""):
        self._redis = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "") -> "RedisKeyValueStore":
        return cls(redis.from_url(url, decode_responses=True), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Redis read failed for {key}: {e}")
            raise StoreUnavailableError(f"Store read failed: {e}") from e
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self._redis.set(self._key(key), json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"Redis write failed for {key}: {e}")
            raise StoreUnavailableError(f"Store write failed: {e}") from e

    def set_if_absent(self, key: str, value: Dict[str, Any]) -> bool:
        try:
            written = self._redis.set(self._key(key), json.dumps(value), nx=True)
        except redis.RedisError as e:
            logger.error(f"Redis conditional write failed for {key}: {e}")
            raise StoreUnavailableError(f"Store write failed: {e}") from e
        return bool(written)

    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        full_prefix = self._key(prefix)
        pattern = f"{escape_glob(full_prefix)}*"
        try:
            keys = [
                k for k in self._redis.scan_iter(match=pattern, count=self.SCAN_BATCH)
                if k.startswith(full_prefix)
            ]
            values: List[Dict[str, Any]] = []
            for start in range(0, len(keys), self.SCAN_BATCH):
                chunk = keys[start:start + self.SCAN_BATCH]
                # A key deleted between SCAN and MGET comes back as None
                values.extend(json.loads(raw) for raw in self._redis.mget(chunk) if raw is not None)
            return values
        except redis.RedisError as e:
            logger.error(f"Redis scan failed for prefix {prefix}: {e}")
            raise StoreUnavailableError(f"Store scan failed: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        self._redis.close()
