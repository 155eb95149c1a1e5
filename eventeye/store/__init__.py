"""
Key-value storage backends
"""
import logging

from eventeye.config import Settings
from eventeye.store.base import (
    CERT_PREFIX,
    EVENT_PREFIX,
    VERIFY_PREFIX,
    KeyValueStore,
    certificate_key,
    event_certificates_prefix,
    event_key,
    verification_key,
)

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> KeyValueStore:
    """Create the store selected by STORE_BACKEND"""
    backend = settings.STORE_BACKEND.lower()

    if backend == "redis":
        from eventeye.store.redis_store import RedisKeyValueStore

        logger.info("Using Redis key-value store")
        return RedisKeyValueStore.from_url(settings.REDIS_URL, namespace=settings.REDIS_KEY_PREFIX)

    if backend == "sql":
        from eventeye.db.database import SessionLocal
        from eventeye.store.sql_store import SQLKeyValueStore

        logger.info("Using SQL key-value store")
        return SQLKeyValueStore(SessionLocal)

    raise ValueError(f"Unknown STORE_BACKEND '{settings.STORE_BACKEND}' (expected 'sql' or 'redis')")


__all__ = [
    "CERT_PREFIX",
    "EVENT_PREFIX",
    "VERIFY_PREFIX",
    "KeyValueStore",
    "build_store",
    "certificate_key",
    "event_certificates_prefix",
    "event_key",
    "verification_key",
]
