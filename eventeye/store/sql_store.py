"""
SQL key-value store - one row per key in the kv_store table
"""
import logging
from typing import Any, Dict, List, Optional
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from eventeye.db.models import KVEntry
from eventeye.errors import StoreUnavailableError
from eventeye.store.base import KeyValueStore

logger = logging.getLogger(__name__)


class SQLKeyValueStore(KeyValueStore):
    """Key-value store backed by a relational table through SQLAlchemy"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _session(self) -> Session:
        return self.session_factory()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            with self._session() as db:
                entry = db.get(KVEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Store read failed for {key}: {e}")
            raise StoreUnavailableError(f"Store read failed: {e}") from e

    def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            with self._session() as db:
                db.merge(KVEntry(key=key, value=value))
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Store write failed for {key}: {e}")
            raise StoreUnavailableError(f"Store write failed: {e}") from e

    def set_if_absent(self, key: str, value: Dict[str, Any]) -> bool:
        try:
            with self._session() as db:
                db.add(KVEntry(key=key, value=value))
                try:
                    db.commit()
                except IntegrityError:
                    # Primary key already taken
                    db.rollback()
                    return False
                return True
        except SQLAlchemyError as e:
            logger.error(f"Store conditional write failed for {key}: {e}")
            raise StoreUnavailableError(f"Store write failed: {e}") from e

    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        try:
            with self._session() as db:
                rows = db.execute(
                    select(KVEntry.key, KVEntry.value).where(
                        KVEntry.key.startswith(prefix, autoescape=True)
                    )
                ).all()
        except SQLAlchemyError as e:
            logger.error(f"Store scan failed for prefix {prefix}: {e}")
            raise StoreUnavailableError(f"Store scan failed: {e}") from e

        # LIKE is case-insensitive on some databases
        return [value for key, value in rows if key.startswith(prefix)]

    def ping(self) -> bool:
        try:
            with self._session() as db:
                db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Store ping failed: {e}")
            return False
