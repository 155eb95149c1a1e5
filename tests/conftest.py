"""
Shared fixtures: an in-memory SQLite key-value store per test and a
FastAPI test client wired to it.
"""
import os
import threading
from typing import Any, Dict, List, Optional

# Must be set before eventeye.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORE_BACKEND"] = "sql"
os.environ["AUTH_ENABLED"] = "true"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from eventeye.db.database import build_engine, init_db  # noqa: E402
from eventeye.dependencies import get_current_user, get_store  # noqa: E402
from eventeye.main import app  # noqa: E402
from eventeye.services import EventService, IssuanceService  # noqa: E402
from eventeye.store import KeyValueStore  # noqa: E402
from eventeye.store.sql_store import SQLKeyValueStore  # noqa: E402


class MemoryStore(KeyValueStore):
    """Thread-safe dict store for exercising concurrent issuance"""

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        with self._lock:
            self._data[key] = value

    def set_if_absent(self, key: str, value: Dict[str, Any]) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [v for k, v in self._data.items() if k.startswith(prefix)]

    def ping(self) -> bool:
        return True


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SQLKeyValueStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def event_service(store):
    return EventService(store)


@pytest.fixture
def issuance_service(store, event_service):
    return IssuanceService(store, event_service)


@pytest.fixture
def workshop(event_service):
    return event_service.create_event(
        name="Workshop",
        description="Hands-on introduction",
        date="2025-01-01",
        organizer="Acme"
    )


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: {"id": "user-1", "email": "admin@x.com"}
    yield TestClient(app)
    app.dependency_overrides.clear()
