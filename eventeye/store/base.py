"""
Key-value store contract shared by all storage backends.

Keys are opaque strings partitioned by prefix convention
(``event:{id}``, ``cert:{eventId}:{certId}``, ``verify:{code}``);
values are JSON-serialisable dicts.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

EVENT_PREFIX = "event:"
CERT_PREFIX = "cert:"
VERIFY_PREFIX = "verify:"


def event_key(event_id: str) -> str:
    return f"{EVENT_PREFIX}{event_id}"


def event_certificates_prefix(event_id: str) -> str:
    return f"{CERT_PREFIX}{event_id}:"


def certificate_key(event_id: str, cert_id: str) -> str:
    return f"{CERT_PREFIX}{event_id}:{cert_id}"


def verification_key(code: str) -> str:
    return f"{VERIFY_PREFIX}{code}"


class KeyValueStore(ABC):
    """
    Namespaced, prefix-scannable persistent mapping.

    Backends raise StoreUnavailableError for any failure of the
    underlying storage. No delete or multi-key transaction is offered;
    set_if_absent is the only atomic primitive.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the value stored under key, or None"""

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any]) -> None:
        """Store value under key, overwriting any previous value"""

    @abstractmethod
    def set_if_absent(self, key: str, value: Dict[str, Any]) -> bool:
        """Atomically store value only if key does not exist yet.

        Returns True when the value was written.
        """

    @abstractmethod
    def get_by_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        """Return every value whose key starts with prefix (literal match)"""

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the backend is reachable"""

    def close(self) -> None:
        """Release backend resources"""
