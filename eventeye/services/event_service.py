"""
Event Service - Event registry and per-event certificate listings
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from eventeye.errors import NotFoundError, ValidationError
from eventeye.schemas.schemas import Certificate, Event, EventType, EventWithCount
from eventeye.store import (
    EVENT_PREFIX,
    KeyValueStore,
    event_certificates_prefix,
    event_key,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventService:
    """CRUD over Event records stored under event:{id}"""

    REQUIRED_FIELDS = ("name", "description", "date", "organizer")

    def __init__(self, store: KeyValueStore):
        self.store = store

    def create_event(
        self,
        name: str,
        description: str,
        date: str,
        organizer: str,
        event_type: Optional[str] = None
    ) -> Event:
        """Create and persist a new event"""
        values = {
            "name": name,
            "description": description,
            "date": date,
            "organizer": organizer
        }
        missing = [field for field in self.REQUIRED_FIELDS if not (values[field] or "").strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        if not event_type:
            event_type = EventType.free.value
        try:
            parsed_type = EventType(event_type)
        except ValueError:
            raise ValidationError(
                f"Invalid eventType '{event_type}' (expected one of: free, paid)"
            )

        event = Event(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            date=date,
            organizer=organizer,
            event_type=parsed_type,
            created_at=utcnow()
        )
        self.store.set(event_key(event.id), event.to_record())

        logger.info(f"Event created: {event.id} ({event.name})")
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        """Get an event by id, or None"""
        record = self.store.get(event_key(event_id))
        return Event.model_validate(record) if record is not None else None

    def require_event(self, event_id: str) -> Event:
        """Get an event by id or raise NotFoundError"""
        event = self.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def list_events(self) -> List[EventWithCount]:
        """
        All events, newest first, each annotated with its certificate count.

        One prefix scan per event; fine for modest numbers of events.
        """
        events = [Event.model_validate(record) for record in self.store.get_by_prefix(EVENT_PREFIX)]

        annotated = [
            EventWithCount(
                **event.model_dump(),
                certificate_count=len(self.store.get_by_prefix(event_certificates_prefix(event.id)))
            )
            for event in events
        ]
        annotated.sort(key=lambda e: e.created_at, reverse=True)
        return annotated

    def list_certificates(self, event_id: str) -> List[Certificate]:
        """Certificates issued for an event, newest first"""
        certificates = [
            Certificate.model_validate(record)
            for record in self.store.get_by_prefix(event_certificates_prefix(event_id))
        ]
        certificates.sort(key=lambda c: c.created_at, reverse=True)
        return certificates
