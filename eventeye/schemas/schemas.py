"""
Pydantic Schemas for the certificate service.
Stored records and request/response models for all endpoints.

Attributes are snake_case in Python and camelCase on the wire
and in the store.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        """JSON-safe dict as persisted in the key-value store"""
        return self.model_dump(mode="json", by_alias=True)


# ============================================
# ENUMS
# ============================================
class EventType(str, Enum):
    free = "free"
    paid = "paid"


class CertificateStatus(str, Enum):
    pending = "pending"
    delivered = "delivered"
    bounced = "bounced"


class FailureReason(str, Enum):
    invalid_participant = "invalid_participant"
    code_exhausted = "code_exhausted"
    store_unavailable = "store_unavailable"


class OrphanReason(str, Enum):
    missing_record = "missing_record"
    code_conflict = "code_conflict"
    incomplete_issuance = "incomplete_issuance"


# ============================================
# STORED RECORDS
# ============================================
class Event(CamelModel):
    """Workshop or activity certificates are issued for."""
    id: str
    name: str
    description: str
    date: str
    organizer: str
    event_type: EventType = EventType.free
    created_at: datetime


class EventWithCount(Event):
    certificate_count: int = 0


class Certificate(CamelModel):
    """One issued, participant-specific completion record."""
    id: str
    event_id: str
    participant_name: str
    participant_email: str
    verification_code: str
    status: CertificateStatus = CertificateStatus.delivered
    created_at: datetime
    certificate_url: str


class VerificationRecord(CamelModel):
    """Public-safe projection of a certificate, keyed by verification code."""
    cert_id: str
    event_id: str
    participant_name: str
    event_name: str
    event_date: str
    organizer: str


class Stats(CamelModel):
    total_events: int = 0
    total_certificates: int = 0
    total_delivered: int = 0


# ============================================
# EVENT SCHEMAS
# ============================================
class CreateEventRequest(CamelModel):
    """Request to create an event."""
    name: str = Field(..., description="Event name")
    description: str = Field(..., description="Event description")
    date: str = Field(..., description="Event date, e.g. 2025-01-01")
    organizer: str = Field(..., description="Organizing person or body")
    event_type: Optional[str] = Field(None, description="'free' (default) or 'paid'")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Workshop",
                "description": "Intro to data pipelines",
                "date": "2025-01-01",
                "organizer": "Acme",
                "eventType": "free"
            }
        }
    )


class EventResponse(CamelModel):
    event: Event


class EventListResponse(CamelModel):
    events: List[EventWithCount]
    stats: Stats


# ============================================
# CERTIFICATE SCHEMAS
# ============================================
class Participant(CamelModel):
    """Participant entry; blank fields are rejected per entry, not per batch."""
    name: Optional[str] = None
    email: Optional[str] = None


class GenerateCertificatesRequest(CamelModel):
    """Request to issue certificates for a list of participants."""
    event_id: str = Field(..., min_length=1, description="Event to issue for")
    participants: List[Participant] = Field(..., description="Participants, in issuance order")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "eventId": "9b2f7c1e-2d4f-4c4e-9d1a-0f6a9e3b1c2d",
                "participants": [
                    {"name": "Alice", "email": "a@x.com"},
                    {"name": "Bob", "email": "b@x.com"}
                ]
            }
        }
    )


class IssuanceFailure(CamelModel):
    """Outcome of one participant that could not be issued.

    cert_id names the pending certificate record left behind when the
    failure happened after the certificate write.
    """
    index: int
    name: str
    email: str
    reason: FailureReason
    detail: str
    cert_id: Optional[str] = None


class IssuanceResult(CamelModel):
    issued_count: int = 0
    certificates: List[Certificate] = Field(default_factory=list)
    failures: List[IssuanceFailure] = Field(default_factory=list)


class GenerateCertificatesResponse(CamelModel):
    success: bool
    generated: int
    message: str
    certificates: List[Certificate] = Field(default_factory=list)
    failures: List[IssuanceFailure] = Field(default_factory=list)


class CertificateListResponse(CamelModel):
    certificates: List[Certificate]


# ============================================
# VERIFICATION SCHEMAS
# ============================================
class VerifyResponse(CamelModel):
    valid: bool
    certificate: Optional[VerificationRecord] = None


class OrphanCertificate(CamelModel):
    """Certificate whose verification entry is missing or owned by another certificate."""
    cert_id: str
    event_id: str
    participant_name: str
    verification_code: str
    reason: OrphanReason


class OrphanListResponse(CamelModel):
    orphans: List[OrphanCertificate]


class RepairReport(CamelModel):
    repaired: List[OrphanCertificate] = Field(default_factory=list)
    unrepairable: List[OrphanCertificate] = Field(default_factory=list)


# ============================================
# AUTH SCHEMAS
# ============================================
class SignupRequest(CamelModel):
    name: str
    email: str
    password: str


class LoginRequest(CamelModel):
    email: str
    password: str


class UserResponse(CamelModel):
    user: Dict[str, Any]


class SessionResponse(CamelModel):
    session: Dict[str, Any]
