"""
Issuance Service - Batch certificate issuance with unique verification codes

For every participant a pending Certificate is written under
cert:{eventId}:{certId}, its VerificationRecord is claimed under
verify:{code} with an atomic set-if-absent, and the Certificate is then
marked delivered. The writes are not one transaction: an issuance that
stops part way leaves a pending certificate, which is reported to the
caller (certId on the failure) and listed by IntegrityService, never
repaired into a verifiable one.
"""
import logging
import secrets
import string
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from eventeye.config import Settings
from eventeye.errors import CodeExhaustionError, StoreUnavailableError, ValidationError
from eventeye.schemas.schemas import (
    Certificate,
    CertificateStatus,
    Event,
    FailureReason,
    IssuanceFailure,
    IssuanceResult,
    Participant,
    VerificationRecord,
)
from eventeye.services.event_service import EventService, utcnow
from eventeye.store import KeyValueStore, certificate_key, verification_key

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_verification_code(length: int = 12) -> str:
    """Random code drawn uniformly from A-Z0-9"""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def build_certificate_url(base_url: str, verification_code: str) -> str:
    """Public URL of a certificate; derived from the code only"""
    return f"{base_url.rstrip('/')}/{verification_code}"


def _as_participant(entry: Any) -> Optional[Participant]:
    """Participant from a model or a plain dict, or None when the entry is malformed"""
    if isinstance(entry, Participant):
        return entry
    try:
        return Participant.model_validate(entry)
    except PydanticValidationError:
        return None


def _raw_field(entry: Any, field: str) -> str:
    value = entry.get(field) if isinstance(entry, dict) else None
    return "" if value is None else str(value)


def build_verification_record(certificate: Certificate, event: Event) -> VerificationRecord:
    return VerificationRecord(
        cert_id=certificate.id,
        event_id=event.id,
        participant_name=certificate.participant_name,
        event_name=event.name,
        event_date=event.date,
        organizer=event.organizer
    )


class IssuanceService:
    """Creates Certificate + VerificationRecord pairs for a participant list"""

    def __init__(
        self,
        store: KeyValueStore,
        event_service: EventService,
        certificate_base_url: str = "https://eventeye.app/verify",
        code_length: int = 12,
        max_attempts: int = 5,
        max_workers: int = 1,
        max_batch_size: int = 1000,
        code_generator: Callable[[int], str] = generate_verification_code
    ):
        self.store = store
        self.event_service = event_service
        self.certificate_base_url = certificate_base_url
        self.code_length = code_length
        self.max_attempts = max_attempts
        self.max_workers = max_workers
        self.max_batch_size = max_batch_size
        self.code_generator = code_generator

    @classmethod
    def from_settings(
        cls,
        store: KeyValueStore,
        event_service: EventService,
        settings: Settings
    ) -> "IssuanceService":
        return cls(
            store,
            event_service,
            certificate_base_url=settings.CERTIFICATE_BASE_URL,
            code_length=settings.CODE_LENGTH,
            max_attempts=settings.CODE_MAX_ATTEMPTS,
            max_workers=settings.ISSUANCE_MAX_WORKERS,
            max_batch_size=settings.MAX_PARTICIPANTS_PER_BATCH
        )

    def issue_certificates(
        self,
        event_id: str,
        participants: Sequence[Union[Participant, Dict[str, Any]]]
    ) -> IssuanceResult:
        """
        Issue one certificate per participant, in input order.

        Args:
            event_id: Event the certificates belong to
            participants: Entries with name and email

        Returns:
            IssuanceResult with the issued certificates and the
            per-participant failures

        Raises:
            ValidationError: empty or oversized participant list
            NotFoundError: unknown event (nothing is written)
            StoreUnavailableError: the event could not be read
        """
        if not participants:
            raise ValidationError("At least one participant is required")
        if len(participants) > self.max_batch_size:
            raise ValidationError(
                f"Too many participants ({len(participants)}); "
                f"split the list into batches of at most {self.max_batch_size}"
            )

        event = self.event_service.require_event(event_id)
        entries = list(participants)

        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(
                    lambda item: self._issue_one(event, item[0], item[1]),
                    enumerate(entries)
                ))
        else:
            outcomes = [self._issue_one(event, index, entry) for index, entry in enumerate(entries)]

        result = IssuanceResult()
        for outcome in outcomes:
            if isinstance(outcome, Certificate):
                result.certificates.append(outcome)
            else:
                result.failures.append(outcome)
        result.issued_count = len(result.certificates)

        logger.info(
            f"Issued {result.issued_count}/{len(entries)} certificates for event {event.id}"
            + (f" ({len(result.failures)} failed)" if result.failures else "")
        )
        return result

    def _issue_one(
        self,
        event: Event,
        index: int,
        entry: Union[Participant, Dict[str, Any]]
    ) -> Union[Certificate, IssuanceFailure]:
        participant = _as_participant(entry)
        if participant is None:
            name, email = _raw_field(entry, "name"), _raw_field(entry, "email")
        else:
            name = (participant.name or "").strip()
            email = (participant.email or "").strip()

        def failure(reason: FailureReason, detail: str, cert_id: Optional[str] = None) -> IssuanceFailure:
            return IssuanceFailure(
                index=index, name=name, email=email, reason=reason, detail=detail, cert_id=cert_id
            )

        if participant is None:
            return failure(FailureReason.invalid_participant, "Participant name and email must be text")
        if not name or not email:
            return failure(FailureReason.invalid_participant, "Participant name and email are required")

        return self._issue(event, name, email, failure)

    def _issue(
        self,
        event: Event,
        name: str,
        email: str,
        failure: Callable[..., IssuanceFailure]
    ) -> Union[Certificate, IssuanceFailure]:
        cert_id = str(uuid.uuid4())
        created_at = utcnow()
        cert_key = certificate_key(event.id, cert_id)
        written = False

        try:
            for attempt in range(1, self.max_attempts + 1):
                code = self.code_generator(self.code_length)
                code_key = verification_key(code)

                if self.store.get(code_key) is not None:
                    logger.warning(f"Verification code collision (attempt {attempt}/{self.max_attempts})")
                    continue

                certificate = Certificate(
                    id=cert_id,
                    event_id=event.id,
                    participant_name=name,
                    participant_email=email,
                    verification_code=code,
                    status=CertificateStatus.pending,
                    created_at=created_at,
                    certificate_url=build_certificate_url(self.certificate_base_url, code)
                )
                # Certificate first (pending), then the verification entry
                self.store.set(cert_key, certificate.to_record())
                written = True

                record = build_verification_record(certificate, event)
                if self.store.set_if_absent(code_key, record.to_record()):
                    # Delivery is not modelled; a verifiable certificate is delivered
                    certificate = certificate.model_copy(update={"status": CertificateStatus.delivered})
                    self.store.set(cert_key, certificate.to_record())
                    logger.info(f"Certificate generated for {name} ({email})")
                    return certificate

                logger.warning(
                    f"Verification code claimed concurrently (attempt {attempt}/{self.max_attempts})"
                )

            raise CodeExhaustionError(self.max_attempts)
        except CodeExhaustionError as e:
            reason, error = FailureReason.code_exhausted, e
        except StoreUnavailableError as e:
            reason, error = FailureReason.store_unavailable, e

        # A written record stays behind as pending; the store offers no delete
        logger.error(f"Certificate for {email} not issued: {error}")
        return failure(reason, str(error), cert_id if written else None)


def summarize(result: IssuanceResult, requested: int) -> str:
    """Human-readable batch summary"""
    if not result.failures:
        return f"Successfully generated {result.issued_count} certificates"
    return (
        f"Generated {result.issued_count} of {requested} certificates; "
        f"{len(result.failures)} failed"
    )
