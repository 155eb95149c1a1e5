"""
Integrity Service - Detects and repairs certificates without a verification entry

A certificate is an orphan when:
- it is still pending: its issuance stopped before completing and the
  caller was told it failed (never repaired, reissue instead)
- it is delivered but verify:{code} is missing (repairable)
- verify:{code} points at another certificate (needs manual attention)
"""
import logging
from typing import List, Optional

from eventeye.schemas.schemas import (
    Certificate,
    CertificateStatus,
    OrphanCertificate,
    OrphanReason,
    RepairReport,
)
from eventeye.services.event_service import EventService
from eventeye.services.issuance_service import build_verification_record
from eventeye.store import CERT_PREFIX, KeyValueStore, certificate_key, verification_key

logger = logging.getLogger(__name__)


class IntegrityService:
    """Consistency checks between the cert: and verify: namespaces"""

    def __init__(self, store: KeyValueStore, event_service: EventService):
        self.store = store
        self.event_service = event_service

    def find_orphans(self) -> List[OrphanCertificate]:
        orphans = []
        for record in self.store.get_by_prefix(CERT_PREFIX):
            certificate = Certificate.model_validate(record)
            if certificate.status == CertificateStatus.pending:
                reason = OrphanReason.incomplete_issuance
            else:
                reason = self._verification_problem(certificate)
            if reason is None:
                continue

            orphans.append(OrphanCertificate(
                cert_id=certificate.id,
                event_id=certificate.event_id,
                participant_name=certificate.participant_name,
                verification_code=certificate.verification_code,
                reason=reason
            ))

        if orphans:
            logger.warning(f"Found {len(orphans)} orphaned certificates")
        return orphans

    def _verification_problem(self, certificate: Certificate) -> Optional[OrphanReason]:
        verification = self.store.get(verification_key(certificate.verification_code))
        if verification is None:
            return OrphanReason.missing_record
        if verification.get("certId") != certificate.id:
            return OrphanReason.code_conflict
        return None

    def repair(self) -> RepairReport:
        """Recreate missing verification entries; report the rest"""
        report = RepairReport()

        for orphan in self.find_orphans():
            if orphan.reason != OrphanReason.missing_record:
                report.unrepairable.append(orphan)
                continue

            event = self.event_service.get_event(orphan.event_id)
            record = self.store.get(certificate_key(orphan.event_id, orphan.cert_id))
            if event is None or record is None:
                logger.error(f"Cannot repair certificate {orphan.cert_id}: event or certificate missing")
                report.unrepairable.append(orphan)
                continue

            certificate = Certificate.model_validate(record)
            verification = build_verification_record(certificate, event)
            if self.store.set_if_absent(verification_key(orphan.verification_code), verification.to_record()):
                logger.info(f"Restored verification entry for certificate {orphan.cert_id}")
                report.repaired.append(orphan)
            else:
                report.unrepairable.append(
                    orphan.model_copy(update={"reason": OrphanReason.code_conflict})
                )

        return report
