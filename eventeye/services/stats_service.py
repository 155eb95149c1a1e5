"""
Stats Service - Dashboard totals derived from full namespace scans
"""
from eventeye.schemas.schemas import CertificateStatus, Stats
from eventeye.store import CERT_PREFIX, EVENT_PREFIX, KeyValueStore


class StatsService:
    """Counts events, certificates and delivered certificates"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def compute_stats(self) -> Stats:
        events = self.store.get_by_prefix(EVENT_PREFIX)
        certificates = self.store.get_by_prefix(CERT_PREFIX)
        delivered = sum(
            1 for cert in certificates
            if cert.get("status") == CertificateStatus.delivered.value
        )
        return Stats(
            total_events=len(events),
            total_certificates=len(certificates),
            total_delivered=delivered
        )
