"""
Issuance engine tests: unique codes, ordered writes, per-participant
outcomes and concurrent batches.
"""
import itertools
import random
import re
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.orm import sessionmaker

from eventeye.db.database import build_engine, init_db
from eventeye.errors import NotFoundError, StoreUnavailableError, ValidationError
from eventeye.schemas.schemas import CertificateStatus, FailureReason, OrphanReason, Participant
from eventeye.services.event_service import EventService
from eventeye.services.integrity_service import IntegrityService
from eventeye.services.issuance_service import (
    CODE_ALPHABET,
    IssuanceService,
    build_certificate_url,
    generate_verification_code,
)
from eventeye.services.stats_service import StatsService
from eventeye.store.sql_store import SQLKeyValueStore

from tests.conftest import MemoryStore

ALICE_BOB = [
    Participant(name="Alice", email="a@x.com"),
    Participant(name="Bob", email="b@x.com"),
]


def scripted_codes(*codes):
    """Code generator replaying the given codes, then unique fallbacks"""
    sequence = itertools.chain(codes, (f"FALLBACK{n:04d}" for n in itertools.count()))
    lock = threading.Lock()

    def generate(length):
        with lock:
            return next(sequence)

    return generate


# ══════════════════════════════════════════════════════════════
# CODES
# ══════════════════════════════════════════════════════════════

def test_generated_code_shape():
    assert CODE_ALPHABET == "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    for _ in range(200):
        assert re.fullmatch(r"[A-Z0-9]{12}", generate_verification_code())
    assert len(generate_verification_code(8)) == 8


def test_certificate_url_uses_code_only():
    assert build_certificate_url("https://eventeye.app/verify/", "ABC123DEF456") == \
        "https://eventeye.app/verify/ABC123DEF456"


# ══════════════════════════════════════════════════════════════
# HAPPY PATH
# ══════════════════════════════════════════════════════════════

def test_issues_one_certificate_and_record_per_participant(issuance_service, store, workshop):
    result = issuance_service.issue_certificates(workshop.id, ALICE_BOB)

    assert result.issued_count == 2
    assert result.failures == []
    assert len(store.get_by_prefix(f"cert:{workshop.id}:")) == 2
    assert len(store.get_by_prefix("verify:")) == 2

    for participant, certificate in zip(ALICE_BOB, result.certificates):
        assert certificate.participant_name == participant.name
        assert certificate.participant_email == participant.email
        assert certificate.event_id == workshop.id
        assert certificate.status == CertificateStatus.delivered
        assert re.fullmatch(r"[A-Z0-9]{12}", certificate.verification_code)
        assert certificate.certificate_url.endswith(f"/{certificate.verification_code}")
        assert certificate.id not in certificate.certificate_url

        stored = store.get(f"cert:{workshop.id}:{certificate.id}")
        assert stored["verificationCode"] == certificate.verification_code
        assert stored["status"] == "delivered"

        record = store.get(f"verify:{certificate.verification_code}")
        assert record == {
            "certId": certificate.id,
            "eventId": workshop.id,
            "participantName": participant.name,
            "eventName": "Workshop",
            "eventDate": "2025-01-01",
            "organizer": "Acme",
        }


def test_accepts_plain_dicts(issuance_service, workshop):
    result = issuance_service.issue_certificates(workshop.id, [{"name": "Alice", "email": "a@x.com"}])
    assert result.issued_count == 1


def test_codes_unique_across_batches_and_events(issuance_service, event_service, workshop):
    other = event_service.create_event("Talk", "D", "2025-02-01", "Acme")
    participants = [Participant(name=f"P{i}", email=f"p{i}@x.com") for i in range(25)]

    codes = []
    for event in (workshop, other, workshop):
        result = issuance_service.issue_certificates(event.id, participants)
        codes.extend(c.verification_code for c in result.certificates)

    assert len(codes) == 75
    assert len(set(codes)) == 75


def test_reissuing_same_participants_creates_new_certificates(issuance_service, store, workshop):
    # No deduplication key exists: a repeated batch is a new batch
    issuance_service.issue_certificates(workshop.id, ALICE_BOB)
    issuance_service.issue_certificates(workshop.id, ALICE_BOB)

    assert len(store.get_by_prefix(f"cert:{workshop.id}:")) == 4
    assert len(store.get_by_prefix("verify:")) == 4


# ══════════════════════════════════════════════════════════════
# PRECONDITIONS
# ══════════════════════════════════════════════════════════════

def test_unknown_event_writes_nothing(issuance_service, store):
    with pytest.raises(NotFoundError):
        issuance_service.issue_certificates("no-such-event", ALICE_BOB)

    assert store.get_by_prefix("cert:") == []
    assert store.get_by_prefix("verify:") == []


def test_empty_participant_list_rejected(issuance_service, workshop):
    with pytest.raises(ValidationError):
        issuance_service.issue_certificates(workshop.id, [])


def test_oversized_batch_rejected(store, event_service, workshop):
    service = IssuanceService(store, event_service, max_batch_size=2)
    with pytest.raises(ValidationError):
        service.issue_certificates(workshop.id, ALICE_BOB + ALICE_BOB[:1])


def test_malformed_entries_rejected_individually(issuance_service, store, workshop):
    participants = [
        Participant(name="Alice", email="a@x.com"),
        Participant(name="", email="nobody@x.com"),
        Participant(name="Carol", email=None),
        Participant(name="  Dan  ", email=" d@x.com "),
    ]

    result = issuance_service.issue_certificates(workshop.id, participants)

    assert result.issued_count == 2
    assert [c.participant_name for c in result.certificates] == ["Alice", "Dan"]
    assert result.certificates[1].participant_email == "d@x.com"
    assert [(f.index, f.reason) for f in result.failures] == [
        (1, FailureReason.invalid_participant),
        (2, FailureReason.invalid_participant),
    ]
    assert len(store.get_by_prefix("cert:")) == 2


def test_entries_of_the_wrong_type_rejected_individually(issuance_service, store, workshop):
    participants = [
        {"name": "Alice", "email": "a@x.com"},
        {"name": 42, "email": "n@x.com"},
        {"name": "Eve", "email": ["e@x.com"]},
        "Bob",
    ]

    result = issuance_service.issue_certificates(workshop.id, participants)

    assert [c.participant_name for c in result.certificates] == ["Alice"]
    assert [(f.index, f.name, f.reason) for f in result.failures] == [
        (1, "42", FailureReason.invalid_participant),
        (2, "Eve", FailureReason.invalid_participant),
        (3, "", FailureReason.invalid_participant),
    ]
    assert len(store.get_by_prefix("cert:")) == 1


# ══════════════════════════════════════════════════════════════
# COLLISIONS AND FAILURES
# ══════════════════════════════════════════════════════════════

def test_collision_with_existing_code_is_retried(store, event_service, workshop):
    store.set("verify:TAKENTAKEN00", {"certId": "someone-else"})
    service = IssuanceService(
        store, event_service, code_generator=scripted_codes("TAKENTAKEN00", "FRESHCODE001")
    )

    result = service.issue_certificates(workshop.id, ALICE_BOB[:1])

    assert result.certificates[0].verification_code == "FRESHCODE001"
    assert store.get("verify:TAKENTAKEN00") == {"certId": "someone-else"}


def test_exhausted_codes_fail_item_and_batch_continues(store, event_service, workshop):
    store.set("verify:TAKENTAKEN00", {"certId": "someone-else"})
    service = IssuanceService(
        store,
        event_service,
        max_attempts=3,
        code_generator=scripted_codes("TAKENTAKEN00", "TAKENTAKEN00", "TAKENTAKEN00", "BOBSCODE0001")
    )

    result = service.issue_certificates(workshop.id, ALICE_BOB)

    assert result.issued_count == 1
    assert result.certificates[0].participant_name == "Bob"
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert (failure.index, failure.name, failure.reason) == (0, "Alice", FailureReason.code_exhausted)
    # Nothing was written for Alice: every candidate was rejected before the certificate write
    assert len(store.get_by_prefix("cert:")) == 1


class LosingRaceStore(MemoryStore):
    """Reports verify: keys as free, as if another writer claimed them right after the check"""

    def get(self, key):
        if key.startswith("verify:"):
            return None
        return super().get(key)


def test_lost_claim_rewrites_certificate_with_new_code():
    store = LosingRaceStore()
    event_service = EventService(store)
    event = event_service.create_event("Workshop", "D", "2025-01-01", "Acme")
    service = IssuanceService(
        store, event_service, code_generator=scripted_codes("SHAREDCODE01", "SHAREDCODE01", "BOBSCODE0001")
    )

    result = service.issue_certificates(event.id, ALICE_BOB)

    alice, bob = result.certificates
    assert alice.verification_code == "SHAREDCODE01"
    assert bob.verification_code == "BOBSCODE0001"
    assert store.get("verify:SHAREDCODE01")["certId"] == alice.id
    assert store.get("verify:BOBSCODE0001")["certId"] == bob.id
    assert store.get(f"cert:{event.id}:{bob.id}")["verificationCode"] == "BOBSCODE0001"
    assert len(store.get_by_prefix("cert:")) == 2


class FlakyStore(MemoryStore):
    """Fails certificate writes for one participant"""

    def __init__(self, failing_name):
        super().__init__()
        self.failing_name = failing_name

    def set(self, key, value):
        if key.startswith("cert:") and value.get("participantName") == self.failing_name:
            raise StoreUnavailableError("Store write failed: connection reset")
        super().set(key, value)


def test_store_failure_is_reported_per_participant():
    store = FlakyStore("Alice")
    event_service = EventService(store)
    event = event_service.create_event("Workshop", "D", "2025-01-01", "Acme")

    result = IssuanceService(store, event_service).issue_certificates(event.id, ALICE_BOB)

    assert [c.participant_name for c in result.certificates] == ["Bob"]
    assert [(f.name, f.reason) for f in result.failures] == [("Alice", FailureReason.store_unavailable)]
    assert "connection reset" in result.failures[0].detail
    # The write itself failed, so no record was left behind
    assert result.failures[0].cert_id is None
    assert len(store.get_by_prefix("verify:")) == 1


class ClaimAlwaysLostStore(MemoryStore):
    """Every verification code is taken by another writer after the early check"""

    def set_if_absent(self, key, value):
        if key.startswith("verify:"):
            return False
        return super().set_if_absent(key, value)


def test_exhaustion_after_certificate_write_leaves_pending_record():
    store = ClaimAlwaysLostStore()
    event_service = EventService(store)
    event = event_service.create_event("Workshop", "D", "2025-01-01", "Acme")
    service = IssuanceService(store, event_service, max_attempts=3)

    result = service.issue_certificates(event.id, ALICE_BOB[:1])

    assert result.issued_count == 0
    failure = result.failures[0]
    assert failure.reason == FailureReason.code_exhausted

    # The left-over record is named on the failure and never counts as delivered
    records = store.get_by_prefix("cert:")
    assert [r["id"] for r in records] == [failure.cert_id]
    assert records[0]["status"] == "pending"
    assert store.get_by_prefix("verify:") == []
    assert StatsService(store).compute_stats().total_delivered == 0

    integrity = IntegrityService(store, event_service)
    assert [(o.cert_id, o.reason) for o in integrity.find_orphans()] == [
        (failure.cert_id, OrphanReason.incomplete_issuance)
    ]
    report = integrity.repair()
    assert report.repaired == []
    assert store.get_by_prefix("verify:") == []


class ClaimFailsStore(MemoryStore):
    """Verification writes fail after the certificate was stored"""

    def set_if_absent(self, key, value):
        if key.startswith("verify:"):
            raise StoreUnavailableError("Store write failed: connection reset")
        return super().set_if_absent(key, value)


def test_store_failure_after_certificate_write_names_the_record():
    store = ClaimFailsStore()
    event_service = EventService(store)
    event = event_service.create_event("Workshop", "D", "2025-01-01", "Acme")

    result = IssuanceService(store, event_service).issue_certificates(event.id, ALICE_BOB)

    assert result.issued_count == 0
    assert [f.reason for f in result.failures] == [FailureReason.store_unavailable] * 2
    records = {r["id"]: r for r in store.get_by_prefix("cert:")}
    assert set(records) == {f.cert_id for f in result.failures}
    assert {r["status"] for r in records.values()} == {"pending"}


class PromotionFailsStore(MemoryStore):
    """Fails the write that marks a certificate delivered"""

    def set(self, key, value):
        if key.startswith("cert:") and value.get("status") == "delivered":
            raise StoreUnavailableError("Store write failed: timeout")
        super().set(key, value)


def test_failed_promotion_is_reported_with_the_record():
    store = PromotionFailsStore()
    event_service = EventService(store)
    event = event_service.create_event("Workshop", "D", "2025-01-01", "Acme")

    result = IssuanceService(store, event_service).issue_certificates(event.id, ALICE_BOB[:1])

    failure = result.failures[0]
    assert failure.reason == FailureReason.store_unavailable
    assert store.get(f"cert:{event.id}:{failure.cert_id}")["status"] == "pending"
    assert IntegrityService(store, event_service).repair().unrepairable[0].reason == \
        OrphanReason.incomplete_issuance


# ══════════════════════════════════════════════════════════════
# CONCURRENCY
# ══════════════════════════════════════════════════════════════

def narrow_codes(pool_size):
    """Random codes from a small pool so concurrent issuers collide often"""
    pool = [f"CODE{n:08d}" for n in range(pool_size)]
    return lambda length: random.choice(pool)


def test_concurrent_batches_never_share_a_code():
    store = MemoryStore()
    event_service = EventService(store)
    events = [event_service.create_event(f"E{i}", "D", "2025-01-01", "Acme") for i in range(4)]
    service = IssuanceService(
        store, event_service, max_attempts=200, max_workers=4, code_generator=narrow_codes(400)
    )
    participants = [Participant(name=f"P{i}", email=f"p{i}@x.com") for i in range(30)]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda e: service.issue_certificates(e.id, participants), events))

    certificates = [c for r in results for c in r.certificates]
    codes = [c.verification_code for c in certificates]
    assert len(codes) == len(set(codes))
    assert sum(r.issued_count + len(r.failures) for r in results) == 120

    # Every issued certificate owns its verification entry
    for certificate in certificates:
        assert store.get(f"verify:{certificate.verification_code}")["certId"] == certificate.id


def test_parallel_workers_keep_input_order():
    store = MemoryStore()
    event_service = EventService(store)
    workshop = event_service.create_event("Workshop", "D", "2025-01-01", "Acme")
    service = IssuanceService(store, event_service, max_workers=4)
    participants = [Participant(name=f"P{i}", email=f"p{i}@x.com") for i in range(12)]

    result = service.issue_certificates(workshop.id, participants)

    assert [c.participant_name for c in result.certificates] == [p.name for p in participants]


def test_concurrent_batches_on_sqlite_file_store(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'issuance.db'}")
    init_db(bind=engine)
    store = SQLKeyValueStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    event_service = EventService(store)
    events = [event_service.create_event(f"E{i}", "D", "2025-01-01", "Acme") for i in range(2)]
    service = IssuanceService(
        store, event_service, max_attempts=200, max_workers=2, code_generator=narrow_codes(60)
    )
    participants = [Participant(name=f"P{i}", email=f"p{i}@x.com") for i in range(15)]

    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(lambda e: service.issue_certificates(e.id, participants), events))

        certificates = [c for r in results for c in r.certificates]
        codes = [c.verification_code for c in certificates]
        assert len(codes) == len(set(codes))
        for certificate in certificates:
            assert store.get(f"verify:{certificate.verification_code}")["certId"] == certificate.id
    finally:
        engine.dispose()
