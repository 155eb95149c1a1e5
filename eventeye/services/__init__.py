"""
Services package - Business logic layer
"""
from eventeye.services.event_service import EventService
from eventeye.services.issuance_service import IssuanceService
from eventeye.services.verification_service import VerificationService
from eventeye.services.stats_service import StatsService
from eventeye.services.integrity_service import IntegrityService
from eventeye.services.identity_service import IdentityService

__all__ = [
    "EventService",
    "IssuanceService",
    "VerificationService",
    "StatsService",
    "IntegrityService",
    "IdentityService",
]
