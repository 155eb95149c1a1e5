"""
FastAPI dependencies for the certificate service
"""
from functools import lru_cache
from typing import Any, Dict, Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from eventeye.config import settings
from eventeye.errors import AuthenticationError
from eventeye.services import (
    EventService,
    IdentityService,
    IntegrityService,
    IssuanceService,
    StatsService,
    VerificationService,
)
from eventeye.store import KeyValueStore, build_store

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_store() -> KeyValueStore:
    """Process-wide key-value store"""
    return build_store(settings)


@lru_cache()
def get_identity_service() -> IdentityService:
    return IdentityService.from_settings(settings)


def get_event_service(store: KeyValueStore = Depends(get_store)) -> EventService:
    return EventService(store)


def get_issuance_service(
    store: KeyValueStore = Depends(get_store),
    event_service: EventService = Depends(get_event_service)
) -> IssuanceService:
    return IssuanceService.from_settings(store, event_service, settings)


def get_verification_service(store: KeyValueStore = Depends(get_store)) -> VerificationService:
    return VerificationService(store)


def get_stats_service(store: KeyValueStore = Depends(get_store)) -> StatsService:
    return StatsService(store)


def get_integrity_service(
    store: KeyValueStore = Depends(get_store),
    event_service: EventService = Depends(get_event_service)
) -> IntegrityService:
    return IntegrityService(store, event_service)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IdentityService = Depends(get_identity_service)
) -> Dict[str, Any]:
    """Resolve the bearer token through the identity provider"""
    if not settings.AUTH_ENABLED:
        return {"id": "anonymous"}

    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    user = await identity.get_user(credentials.credentials)
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return user
