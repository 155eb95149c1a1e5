"""
API routers package
"""
from eventeye.api import (
    auth,
    events,
    certificates,
    verify,
    integrity,
    system
)

__all__ = [
    "auth",
    "events",
    "certificates",
    "verify",
    "integrity",
    "system"
]
