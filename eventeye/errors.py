"""
Error taxonomy for the certificate service.

Every error carries the HTTP status it maps to at the API boundary.
"""
from typing import Optional


class EventEyeError(Exception):
    """Base class for all service errors"""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(EventEyeError):
    """Missing or malformed required field (user-correctable)"""

    status_code = 400


class NotFoundError(EventEyeError):
    """Referenced event or verification code does not exist"""

    status_code = 404


class CodeExhaustionError(EventEyeError):
    """No free verification code found within the allowed attempts.

    Reported as a failed batch item, never as a request failure.
    """

    status_code = 500

    def __init__(self, attempts: int):
        super().__init__(f"No unique verification code after {attempts} attempts")
        self.attempts = attempts


class StoreUnavailableError(EventEyeError):
    """The persistence layer failed; the request may be retried"""

    status_code = 503


class AuthenticationError(EventEyeError):
    """Missing or invalid bearer credential"""

    status_code = 401


class IdentityProviderError(EventEyeError):
    """The identity provider rejected the request"""

    status_code = 400


class IdentityUnavailableError(EventEyeError):
    """The identity provider could not be reached"""

    status_code = 503
