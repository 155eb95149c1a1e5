"""
Verification Service - Public lookup of certificates by verification code
"""
import logging

from eventeye.errors import NotFoundError
from eventeye.schemas.schemas import VerificationRecord
from eventeye.store import KeyValueStore, verification_key

logger = logging.getLogger(__name__)


class VerificationService:
    """Resolves verification codes to their public VerificationRecord"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def verify(self, code: str) -> VerificationRecord:
        """Exact-match lookup of verify:{code}"""
        record = self.store.get(verification_key(code))
        if record is None:
            logger.info(f"Verification failed for unknown code {code!r}")
            raise NotFoundError("Certificate not found")
        return VerificationRecord.model_validate(record)
