"""
Identity Service - Client for the external identity provider

Speaks the Supabase GoTrue auth API: account creation through the admin
endpoint, password sign-in and bearer-token resolution.
"""
import httpx
import logging
from typing import Dict, Any, Optional

from eventeye.config import Settings
from eventeye.errors import IdentityProviderError, IdentityUnavailableError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Best-effort error text from a provider response"""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Identity provider returned {response.status_code}"
    if isinstance(body, dict):
        for field in ("msg", "message", "error_description", "error"):
            if body.get(field):
                return str(body[field])
    return f"Identity provider returned {response.status_code}"


class IdentityService:
    """Service for accounts and bearer-token authentication"""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityService":
        return cls(
            settings.IDENTITY_PROVIDER_URL,
            settings.IDENTITY_SERVICE_KEY,
            timeout=settings.IDENTITY_TIMEOUT_SEC
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"apikey": self.service_key},
            transport=self.transport
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider request failed ({method} {path}): {e}")
            raise IdentityUnavailableError("Identity provider unavailable") from e

    async def create_user(self, name: str, email: str, password: str) -> Dict[str, Any]:
        """Create a confirmed account (no email server is configured)"""
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            headers={"Authorization": f"Bearer {self.service_key}"},
            json={
                "email": email,
                "password": password,
                "user_metadata": {"name": name},
                "email_confirm": True
            }
        )
        if response.status_code >= 500:
            raise IdentityUnavailableError(_error_message(response))
        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Signup error: {message}")
            raise IdentityProviderError(message)

        body = response.json()
        # Older GoTrue versions wrap the user object
        return body.get("user", body) if isinstance(body, dict) else body

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Password sign-in; returns the session with its access token"""
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password}
        )
        if response.status_code >= 500:
            raise IdentityUnavailableError(_error_message(response))
        if response.status_code >= 400:
            raise IdentityProviderError(_error_message(response))
        return response.json()

    async def get_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Resolve a bearer token to its user, or None if the token is not valid"""
        response = await self._request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}"}
        )
        if response.status_code in (401, 403, 404):
            return None
        if response.status_code >= 400:
            raise IdentityUnavailableError(_error_message(response))
        return response.json()
