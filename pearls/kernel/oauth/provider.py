"""
WorkOS User Management (AuthKit) client.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx

from pearls.config import Settings
from pearls.kernel.errors import UpstreamError
from pearls.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderUser:
    user_id: str
    email: Optional[str]


class WorkOSClient:
    """Builds the hosted login URL and exchanges callback codes for users."""

    def __init__(
        self,
        api_key: str,
        client_id: str,
        base_url: str = "https://api.workos.com",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.client_id = client_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkOSClient":
        return cls(
            api_key=settings.workos_api_key,
            client_id=settings.workos_client_id,
            base_url=settings.workos_base_url,
        )

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "provider": "authkit",
            "state": state,
        }
        return f"{self.base_url}/user_management/authorize?{urlencode(params)}"

    async def authenticate_with_code(self, code: str) -> ProviderUser:
        """
        Exchange a provider code for the verified user.

        Raises:
            UpstreamError: if the provider is unreachable or rejects the code
        """
        payload = {
            "client_id": self.client_id,
            "client_secret": self.api_key,
            "grant_type": "authorization_code",
            "code": code,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/user_management/authenticate",
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Identity provider rejected code exchange",
                extra={"status_code": exc.response.status_code},
            )
            raise UpstreamError("Identity provider rejected the authorization code") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Identity provider request failed: %s", exc)
            raise UpstreamError("Identity provider unavailable") from exc

        user = data.get("user") or {}
        if not user.get("id"):
            raise UpstreamError("Identity provider returned no user")
        return ProviderUser(user_id=str(user["id"]), email=user.get("email"))
