"""
OAuth client registry (dynamic registration plus an optional static client).
"""

import hmac
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from pearls.config import Settings
from pearls.kernel.errors import OAuthError
from pearls.kernel.models.base import utcnow

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1"})


@dataclass
class OAuthClient:
    client_id: str
    client_name: str
    redirect_uris: List[str]
    client_secret: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


def is_allowed_redirect_uri(uri: str) -> bool:
    """Loopback (any scheme) or HTTPS."""
    try:
        parts = urlsplit(uri)
    except ValueError:
        return False
    if not parts.scheme or not parts.hostname:
        return False
    return parts.hostname in LOOPBACK_HOSTS or parts.scheme == "https"


class ClientRegistry:
    """
    Registered clients, held in memory.

    Registrations do not survive a restart; the static client is re-added
    from configuration on startup.
    """

    def __init__(self, static_client: Optional[OAuthClient] = None):
        self._clients: Dict[str, OAuthClient] = {}
        if static_client is not None:
            self._clients[static_client.client_id] = static_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClientRegistry":
        static_client = None
        if settings.oauth_static_client_id:
            static_client = OAuthClient(
                client_id=settings.oauth_static_client_id,
                client_name=settings.oauth_static_client_name,
                redirect_uris=settings.static_redirect_uris,
                client_secret=settings.oauth_static_client_secret or None,
            )
        return cls(static_client)

    def get(self, client_id: str) -> Optional[OAuthClient]:
        return self._clients.get(client_id)

    def register(self, client_name: Optional[str], redirect_uris) -> OAuthClient:
        """Register a public client; raises OAuthError on bad input."""
        if not client_name or not isinstance(redirect_uris, list) or not redirect_uris:
            raise OAuthError(
                "invalid_request",
                "client_name and redirect_uris are required",
            )

        for uri in redirect_uris:
            if not isinstance(uri, str) or not is_allowed_redirect_uri(uri):
                raise OAuthError(
                    "invalid_redirect_uri",
                    "Redirect URIs must be localhost or HTTPS",
                )

        client = OAuthClient(
            client_id=f"client_{secrets.token_hex(16)}",
            client_name=client_name,
            redirect_uris=list(redirect_uris),
        )
        self._clients[client.client_id] = client
        return client

    def authenticate(self, client_id: Optional[str], client_secret: Optional[str]) -> None:
        """
        Check client credentials when both are presented.

        Public clients send neither (or only an id) and pass through.
        """
        if not client_id or not client_secret:
            return
        client = self._clients.get(client_id)
        if (
            client is None
            or client.client_secret is None
            or not hmac.compare_digest(client.client_secret, client_secret)
        ):
            raise OAuthError("invalid_client", "Invalid client credentials", status_code=401)

    def check_redirect_uri(self, client_id: str, redirect_uri: str) -> None:
        """A registered client may only use one of its own redirect URIs."""
        client = self._clients.get(client_id)
        if client is not None and redirect_uri not in client.redirect_uris:
            raise OAuthError(
                "invalid_request",
                "redirect_uri is not registered for this client",
            )
