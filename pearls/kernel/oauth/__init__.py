"""
OAuth authorization server: flow state, clients, provider and issuer.
"""

from pearls.kernel.oauth.clients import ClientRegistry, OAuthClient, is_allowed_redirect_uri
from pearls.kernel.oauth.flow_store import (
    ExpiringStore,
    FlowStore,
    IssuedCode,
    PendingAuthorization,
)
from pearls.kernel.oauth.issuer import AuthorizationIssuer, compute_code_challenge, get_issuer
from pearls.kernel.oauth.provider import ProviderUser, WorkOSClient

__all__ = [
    "AuthorizationIssuer",
    "ClientRegistry",
    "ExpiringStore",
    "FlowStore",
    "IssuedCode",
    "OAuthClient",
    "PendingAuthorization",
    "ProviderUser",
    "WorkOSClient",
    "compute_code_challenge",
    "get_issuer",
    "is_allowed_redirect_uri",
]
