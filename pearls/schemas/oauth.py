"""
OAuth schemas.
"""

from typing import List, Optional

from pydantic import BaseModel


class TokenRequest(BaseModel):
    """Token endpoint body (form-encoded or JSON)."""

    grant_type: Optional[str] = None
    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    code_verifier: Optional[str] = None
    refresh_token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None


class TokenResponse(BaseModel):
    """Issued tokens."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: Optional[str] = None
    scope: str


class ClientRegistrationRequest(BaseModel):
    """Dynamic registration body; presence is checked by the registry."""

    client_name: Optional[str] = None
    redirect_uris: Optional[List[str]] = None


class ClientRegistrationResponse(BaseModel):
    client_id: str
    client_name: str
    redirect_uris: List[str]
    token_endpoint_auth_method: str = "none"


class ProtectedResourceMetadata(BaseModel):
    resource: str
    authorization_servers: List[str]
    scopes_supported: List[str] = ["read", "write", "admin"]
    bearer_methods_supported: List[str] = ["header"]


class AuthorizationServerMetadata(BaseModel):
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    registration_endpoint: str
    response_types_supported: List[str] = ["code"]
    grant_types_supported: List[str] = ["authorization_code", "refresh_token"]
    code_challenge_methods_supported: List[str] = ["S256", "plain"]
    token_endpoint_auth_methods_supported: List[str] = ["none", "client_secret_post"]
    scopes_supported: List[str] = ["read", "write", "admin"]
