"""
OAuth 2.1 authorization server endpoints (discovery, registration,
authorize, provider callback, token).
"""

import json
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from pearls.api.deps import AppSettings, DbSession
from pearls.kernel.errors import OAuthError
from pearls.kernel.oauth.issuer import AuthorizationIssuer, get_issuer
from pearls.logging_config import get_logger
from pearls.schemas.oauth import (
    AuthorizationServerMetadata,
    ClientRegistrationRequest,
    ClientRegistrationResponse,
    ProtectedResourceMetadata,
    TokenRequest,
)

logger = get_logger(__name__)

router = APIRouter()

Issuer = Annotated[AuthorizationIssuer, Depends(get_issuer)]

NO_STORE = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _base(settings) -> str:
    return settings.base_url.rstrip("/")


@router.get("/.well-known/oauth-protected-resource", response_model=ProtectedResourceMetadata)
@router.get("/.well-known/oauth-protected-resource/mcp", response_model=ProtectedResourceMetadata)
async def protected_resource_metadata(settings: AppSettings):
    base = _base(settings)
    return ProtectedResourceMetadata(resource=base, authorization_servers=[base])


@router.get("/.well-known/oauth-authorization-server", response_model=AuthorizationServerMetadata)
async def authorization_server_metadata(settings: AppSettings):
    base = _base(settings)
    return AuthorizationServerMetadata(
        issuer=base,
        authorization_endpoint=f"{base}/authorize",
        token_endpoint=f"{base}/token",
        registration_endpoint=f"{base}/register",
    )


@router.post(
    "/register",
    response_model=ClientRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_client(request: Request, issuer: Issuer):
    """Dynamic client registration."""
    try:
        body = ClientRegistrationRequest.model_validate_json(await request.body() or b"{}")
    except ValidationError:
        raise OAuthError("invalid_request", "Malformed registration request")

    client = issuer.clients.register(body.client_name, body.redirect_uris)
    logger.info("OAuth client registered", extra={"client_id": client.client_id})
    return ClientRegistrationResponse(
        client_id=client.client_id,
        client_name=client.client_name,
        redirect_uris=client.redirect_uris,
    )


@router.get("/authorize")
async def authorize(
    issuer: Issuer,
    client_id: Optional[str] = None,
    redirect_uri: Optional[str] = None,
    response_type: Optional[str] = None,
    state: Optional[str] = None,
    code_challenge: Optional[str] = None,
    code_challenge_method: Optional[str] = None,
):
    """Start the flow: remember the request, send the user to the provider."""
    url = issuer.begin_authorization(
        client_id=client_id,
        redirect_uri=redirect_uri,
        response_type=response_type,
        state=state,
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
    )
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/oauth/callback")
async def oauth_callback(
    issuer: Issuer,
    code: Optional[str] = None,
    state: Optional[str] = None,
):
    """Provider callback: mint our code and return to the client."""
    url = await issuer.complete_callback(code, state)
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


async def _token_request(request: Request) -> TokenRequest:
    content_type = request.headers.get("content-type", "")
    try:
        if "application/json" in content_type:
            data = json.loads(await request.body() or b"{}")
        else:
            data = dict(await request.form())
        return TokenRequest.model_validate(data)
    except (ValueError, ValidationError):
        raise OAuthError("invalid_request", "Malformed token request")


@router.post("/token")
async def token(request: Request, db: DbSession, issuer: Issuer):
    """Authorization code and refresh token grants."""
    token_request = await _token_request(request)
    response = await issuer.handle_token_request(db, token_request)
    return JSONResponse(response.model_dump(exclude_none=True), headers=NO_STORE)
