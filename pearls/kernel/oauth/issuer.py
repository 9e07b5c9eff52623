"""
Authorization code / token issuer.

Flow:
    start --/authorize--> pending_authorization --provider callback--> code_issued
    code_issued --/token (authorization_code)--> token_issued
    token_issued --/token (refresh_token)--> token_issued

Every failed transition raises OAuthError; nothing else escapes except
UpstreamError from the identity provider.
"""

import hmac
import secrets
from datetime import timedelta
from functools import lru_cache
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from authlib.oauth2.rfc7636 import create_s256_code_challenge
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.config import Settings, get_settings
from pearls.kernel.errors import OAuthError
from pearls.kernel.identity.jwt import JWTManager, get_jwt_manager
from pearls.kernel.identity.roles import RoleResolver, get_role_resolver
from pearls.kernel.models.base import utcnow
from pearls.kernel.models.credentials import RefreshToken
from pearls.kernel.oauth.clients import ClientRegistry
from pearls.kernel.oauth.flow_store import (
    ExpiringStore,
    FlowStore,
    IssuedCode,
    PendingAuthorization,
)
from pearls.kernel.oauth.provider import WorkOSClient
from pearls.logging_config import get_logger
from pearls.schemas.oauth import TokenRequest, TokenResponse

logger = get_logger(__name__)

CHALLENGE_METHODS = ("S256", "plain")


def compute_code_challenge(verifier: str, method: str) -> str:
    """S256 is base64url(sha256(verifier)) without padding; plain is the verifier."""
    if method == "S256":
        return create_s256_code_challenge(verifier)
    return verifier


def append_query(url: str, **params: Optional[str]) -> str:
    """Add query parameters to a URL, keeping any it already has."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((key, value) for key, value in params.items() if value)
    return urlunsplit(parts._replace(query=urlencode(query)))


class AuthorizationIssuer:
    """Drives the authorization code flow and mints tokens."""

    def __init__(
        self,
        provider: WorkOSClient,
        clients: ClientRegistry,
        role_resolver: RoleResolver,
        jwt_manager: JWTManager,
        base_url: str,
        pending: Optional[FlowStore[PendingAuthorization]] = None,
        codes: Optional[FlowStore[IssuedCode]] = None,
        pending_ttl_seconds: int = 600,
        code_ttl_seconds: int = 300,
        refresh_token_expire_days: int = 30,
    ):
        self.provider = provider
        self.clients = clients
        self.role_resolver = role_resolver
        self.jwt_manager = jwt_manager
        self.base_url = base_url.rstrip("/")
        self.pending = pending if pending is not None else ExpiringStore()
        self.codes = codes if codes is not None else ExpiringStore()
        self.pending_ttl_seconds = pending_ttl_seconds
        self.code_ttl_seconds = code_ttl_seconds
        self.refresh_token_lifetime = timedelta(days=refresh_token_expire_days)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthorizationIssuer":
        return cls(
            provider=WorkOSClient.from_settings(settings),
            clients=ClientRegistry.from_settings(settings),
            role_resolver=get_role_resolver(),
            jwt_manager=get_jwt_manager(),
            base_url=settings.base_url,
            pending_ttl_seconds=settings.pending_authorization_ttl_seconds,
            code_ttl_seconds=settings.authorization_code_ttl_seconds,
            refresh_token_expire_days=settings.refresh_token_expire_days,
        )

    @property
    def callback_url(self) -> str:
        return f"{self.base_url}/oauth/callback"

    # ------------------------------------------------------------------
    # start -> pending_authorization
    # ------------------------------------------------------------------

    def begin_authorization(
        self,
        client_id: Optional[str],
        redirect_uri: Optional[str],
        response_type: Optional[str],
        state: Optional[str] = None,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
    ) -> str:
        """Record the request and return the provider URL to redirect to."""
        if response_type != "code":
            raise OAuthError(
                "unsupported_response_type",
                "Only code response type is supported",
            )
        if not client_id or not redirect_uri:
            raise OAuthError(
                "invalid_request",
                "client_id and redirect_uri are required",
            )

        method = code_challenge_method or "plain"
        if method not in CHALLENGE_METHODS:
            raise OAuthError(
                "invalid_request",
                f"Unsupported code_challenge_method: {method}",
            )

        self.clients.check_redirect_uri(client_id, redirect_uri)

        correlation = secrets.token_hex(32)
        self.pending.put(
            correlation,
            PendingAuthorization(
                client_id=client_id,
                redirect_uri=redirect_uri,
                state=state or "",
                code_challenge=code_challenge or None,
                code_challenge_method=method,
            ),
            self.pending_ttl_seconds,
        )
        return self.provider.authorization_url(self.callback_url, correlation)

    # ------------------------------------------------------------------
    # pending_authorization -> code_issued
    # ------------------------------------------------------------------

    async def complete_callback(self, code: Optional[str], state: Optional[str]) -> str:
        """Exchange the provider code, mint our own code, return the client redirect URL."""
        if not code or not state:
            raise OAuthError("invalid_request", "Missing code or state")

        pending = self.pending.pop(state)
        if pending is None:
            raise OAuthError("invalid_request", "Invalid or expired state")

        user = await self.provider.authenticate_with_code(code)

        auth_code = secrets.token_hex(32)
        self.codes.put(
            auth_code,
            IssuedCode(
                client_id=pending.client_id,
                user_id=user.user_id,
                email=user.email,
                redirect_uri=pending.redirect_uri,
                code_challenge=pending.code_challenge,
                code_challenge_method=pending.code_challenge_method,
            ),
            self.code_ttl_seconds,
        )
        logger.info("Authorization code issued", extra={"client_id": pending.client_id})
        return append_query(pending.redirect_uri, code=auth_code, state=pending.state)

    # ------------------------------------------------------------------
    # token endpoint
    # ------------------------------------------------------------------

    async def handle_token_request(
        self,
        session: AsyncSession,
        request: TokenRequest,
    ) -> TokenResponse:
        self.clients.authenticate(request.client_id, request.client_secret)

        if request.grant_type == "authorization_code":
            return await self.exchange_code(
                session,
                code=request.code,
                code_verifier=request.code_verifier,
                redirect_uri=request.redirect_uri,
                client_id=request.client_id,
            )
        if request.grant_type == "refresh_token":
            return await self.refresh(session, request.refresh_token)

        raise OAuthError(
            "unsupported_grant_type",
            "Only authorization_code and refresh_token grants are supported",
        )

    async def exchange_code(
        self,
        session: AsyncSession,
        code: Optional[str],
        code_verifier: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> TokenResponse:
        """code_issued -> token_issued. The code is consumed before any check."""
        if not code:
            raise OAuthError("invalid_request", "code is required")

        issued = self.codes.pop(code)
        if issued is None:
            raise OAuthError("invalid_grant", "Invalid or expired authorization code")

        if client_id and client_id != issued.client_id:
            raise OAuthError("invalid_grant", "Authorization code was issued to another client")
        if redirect_uri and redirect_uri != issued.redirect_uri:
            raise OAuthError("invalid_grant", "redirect_uri does not match")

        if issued.code_challenge:
            if not code_verifier:
                raise OAuthError("invalid_request", "code_verifier is required")
            computed = compute_code_challenge(code_verifier, issued.code_challenge_method)
            if not hmac.compare_digest(computed, issued.code_challenge):
                raise OAuthError("invalid_grant", "Invalid code_verifier")

        roles = sorted(self.role_resolver.roles_for(issued.user_id))
        access_token, _ = self.jwt_manager.create_access_token(
            user_id=issued.user_id,
            email=issued.email,
            roles=roles,
        )

        refresh_token = secrets.token_hex(32)
        session.add(
            RefreshToken(
                token_hash=self.jwt_manager.hash_token(refresh_token),
                user_id=issued.user_id,
                email=issued.email,
                expires_at=utcnow() + self.refresh_token_lifetime,
            )
        )
        await session.flush()

        logger.info("Access token issued", extra={"subject": issued.user_id})
        return TokenResponse(
            access_token=access_token,
            expires_in=int(self.jwt_manager.access_token_lifetime.total_seconds()),
            refresh_token=refresh_token,
            scope=" ".join(roles),
        )

    async def refresh(self, session: AsyncSession, refresh_token: Optional[str]) -> TokenResponse:
        """Mint a new access token with current roles. The refresh token is not rotated."""
        if not refresh_token:
            raise OAuthError("invalid_request", "refresh_token is required")

        result = await session.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == self.jwt_manager.hash_token(refresh_token),
                RefreshToken.expires_at > utcnow(),
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise OAuthError("invalid_grant", "Invalid or expired refresh token")

        roles = sorted(self.role_resolver.roles_for(record.user_id))
        access_token, _ = self.jwt_manager.create_access_token(
            user_id=record.user_id,
            email=record.email,
            roles=roles,
        )
        return TokenResponse(
            access_token=access_token,
            expires_in=int(self.jwt_manager.access_token_lifetime.total_seconds()),
            scope=" ".join(roles),
        )


@lru_cache
def get_issuer() -> AuthorizationIssuer:
    """Process-wide issuer; its flow stores must outlive single requests."""
    return AuthorizationIssuer.from_settings(get_settings())
