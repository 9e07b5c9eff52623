"""Unit tests for the OAuth authorization server pieces."""

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from pearls.kernel.errors import OAuthError, UpstreamError
from pearls.kernel.oauth import (
    AuthorizationIssuer,
    ClientRegistry,
    ExpiringStore,
    OAuthClient,
    WorkOSClient,
    compute_code_challenge,
    is_allowed_redirect_uri,
)
from pearls.schemas.oauth import TokenRequest

REDIRECT_URI = "http://localhost:3000/callback"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def provider_transport(user_id="cohort-user", email="c@example.com", status_code=200):
    """MockTransport standing in for the WorkOS authenticate endpoint."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"user": {"id": user_id, "email": email}})

    transport = httpx.MockTransport(handler)
    transport.seen = seen
    return transport


def query_of(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestExpiringStore:
    """Tests for ExpiringStore."""

    def test_pop_is_single_use(self):
        store = ExpiringStore()
        store.put("k", "v", ttl_seconds=60)
        assert store.pop("k") == "v"
        assert store.pop("k") is None

    def test_expired_entry_rejected_on_read(self):
        clock = FakeClock()
        store = ExpiringStore(clock=clock)
        store.put("k", "v", ttl_seconds=60)

        clock.now += 61

        assert "k" in store
        assert store.pop("k") is None
        assert "k" not in store

    def test_put_purges_expired(self):
        clock = FakeClock()
        store = ExpiringStore(clock=clock)
        store.put("old", 1, ttl_seconds=10)
        clock.now += 20
        store.put("new", 2, ttl_seconds=10)

        assert len(store) == 1
        assert store.pop("new") == 2


class TestClientRegistry:
    """Tests for client registration and authentication."""

    @pytest.mark.parametrize("uri,allowed", [
        ("http://localhost:3000/cb", True),
        ("http://127.0.0.1/cb", True),
        ("https://app.example.com/cb", True),
        ("http://app.example.com/cb", False),
        ("not a url", False),
    ])
    def test_redirect_uri_policy(self, uri, allowed):
        assert is_allowed_redirect_uri(uri) is allowed

    def test_register(self):
        registry = ClientRegistry()
        client = registry.register("Desktop", [REDIRECT_URI])
        assert client.client_id.startswith("client_")
        assert registry.get(client.client_id) is client

    def test_register_requires_fields(self):
        with pytest.raises(OAuthError) as exc_info:
            ClientRegistry().register(None, [REDIRECT_URI])
        assert exc_info.value.error == "invalid_request"

        with pytest.raises(OAuthError):
            ClientRegistry().register("x", [])

    def test_register_rejects_plain_http(self):
        with pytest.raises(OAuthError) as exc_info:
            ClientRegistry().register("x", ["http://evil.example.com/cb"])
        assert exc_info.value.error == "invalid_redirect_uri"

    def test_authenticate_static_client(self):
        registry = ClientRegistry(
            OAuthClient(client_id="static", client_name="S", redirect_uris=[], client_secret="s3cret")
        )
        registry.authenticate("static", "s3cret")
        registry.authenticate("static", None)
        with pytest.raises(OAuthError) as exc_info:
            registry.authenticate("static", "wrong")
        assert exc_info.value.error == "invalid_client"
        assert exc_info.value.status_code == 401

    def test_registered_client_redirect_uri_must_match(self):
        registry = ClientRegistry()
        client = registry.register("x", [REDIRECT_URI])
        registry.check_redirect_uri(client.client_id, REDIRECT_URI)
        with pytest.raises(OAuthError):
            registry.check_redirect_uri(client.client_id, "https://other.example.com/cb")


class TestPkce:
    """Tests for code challenge computation."""

    def test_s256(self):
        # RFC 7636 appendix B
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert compute_code_challenge(verifier, "S256") == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_plain(self):
        assert compute_code_challenge("verifier", "plain") == "verifier"


class TestWorkOSClient:
    """Tests for the identity provider client."""

    def test_authorization_url(self):
        client = WorkOSClient("sk", "client_123", base_url="https://workos.test")
        url = client.authorization_url("http://test/oauth/callback", "abc")
        params = query_of(url)
        assert url.startswith("https://workos.test/user_management/authorize?")
        assert params["provider"] == "authkit"
        assert params["state"] == "abc"
        assert params["client_id"] == "client_123"

    @pytest.mark.asyncio
    async def test_authenticate_with_code(self):
        transport = provider_transport()
        client = WorkOSClient("sk", "client_123", transport=transport)

        user = await client.authenticate_with_code("provider-code")

        assert user.user_id == "cohort-user"
        assert user.email == "c@example.com"
        assert transport.seen[0]["code"] == "provider-code"
        assert transport.seen[0]["client_secret"] == "sk"

    @pytest.mark.asyncio
    async def test_rejected_code(self):
        client = WorkOSClient("sk", "c", transport=provider_transport(status_code=400))
        with pytest.raises(UpstreamError):
            await client.authenticate_with_code("bad")


class TestAuthorizationIssuer:
    """Tests for the full authorization code flow."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def issuer(self, role_resolver, jwt_manager, clock):
        return AuthorizationIssuer(
            provider=WorkOSClient("sk", "client_123", transport=provider_transport()),
            clients=ClientRegistry(),
            role_resolver=role_resolver,
            jwt_manager=jwt_manager,
            base_url="http://test/",
            pending=ExpiringStore(clock=clock),
            codes=ExpiringStore(clock=clock),
        )

    async def _code(self, issuer, verifier="v" * 50, method="S256", state="client-state"):
        challenge = compute_code_challenge(verifier, method) if verifier else None
        provider_url = issuer.begin_authorization(
            client_id="client_abc",
            redirect_uri=REDIRECT_URI,
            response_type="code",
            state=state,
            code_challenge=challenge,
            code_challenge_method=method if verifier else None,
        )
        correlation = query_of(provider_url)["state"]
        redirect = await issuer.complete_callback("provider-code", correlation)
        return query_of(redirect)["code"], redirect

    def test_begin_redirects_to_provider_with_callback(self, issuer):
        url = issuer.begin_authorization("client_abc", REDIRECT_URI, "code")
        params = query_of(url)
        assert params["redirect_uri"] == "http://test/oauth/callback"
        assert len(params["state"]) == 64

    @pytest.mark.parametrize("kwargs,error", [
        ({"response_type": "token"}, "unsupported_response_type"),
        ({"client_id": None}, "invalid_request"),
        ({"redirect_uri": None}, "invalid_request"),
        ({"code_challenge_method": "S512"}, "invalid_request"),
    ])
    def test_begin_rejects(self, issuer, kwargs, error):
        params = {"client_id": "client_abc", "redirect_uri": REDIRECT_URI, "response_type": "code"}
        params.update(kwargs)
        with pytest.raises(OAuthError) as exc_info:
            issuer.begin_authorization(**params)
        assert exc_info.value.error == error

    @pytest.mark.asyncio
    async def test_callback_returns_code_and_state(self, issuer):
        code, redirect = await self._code(issuer)
        assert redirect.startswith(REDIRECT_URI + "?")
        assert query_of(redirect)["state"] == "client-state"
        assert len(code) == 64

    @pytest.mark.asyncio
    async def test_callback_unknown_state(self, issuer):
        with pytest.raises(OAuthError) as exc_info:
            await issuer.complete_callback("provider-code", "never-issued")
        assert exc_info.value.error == "invalid_request"

    @pytest.mark.asyncio
    async def test_callback_expired_state(self, issuer, clock):
        url = issuer.begin_authorization("client_abc", REDIRECT_URI, "code")
        clock.now += 601
        with pytest.raises(OAuthError):
            await issuer.complete_callback("provider-code", query_of(url)["state"])

    @pytest.mark.asyncio
    async def test_exchange_code_s256(self, issuer, db_session, jwt_manager):
        code, _ = await self._code(issuer)

        tokens = await issuer.exchange_code(
            db_session, code, code_verifier="v" * 50, redirect_uri=REDIRECT_URI, client_id="client_abc"
        )

        assert tokens.token_type == "Bearer"
        assert tokens.expires_in == 7 * 24 * 3600
        assert tokens.scope == "aurora:member authenticated"
        payload = jwt_manager.verify_access_token(tokens.access_token)
        assert payload.sub == "cohort-user"
        assert payload.email == "c@example.com"
        assert tokens.refresh_token

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, issuer, db_session):
        code, _ = await self._code(issuer)
        await issuer.exchange_code(db_session, code, code_verifier="v" * 50)

        with pytest.raises(OAuthError) as exc_info:
            await issuer.exchange_code(db_session, code, code_verifier="v" * 50)
        assert exc_info.value.error == "invalid_grant"

    @pytest.mark.asyncio
    async def test_wrong_verifier_consumes_code(self, issuer, db_session):
        code, _ = await self._code(issuer)

        with pytest.raises(OAuthError) as exc_info:
            await issuer.exchange_code(db_session, code, code_verifier="w" * 50)
        assert exc_info.value.error == "invalid_grant"

        with pytest.raises(OAuthError):
            await issuer.exchange_code(db_session, code, code_verifier="v" * 50)

    @pytest.mark.asyncio
    async def test_missing_verifier(self, issuer, db_session):
        code, _ = await self._code(issuer)
        with pytest.raises(OAuthError) as exc_info:
            await issuer.exchange_code(db_session, code)
        assert exc_info.value.error == "invalid_request"

    @pytest.mark.asyncio
    async def test_plain_and_no_challenge(self, issuer, db_session):
        code, _ = await self._code(issuer, verifier="plain-verifier", method="plain")
        assert await issuer.exchange_code(db_session, code, code_verifier="plain-verifier")

        code, _ = await self._code(issuer, verifier=None)
        assert await issuer.exchange_code(db_session, code)

    @pytest.mark.asyncio
    async def test_code_bound_to_client_and_redirect(self, issuer, db_session):
        code, _ = await self._code(issuer)
        with pytest.raises(OAuthError) as exc_info:
            await issuer.exchange_code(db_session, code, code_verifier="v" * 50, client_id="client_other")
        assert exc_info.value.error == "invalid_grant"

        code, _ = await self._code(issuer)
        with pytest.raises(OAuthError):
            await issuer.exchange_code(
                db_session, code, code_verifier="v" * 50, redirect_uri="http://localhost:9999/cb"
            )

    @pytest.mark.asyncio
    async def test_expired_code(self, issuer, db_session, clock):
        code, _ = await self._code(issuer)
        clock.now += 301
        with pytest.raises(OAuthError) as exc_info:
            await issuer.exchange_code(db_session, code, code_verifier="v" * 50)
        assert exc_info.value.error == "invalid_grant"

    @pytest.mark.asyncio
    async def test_refresh(self, issuer, db_session, jwt_manager):
        code, _ = await self._code(issuer)
        tokens = await issuer.exchange_code(db_session, code, code_verifier="v" * 50)

        refreshed = await issuer.handle_token_request(
            db_session,
            TokenRequest(grant_type="refresh_token", refresh_token=tokens.refresh_token),
        )

        assert refreshed.refresh_token is None
        assert jwt_manager.verify_access_token(refreshed.access_token).sub == "cohort-user"

    @pytest.mark.asyncio
    async def test_refresh_unknown_token(self, issuer, db_session):
        with pytest.raises(OAuthError) as exc_info:
            await issuer.refresh(db_session, "not-a-token")
        assert exc_info.value.error == "invalid_grant"

    @pytest.mark.asyncio
    async def test_unsupported_grant(self, issuer, db_session):
        with pytest.raises(OAuthError) as exc_info:
            await issuer.handle_token_request(db_session, TokenRequest(grant_type="password"))
        assert exc_info.value.error == "unsupported_grant_type"
