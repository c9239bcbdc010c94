"""Unit tests for OAuth grants, revocation and PAR."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from conftest import CLIENT_ID, DOMAIN, MockAPI, RecordingSleep, Route, form, json_payload

from auth0_platform_sdk import (
    ApiError,
    ApiErrorSource,
    AuthenticationClient,
    AuthenticationClientConfig,
    ConfigurationError,
    ErrorCode,
    IdTokenValidationError,
    IDTokenValidateOptions,
    ResponseError,
    RetryConfig,
)
from auth0_platform_sdk.auth.oauth import PASSWORD_REALM_GRANT_TYPE
from auth0_platform_sdk.jwks import JWKS_PATH

TOKEN = "/oauth/token"
TOKEN_RESPONSE = {"access_token": "tok", "expires_in": 86400, "token_type": "Bearer"}
REQUEST_URI = "urn:ietf:params:oauth:request_uri:abc"


@pytest.fixture
def client(mock_api: MockAPI, auth_config: AuthenticationClientConfig) -> AuthenticationClient:
    """Provide an Authentication client over the mock API."""
    return AuthenticationClient(auth_config, transport=mock_api.client)


@pytest.fixture
def public_client(mock_api: MockAPI) -> AuthenticationClient:
    """Provide a client without any client authentication."""
    return AuthenticationClient(domain=DOMAIN, client_id=CLIENT_ID, transport=mock_api.client)


@pytest.fixture
def with_jwks(mock_api: MockAPI, jwks_document: dict[str, Any]) -> MockAPI:
    """Publish the test JWKS on the mock tenant."""
    return mock_api.add("GET", JWKS_PATH, Route(json=jwks_document))


class TestClientCredentialsGrant:
    """Tests for the client credentials grant."""

    @pytest.mark.asyncio
    async def test_request_and_response(
        self, client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))

        token_set = await client.oauth.client_credentials_grant("api")

        assert token_set.access_token == "tok"
        assert token_set.expires_in == 86400
        request = mock_api.requests[0]
        assert str(request.url) == "https://t.example.com/oauth/token"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert "Auth0-Client" in request.headers
        assert request.content.decode() == (
            "grant_type=client_credentials&client_id=cid&audience=api&client_secret=secret"
        )

    @pytest.mark.asyncio
    async def test_organization(self, client: AuthenticationClient, mock_api: MockAPI) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))

        await client.oauth.client_credentials_grant("api", organization="org_123")

        assert form(mock_api.requests[0])["organization"] == "org_123"

    @pytest.mark.asyncio
    async def test_missing_audience(self, client: AuthenticationClient, mock_api: MockAPI) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await client.oauth.client_credentials_grant(None)  # type: ignore[arg-type]

        assert exc_info.value.message == "Required parameter 'audience' was null or undefined."
        assert exc_info.value.code == ErrorCode.REQUIRED_PARAMETER
        assert mock_api.requests == []

    @pytest.mark.asyncio
    async def test_requires_client_authentication(
        self, public_client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        with pytest.raises(ConfigurationError, match="client_secret or client_assertion"):
            await public_client.oauth.client_credentials_grant("api")

        assert mock_api.requests == []

    @pytest.mark.asyncio
    async def test_private_key_jwt(self, mock_api: MockAPI, rsa_private_pem: str) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))
        client = AuthenticationClient(
            domain=DOMAIN,
            client_id=CLIENT_ID,
            client_assertion_signing_key=rsa_private_pem,
            transport=mock_api.client,
        )

        await client.oauth.client_credentials_grant("api")

        body = form(mock_api.requests[0])
        assert "client_secret" not in body
        assert body["client_assertion_type"] == (
            "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
        )

    @pytest.mark.asyncio
    async def test_error_response(self, client: AuthenticationClient, mock_api: MockAPI) -> None:
        mock_api.add(
            "POST",
            TOKEN,
            Route(401, json={"error": "access_denied", "error_description": "Unauthorized"}),
        )

        with pytest.raises(ApiError) as exc_info:
            await client.oauth.client_credentials_grant("api")

        assert exc_info.value.source is ApiErrorSource.AUTHENTICATION
        assert exc_info.value.error == "access_denied"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token_set(
        self, client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", TOKEN, Route(json={"token_type": "Bearer"}))

        with pytest.raises(ResponseError, match="invalid token set"):
            await client.oauth.client_credentials_grant("api")

    @pytest.mark.asyncio
    async def test_opt_in_retry(
        self, mock_api: MockAPI, recording_sleep: RecordingSleep
    ) -> None:
        mock_api.add(
            "POST",
            TOKEN,
            Route(429, json={"error": "too_many_requests"}),
            Route(json=TOKEN_RESPONSE),
        )
        client = AuthenticationClient(
            AuthenticationClientConfig(
                domain=DOMAIN, client_id=CLIENT_ID, client_secret="secret", retry=RetryConfig()
            ),
            transport=mock_api.client,
            sleep=recording_sleep,
        )

        token_set = await client.oauth.client_credentials_grant("api")

        assert token_set.access_token == "tok"
        assert recording_sleep.delays == [0.5]


class TestAuthorizationCodeGrants:
    """Tests for the authorization code grants."""

    @pytest.mark.asyncio
    async def test_confidential_client(
        self,
        client: AuthenticationClient,
        with_jwks: MockAPI,
        id_token_factory: Callable[..., str],
    ) -> None:
        id_token = id_token_factory({"nonce": "n-1"})
        with_jwks.add("POST", TOKEN, Route(json={**TOKEN_RESPONSE, "id_token": id_token}))

        token_set = await client.oauth.authorization_code_grant(
            "the-code",
            redirect_uri="https://app/cb",
            id_token_validate_options=IDTokenValidateOptions(nonce="n-1"),
        )

        assert token_set.id_token == id_token
        body = form(with_jwks.calls("POST", TOKEN)[0])
        assert body["grant_type"] == "authorization_code"
        assert body["code"] == "the-code"
        assert body["redirect_uri"] == "https://app/cb"
        assert body["client_secret"] == "secret"

    @pytest.mark.asyncio
    async def test_confidential_client_requires_authentication(
        self, public_client: AuthenticationClient
    ) -> None:
        with pytest.raises(ConfigurationError):
            await public_client.oauth.authorization_code_grant("the-code")

    @pytest.mark.asyncio
    async def test_pkce_without_client_authentication(
        self, public_client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))

        await public_client.oauth.authorization_code_grant_with_pkce("the-code", "verifier")

        body = form(mock_api.requests[0])
        assert body["code_verifier"] == "verifier"
        assert "client_secret" not in body

    @pytest.mark.asyncio
    async def test_invalid_id_token_is_rejected(
        self,
        client: AuthenticationClient,
        with_jwks: MockAPI,
        id_token_factory: Callable[..., str],
    ) -> None:
        id_token = id_token_factory({"iss": "https://evil.example.com/"})
        with_jwks.add("POST", TOKEN, Route(json={**TOKEN_RESPONSE, "id_token": id_token}))

        with pytest.raises(IdTokenValidationError) as exc_info:
            await client.oauth.authorization_code_grant("the-code")

        assert exc_info.value.claim == "iss"

    @pytest.mark.asyncio
    async def test_id_token_validation_can_be_skipped(
        self,
        client: AuthenticationClient,
        mock_api: MockAPI,
        id_token_factory: Callable[..., str],
    ) -> None:
        id_token = id_token_factory({"iss": "https://evil.example.com/"})
        mock_api.add("POST", TOKEN, Route(json={**TOKEN_RESPONSE, "id_token": id_token}))

        token_set = await client.oauth.authorization_code_grant(
            "the-code", validate_id_token=False
        )

        assert token_set.id_token == id_token
        assert mock_api.calls("GET", JWKS_PATH) == []


class TestOtherGrants:
    """Tests for the password and refresh token grants."""

    @pytest.mark.asyncio
    async def test_password_grant(
        self, public_client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))

        await public_client.oauth.password_grant("jane", "pw", scope="openid")

        body = form(mock_api.requests[0])
        assert body["grant_type"] == "password"
        assert body["username"] == "jane"
        assert body["scope"] == "openid"
        assert "realm" not in body

    @pytest.mark.asyncio
    async def test_password_realm_grant(
        self, client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))

        await client.oauth.password_grant("jane", "pw", realm="Username-Password-Authentication")

        body = form(mock_api.requests[0])
        assert body["grant_type"] == PASSWORD_REALM_GRANT_TYPE
        assert body["realm"] == "Username-Password-Authentication"

    @pytest.mark.asyncio
    async def test_refresh_token_grant(
        self,
        client: AuthenticationClient,
        with_jwks: MockAPI,
        id_token_factory: Callable[..., str],
    ) -> None:
        with_jwks.add(
            "POST",
            TOKEN,
            Route(json={**TOKEN_RESPONSE, "id_token": id_token_factory(), "scope": "openid email"}),
        )

        token_set = await client.oauth.refresh_token_grant("rt-1")

        assert token_set.scopes == ["openid", "email"]
        body = form(with_jwks.calls("POST", TOKEN)[0])
        assert body["grant_type"] == "refresh_token"
        assert body["refresh_token"] == "rt-1"


class TestRevokeAndPar:
    """Tests for refresh token revocation and pushed authorization requests."""

    @pytest.mark.asyncio
    async def test_revoke_refresh_token(
        self, client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", "/oauth/revoke", Route())

        result = await client.oauth.revoke_refresh_token("rt-1")

        assert result is None
        request = mock_api.requests[0]
        assert request.headers["Content-Type"] == "application/json"
        assert json_payload(request) == {
            "client_id": "cid",
            "token": "rt-1",
            "client_secret": "secret",
        }

    @pytest.mark.asyncio
    async def test_revoke_public_client(
        self, public_client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", "/oauth/revoke", Route())

        await public_client.oauth.revoke_refresh_token("rt-1")

        assert json_payload(mock_api.requests[0]) == {"client_id": "cid", "token": "rt-1"}

    @pytest.mark.asyncio
    async def test_pushed_authorization_request(
        self, client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add(
            "POST",
            "/oauth/par",
            Route(201, json={"request_uri": REQUEST_URI, "expires_in": 30}),
        )

        response = await client.oauth.pushed_authorization_request(
            "code", "https://app/cb", scope="openid", state=None
        )

        assert response.request_uri == REQUEST_URI
        assert response.expires_in == 30
        body = form(mock_api.requests[0])
        assert body == {
            "client_id": "cid",
            "response_type": "code",
            "redirect_uri": "https://app/cb",
            "scope": "openid",
            "client_secret": "secret",
        }


class TestClientConstruction:
    """Tests for building the Authentication client."""

    def test_invalid_keyword_configuration(self) -> None:
        with pytest.raises(ConfigurationError):
            AuthenticationClient(domain="https://t.example.com", client_id=CLIENT_ID)

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_transport(self) -> None:
        async with AuthenticationClient(domain=DOMAIN, client_id=CLIENT_ID) as client:
            transport = client._transport

        assert transport.is_closed  # type: ignore[attr-defined]


class TestFormRequests:
    """Tests for the shared form POST used by grants, PAR and CIBA."""

    @pytest.mark.asyncio
    async def test_grant_and_par_send_the_same_request_shape(
        self, client: AuthenticationClient, mock_api: MockAPI
    ) -> None:
        mock_api.add("POST", TOKEN, Route(json=TOKEN_RESPONSE))
        mock_api.add(
            "POST",
            "/oauth/par",
            Route(201, json={"request_uri": REQUEST_URI, "expires_in": 30}),
        )

        await client.oauth.client_credentials_grant("api")
        await client.oauth.pushed_authorization_request("code", "https://app/cb")

        grant_request, par_request = mock_api.requests
        assert grant_request.method == par_request.method == "POST"
        for name in ("Content-Type", "Auth0-Client"):
            assert grant_request.headers[name] == par_request.headers[name]
        assert grant_request.headers["Content-Type"] == "application/x-www-form-urlencoded"
