"""Unit tests for the built-in request middleware."""

import base64
import json

import pytest

from auth0_platform_sdk.core.token_provider import StaticTokenProvider
from auth0_platform_sdk.http import FetchParams
from auth0_platform_sdk.middleware import (
    CLIENT_INFO_HEADER,
    CUSTOM_DOMAIN_HEADER,
    CustomDomainHeaderMiddleware,
    RequestContext,
    TelemetryMiddleware,
    TokenProviderMiddleware,
    is_custom_domain_path_whitelisted,
)
from auth0_platform_sdk.telemetry import SDK_NAME, encode_client_info


def context_for(path: str) -> RequestContext:
    params = FetchParams(url=f"https://t.example.com{path}?page=1", method="GET", headers={})
    return RequestContext(params=params, attempt=0)


class TestCustomDomainWhitelist:
    """Tests for the custom domain path whitelist."""

    @pytest.mark.parametrize(
        "path",
        [
            "/api/v2/users",
            "/api/v2/users/auth0%7C123",
            "/api/v2/jobs/verification-email",
            "/api/v2/tickets/email-verification",
            "/api/v2/tickets/password-change",
            "/api/v2/organizations/org_abc/invitations",
            "/api/v2/guardian/enrollments/ticket",
        ],
    )
    def test_whitelisted(self, path: str) -> None:
        assert is_custom_domain_path_whitelisted(path)

    @pytest.mark.parametrize(
        "path",
        [
            "",
            "/api/v2/actions",
            "/api/v2/users/abc/roles",
            "/api/v2/organizations/org_abc/members",
            "/api/v2/users/",
            "/users",
        ],
    )
    def test_not_whitelisted(self, path: str) -> None:
        assert not is_custom_domain_path_whitelisted(path)


class TestCustomDomainHeaderMiddleware:
    """Tests for the custom domain header middleware."""

    @pytest.mark.asyncio
    async def test_adds_header_on_whitelisted_path(self) -> None:
        middleware = CustomDomainHeaderMiddleware("login.example.com")

        params = await middleware.pre(context_for("/api/v2/users/abc"))

        assert params.headers[CUSTOM_DOMAIN_HEADER] == "login.example.com"

    @pytest.mark.asyncio
    async def test_strips_header_elsewhere(self) -> None:
        middleware = CustomDomainHeaderMiddleware("login.example.com")
        context = context_for("/api/v2/actions")
        context.params.headers[CUSTOM_DOMAIN_HEADER] = "set-by-caller"

        params = await middleware.pre(context)

        assert CUSTOM_DOMAIN_HEADER not in params.headers


class TestTelemetryMiddleware:
    """Tests for the Auth0-Client header."""

    @pytest.mark.asyncio
    async def test_default_client_info(self) -> None:
        params = await TelemetryMiddleware().pre(context_for("/oauth/token"))

        encoded = params.headers[CLIENT_INFO_HEADER]
        decoded = json.loads(base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4)))
        assert decoded["name"] == SDK_NAME
        assert "python" in decoded["env"]
        assert "=" not in encoded

    @pytest.mark.asyncio
    async def test_custom_client_info_without_name_is_skipped(self) -> None:
        params = await TelemetryMiddleware({"version": "1"}).pre(context_for("/oauth/token"))

        assert CLIENT_INFO_HEADER not in params.headers

    def test_encode_client_info(self) -> None:
        assert encode_client_info({"name": ""}) is None
        assert encode_client_info({"name": "x"}) == "eyJuYW1lIjoieCJ9"


class TestTokenProviderMiddleware:
    """Tests for the bearer token middleware."""

    @pytest.mark.asyncio
    async def test_sets_authorization(self) -> None:
        middleware = TokenProviderMiddleware(StaticTokenProvider("tok"))

        params = await middleware.pre(context_for("/api/v2/users"))

        assert params.headers["Authorization"] == "Bearer tok"
