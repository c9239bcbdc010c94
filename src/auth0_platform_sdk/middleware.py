"""Request middleware for the Auth0 Platform SDK.

Middleware are plain objects with three optional hooks. The request
pipeline calls every ``pre`` hook in registration order before each
attempt, every ``post`` hook in registration order after the final
response, and every ``on_error`` hook when the transport raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlsplit

import httpx

from .telemetry import encode_client_info, generate_client_info

if TYPE_CHECKING:
    from .http import FetchParams

CUSTOM_DOMAIN_HEADER = "Auth0-Custom-Domain"
CLIENT_INFO_HEADER = "Auth0-Client"

# Management API paths that honour the custom domain header.
CUSTOM_DOMAIN_PATH_PATTERNS = (
    r"^/api/v2/jobs/verification-email$",
    r"^/api/v2/tickets/email-verification$",
    r"^/api/v2/tickets/password-change$",
    r"^/api/v2/organizations/[^/]+/invitations$",
    r"^/api/v2/users$",
    r"^/api/v2/users/[^/]+$",
    r"^/api/v2/guardian/enrollments/ticket$",
)

_CUSTOM_DOMAIN_PATH_REGEXES = tuple(re.compile(p) for p in CUSTOM_DOMAIN_PATH_PATTERNS)


@dataclass
class RequestContext:
    """Input of a ``pre`` hook."""

    params: FetchParams
    attempt: int


@dataclass
class ResponseContext:
    """Input of a ``post`` hook."""

    params: FetchParams
    response: httpx.Response


@dataclass
class ErrorContext:
    """Input of an ``on_error`` hook."""

    params: FetchParams
    error: Exception
    response: httpx.Response | None = None


class AccessTokenSource(Protocol):
    """Anything that can supply a bearer token."""

    async def get_access_token(self) -> str:
        """Return a usable access token."""
        ...


class RequestMiddleware:
    """Base middleware; every hook is optional and a no-op by default.

    ``pre`` may return replacement fetch parameters, ``post`` and
    ``on_error`` may return a replacement response. Returning None keeps
    the current value.
    """

    async def pre(self, context: RequestContext) -> FetchParams | None:
        return None

    async def post(self, context: ResponseContext) -> httpx.Response | None:
        return None

    async def on_error(self, context: ErrorContext) -> httpx.Response | None:
        return None


class TelemetryMiddleware(RequestMiddleware):
    """Adds the ``Auth0-Client`` header describing this SDK."""

    def __init__(self, client_info: dict[str, Any] | None = None) -> None:
        self.client_info = client_info or generate_client_info()
        self._header_value = encode_client_info(self.client_info)

    async def pre(self, context: RequestContext) -> FetchParams | None:
        if self._header_value:
            context.params.headers[CLIENT_INFO_HEADER] = self._header_value
        return context.params


def is_custom_domain_path_whitelisted(path: str) -> bool:
    """Check if a Management API path accepts the custom domain header."""
    if not path or not isinstance(path, str):
        return False
    return any(regex.match(path) for regex in _CUSTOM_DOMAIN_PATH_REGEXES)


class CustomDomainHeaderMiddleware(RequestMiddleware):
    """Adds ``Auth0-Custom-Domain`` to whitelisted Management API paths only."""

    def __init__(self, custom_domain: str) -> None:
        self.custom_domain = custom_domain

    async def pre(self, context: RequestContext) -> FetchParams | None:
        path = urlsplit(context.params.url).path
        if is_custom_domain_path_whitelisted(path):
            context.params.headers[CUSTOM_DOMAIN_HEADER] = self.custom_domain
        else:
            context.params.headers.pop(CUSTOM_DOMAIN_HEADER, None)
        return context.params


class TokenProviderMiddleware(RequestMiddleware):
    """Adds a bearer ``Authorization`` header from a token provider."""

    def __init__(self, token_provider: AccessTokenSource) -> None:
        self.token_provider = token_provider

    async def pre(self, context: RequestContext) -> FetchParams | None:
        token = await self.token_provider.get_access_token()
        context.params.headers["Authorization"] = f"Bearer {token}"
        return context.params
