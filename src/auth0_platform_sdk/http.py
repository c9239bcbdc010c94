"""HTTP primitives for the Auth0 Platform SDK.

Defines the transport seam the request pipeline talks to, the logical
request description built by the API surfaces, and the per-attempt
fetch parameters that middleware may rewrite.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Protocol, runtime_checkable
from urllib.parse import urlencode

import httpx

from .errors import ResponseError
from .telemetry import SDK_NAME, SDK_VERSION

HTTPMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

DEFAULT_HEADERS = {
    "User-Agent": f"{SDK_NAME}/{SDK_VERSION}",
    "Accept": JSON_CONTENT_TYPE,
}


@runtime_checkable
class HttpTransport(Protocol):
    """Anything that can send an ``httpx.Request``.

    ``httpx.AsyncClient`` satisfies this protocol directly.
    """

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Send a request and return the response."""
        ...


@dataclass(frozen=True)
class RequestDescriptor:
    """Logical HTTP call relative to a client's base URL."""

    path: str
    method: HTTPMethod = "GET"
    headers: dict[str, str | None] = field(default_factory=dict)
    query: dict[str, Any] | None = None
    body: Any = None


@dataclass
class FetchParams:
    """Concrete request for a single attempt; middleware may rewrite it."""

    url: str
    method: str
    headers: dict[str, str]
    content: bytes | None = None

    def clone(self) -> FetchParams:
        """Copy with an independent header mapping."""
        return replace(self, headers=dict(self.headers))

    def to_request(self, timeout: float | None = None) -> httpx.Request:
        """Build the ``httpx.Request`` for this attempt."""
        extensions = {"timeout": httpx.Timeout(timeout).as_dict()} if timeout else None
        return httpx.Request(
            self.method,
            self.url,
            headers=self.headers,
            content=self.content,
            extensions=extensions,
        )


@dataclass(frozen=True)
class RequestOptions:
    """Per-call overrides of the client configuration."""

    timeout: float | None = None
    max_retries: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    abort_signal: asyncio.Event | None = None


def querystring(params: dict[str, Any]) -> str:
    """Encode query parameters, repeating the key for list values."""
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, list | tuple):
            pairs.extend((key, _query_value(v)) for v in value)
        else:
            pairs.append((key, _query_value(value)))
    return urlencode(pairs)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_body(body: Any, headers: dict[str, str]) -> bytes | None:
    """Serialize a request body according to its content type.

    Mappings are form-encoded when the Content-Type says so and JSON
    encoded otherwise; ``str``/``bytes`` bodies are sent as-is.
    """
    if body is None:
        return None
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode("utf-8")

    content_type = _header(headers, "Content-Type") or ""
    if content_type.startswith(FORM_CONTENT_TYPE):
        items = {k: v for k, v in dict(body).items() if v is not None}
        return urlencode({k: _query_value(v) for k, v in items.items()}).encode("ascii")

    if not content_type:
        headers["Content-Type"] = JSON_CONTENT_TYPE
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


def _header(headers: dict[str, str], name: str) -> str | None:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def build_fetch_params(
    base_url: str,
    descriptor: RequestDescriptor,
    *,
    default_headers: dict[str, str] | None = None,
    options: RequestOptions | None = None,
) -> FetchParams:
    """Resolve a descriptor into the fetch parameters of a first attempt.

    Header precedence is client defaults, then descriptor headers, then
    per-call option headers; ``None`` values remove a header.
    """
    url = base_url.rstrip("/") + descriptor.path
    if descriptor.query:
        query = querystring(descriptor.query)
        if query:
            url = f"{url}?{query}"

    merged: dict[str, str | None] = dict(DEFAULT_HEADERS)
    merged.update(default_headers or {})
    merged.update(descriptor.headers)
    if options is not None:
        merged.update(options.headers)
    headers = {k: v for k, v in merged.items() if v is not None}

    content = encode_body(descriptor.body, headers)
    return FetchParams(url=url, method=descriptor.method, headers=headers, content=content)


def json_body(response: httpx.Response) -> Any:
    """Decode a JSON response body; empty bodies decode to None.

    Raises:
        ResponseError: If the body is not valid JSON.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise ResponseError(
            response.status_code,
            response.text,
            response.headers,
            "Response returned an invalid JSON body",
        ) from e


def create_async_http_client(timeout: float) -> httpx.AsyncClient:
    """Create the default transport.

    Args:
        timeout: Per-attempt timeout in seconds.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=False)
