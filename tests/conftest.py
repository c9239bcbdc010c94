"""
Shared test fixtures for Auth0 Platform SDK tests.

Provides configurations, a routing mock transport, signing keys and
ID token factories.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from auth0_platform_sdk.config import (
    AuthenticationClientConfig,
    ManagementClientConfig,
    RetryConfig,
    TelemetryConfig,
)

DOMAIN = "t.example.com"
ISSUER = f"https://{DOMAIN}/"
CLIENT_ID = "cid"
CLIENT_SECRET = "secret"
HS256_SECRET = "a-client-secret-that-is-long-enough-for-hs256"
KID = "test-key-1"


@dataclass
class Route:
    """Canned reply of the mock API."""

    status: int = 200
    json: Any = None
    text: str | None = None
    headers: dict[str, str] | None = None
    raises: Exception | None = None
    handler: Callable[[httpx.Request], httpx.Response] | None = None

    def respond(self, request: httpx.Request) -> httpx.Response:
        if self.raises is not None:
            raise self.raises
        if self.handler is not None:
            return self.handler(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text, headers=self.headers)
        if self.json is None:
            return httpx.Response(self.status, headers=self.headers)
        return httpx.Response(self.status, json=self.json, headers=self.headers)


class MockAPI:
    """Routes requests by method and path to queued replies.

    Replies for a route are consumed in order; the last one repeats.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Route]] = {}
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def add(self, method: str, path: str, *replies: Route) -> MockAPI:
        self._routes.setdefault((method, path), []).extend(replies or (Route(),))
        return self

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "not_found"})
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        return route.respond(request)


class RecordingSleep:
    """Sleep replacement that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def form(request: httpx.Request) -> dict[str, str]:
    """Decode a form encoded request body."""
    return dict(httpx.QueryParams(request.content.decode()))


def json_payload(request: httpx.Request) -> Any:
    """Decode a JSON request body."""
    return json.loads(request.content)


@pytest.fixture
def mock_api() -> MockAPI:
    """Provide a routing mock of the Auth0 APIs."""
    return MockAPI()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Provide a sleep that returns immediately and records delays."""
    return RecordingSleep()


@pytest.fixture
def clock() -> FakeClock:
    """Provide a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def auth_config() -> AuthenticationClientConfig:
    """Provide a basic Authentication client configuration."""
    return AuthenticationClientConfig(
        domain=DOMAIN,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
    )


@pytest.fixture
def hs256_config() -> AuthenticationClientConfig:
    """Provide a configuration validating HS256 ID tokens."""
    return AuthenticationClientConfig(
        domain=DOMAIN,
        client_id=CLIENT_ID,
        client_secret=HS256_SECRET,
        id_token_signing_alg="HS256",
    )


@pytest.fixture
def management_config() -> ManagementClientConfig:
    """Provide a Management client configuration using client credentials."""
    return ManagementClientConfig(
        domain=DOMAIN,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    """Provide retry configuration for testing."""
    return RetryConfig(max_retries=3)


@pytest.fixture
def telemetry_disabled() -> TelemetryConfig:
    """Provide telemetry configuration without the client info header."""
    return TelemetryConfig(enabled=False)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Provide an RSA key pair for signing tokens."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    """Provide the RSA private key in PEM form."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def jwks_document(rsa_private_key: rsa.RSAPrivateKey) -> dict[str, Any]:
    """Provide a JWKS publishing the public half of the RSA key."""
    jwk = json.loads(jwt.algorithms.RSAAlgorithm.to_jwk(rsa_private_key.public_key()))
    jwk.update({"kid": KID, "use": "sig", "alg": "RS256"})
    return {"keys": [jwk]}


@pytest.fixture
def id_token_factory(rsa_private_pem: str) -> Callable[..., str]:
    """Provide a factory for signed ID tokens.

    Tokens are issued now, expire in an hour and carry the test issuer,
    subject and audience unless overridden; ``remove`` drops claims.
    """

    def factory(
        claims: dict[str, Any] | None = None,
        *,
        remove: tuple[str, ...] = (),
        algorithm: str = "RS256",
        key: Any = None,
        headers: dict[str, Any] | None = None,
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": ISSUER,
            "sub": "auth0|user-1",
            "aud": CLIENT_ID,
            "iat": now,
            "exp": now + 3600,
        }
        payload.update(claims or {})
        for name in remove:
            payload.pop(name, None)

        if algorithm == "HS256":
            signing_key = key or HS256_SECRET
            token_headers = headers
        else:
            signing_key = key or rsa_private_pem
            token_headers = {"kid": KID} if headers is None else headers
        return jwt.encode(payload, signing_key, algorithm=algorithm, headers=token_headers)

    return factory
