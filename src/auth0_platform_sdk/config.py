"""Configuration for the Auth0 Platform SDK.

Uses Pydantic v2 for validation with sensible defaults. The retry,
telemetry and credential blocks are shared by the Authentication and
Management clients.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

# Upper bound on retries regardless of configuration.
MAX_NUMBER_RETRIES = 10

DEFAULT_TIMEOUT = 10.0
DEFAULT_CLOCK_TOLERANCE = 60
DEFAULT_MAX_DELAY = 120.0


class RetryConfig(BaseModel):
    """Retry configuration with deterministic exponential backoff."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    max_retries: Annotated[int, Field(ge=0, le=MAX_NUMBER_RETRIES)] = 3
    retry_when: frozenset[int] = frozenset({429})
    base_delay: Annotated[float, Field(ge=0, le=60)] = 0.25
    max_delay: Annotated[float, Field(gt=0, le=300)] = DEFAULT_MAX_DELAY

    def get_delay(self, attempt: int) -> float:
        """Calculate the wait before the given attempt (0-indexed).

        The first attempt is sent immediately; every later attempt waits
        twice as long as the previous one, capped at ``max_delay``.
        """
        if attempt <= 0:
            return 0.0
        return min(self.max_delay, (2**attempt) * self.base_delay)

    def should_retry(self, status_code: int) -> bool:
        """Check if a status code is configured as retryable."""
        return self.enabled and status_code in self.retry_when


class TelemetryConfig(BaseModel):
    """Telemetry configuration: ``Auth0-Client`` header, tracing and logging."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    client_info: dict[str, Any] | None = None
    service_name: str = "auth0-platform-sdk"
    log_level: str = "INFO"


class ClientCredentialsConfig(BaseModel):
    """How a client authenticates against the token endpoint."""

    model_config = ConfigDict(frozen=True)

    domain: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    client_secret: SecretStr | None = None
    client_assertion_signing_key: SecretStr | None = None
    client_assertion_signing_alg: str = "RS256"
    use_mtls: bool = False

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """Domains are bare host names, not URLs."""
        v = v.strip().rstrip("/")
        if "://" in v:
            msg = f"domain must be a host name without scheme, got {v!r}"
            raise ValueError(msg)
        return v

    @property
    def issuer(self) -> str:
        """Expected issuer of tokens minted by the tenant."""
        return f"https://{self.domain}/"

    @property
    def base_url(self) -> str:
        """Base URL of the Authentication API."""
        return f"https://{self.domain}"


class AuthenticationClientConfig(ClientCredentialsConfig):
    """Configuration for the Authentication API client."""

    id_token_signing_alg: Literal["RS256", "HS256"] = "RS256"
    clock_tolerance: Annotated[int, Field(ge=0)] = DEFAULT_CLOCK_TOLERANCE
    timeout: Annotated[float, Field(gt=0, le=300)] = DEFAULT_TIMEOUT
    headers: dict[str, str] = Field(default_factory=dict)

    # Retries are opt-in on the Authentication API.
    retry: RetryConfig = Field(default_factory=lambda: RetryConfig(enabled=False))
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @property
    def jwks_uri(self) -> str:
        """Location of the tenant's JSON Web Key Set."""
        return f"{self.base_url}/.well-known/jwks.json"

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "AUTH0_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        domain = get_env("DOMAIN")
        if not domain:
            msg = f"{prefix}DOMAIN environment variable is required"
            raise ValueError(msg)

        client_id = get_env("CLIENT_ID")
        if not client_id:
            msg = f"{prefix}CLIENT_ID environment variable is required"
            raise ValueError(msg)

        return cls(
            domain=domain,
            client_id=client_id,
            client_secret=get_env("CLIENT_SECRET"),
            client_assertion_signing_key=get_env("CLIENT_ASSERTION_SIGNING_KEY"),
            client_assertion_signing_alg=get_env("CLIENT_ASSERTION_SIGNING_ALG", "RS256"),
            timeout=float(get_env("TIMEOUT", str(DEFAULT_TIMEOUT))),
        )


TokenSupplier = str | Callable[[], str] | Callable[[], Awaitable[str]]


class ManagementClientConfig(BaseModel):
    """Configuration for the Management API client."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    domain: str = Field(..., min_length=1)
    audience: str | None = None

    # Either a static token (or supplier) ...
    token: TokenSupplier | None = None

    # ... or client credentials for the client credentials grant.
    client_id: str | None = None
    client_secret: SecretStr | None = None
    client_assertion_signing_key: SecretStr | None = None
    client_assertion_signing_alg: str = "RS256"
    use_mtls: bool = False

    custom_domain: str | None = None
    timeout: Annotated[float, Field(gt=0, le=300)] = DEFAULT_TIMEOUT
    headers: dict[str, str] = Field(default_factory=dict)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    # Token provider cache
    enable_cache: bool = True
    cache_ttl_seconds: Annotated[int, Field(gt=0)] | None = None

    @model_validator(mode="after")
    def validate_credentials(self) -> Self:
        """Require a token or a complete set of client credentials."""
        if self.token is not None:
            return self
        if not self.client_id:
            msg = "Must provide a token or a client_id"
            raise ValueError(msg)
        if not (self.client_secret or self.client_assertion_signing_key or self.use_mtls):
            msg = "Must provide a client_secret or a client_assertion_signing_key"
            raise ValueError(msg)
        if self.audience is None:
            object.__setattr__(self, "audience", f"https://{self.domain}/api/v2/")
        return self

    @property
    def base_url(self) -> str:
        """Base URL of the Management API."""
        return f"https://{self.domain}/api/v2"

    def credentials(self) -> ClientCredentialsConfig:
        """Client credentials used by the token provider."""
        return ClientCredentialsConfig(
            domain=self.domain,
            client_id=self.client_id or "",
            client_secret=self.client_secret,
            client_assertion_signing_key=self.client_assertion_signing_key,
            client_assertion_signing_alg=self.client_assertion_signing_alg,
            use_mtls=self.use_mtls,
        )

    @classmethod
    def from_env(cls, prefix: str = "AUTH0_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        domain = get_env("DOMAIN")
        if not domain:
            msg = f"{prefix}DOMAIN environment variable is required"
            raise ValueError(msg)

        return cls(
            domain=domain,
            audience=get_env("AUDIENCE"),
            token=get_env("MANAGEMENT_TOKEN"),
            client_id=get_env("CLIENT_ID"),
            client_secret=get_env("CLIENT_SECRET"),
            client_assertion_signing_key=get_env("CLIENT_ASSERTION_SIGNING_KEY"),
            custom_domain=get_env("CUSTOM_DOMAIN"),
            timeout=float(get_env("TIMEOUT", str(DEFAULT_TIMEOUT))),
        )
