"""Management API client.

Resource managers build a path, query and body and hand them to
``ManagementClient.request``; authentication, the custom domain header,
retries and error translation live in the request pipeline.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Self

from pydantic import ValidationError as PydanticValidationError

from ..auth import AuthenticationClient
from ..config import AuthenticationClientConfig, ManagementClientConfig
from ..core.http_executor import AsyncHTTPExecutor, Sleep
from ..core.token_provider import StaticTokenProvider, TokenProvider
from ..errors import ApiErrorSource, ConfigurationError
from ..http import RequestDescriptor, create_async_http_client, json_body
from ..middleware import (
    AccessTokenSource,
    CustomDomainHeaderMiddleware,
    RequestMiddleware,
    TelemetryMiddleware,
    TokenProviderMiddleware,
)
from .users import UsersManager

if TYPE_CHECKING:
    import httpx

    from ..http import HTTPMethod, HttpTransport, RequestOptions
    from ..models import TokenSet


class ManagementClient:
    """Asynchronous Management API client."""

    def __init__(
        self,
        config: ManagementClientConfig | None = None,
        *,
        transport: HttpTransport | None = None,
        middleware: Sequence[RequestMiddleware] = (),
        token_provider: AccessTokenSource | None = None,
        sleep: Sleep = asyncio.sleep,
        **kwargs: Any,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; built from ``kwargs`` when omitted.
            transport: HTTP transport; an ``httpx.AsyncClient`` is created
                (and closed by ``close``) when omitted.
            middleware: Extra middleware run after the built-in ones.
            token_provider: Replaces the token derived from the configuration.
            sleep: Coroutine used for retry backoff waits.
            **kwargs: Fields of ``ManagementClientConfig``.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        if config is None:
            try:
                config = ManagementClientConfig(**kwargs)
            except PydanticValidationError as e:
                raise ConfigurationError(str(e)) from e

        self.config = config
        self._owns_transport = transport is None
        self._transport = transport or create_async_http_client(config.timeout)
        self._auth: AuthenticationClient | None = None
        self.token_provider = token_provider or self._create_token_provider(sleep)

        chain: list[RequestMiddleware] = []
        if config.telemetry.enabled:
            chain.append(TelemetryMiddleware(config.telemetry.client_info))
        chain.append(TokenProviderMiddleware(self.token_provider))
        if config.custom_domain:
            chain.append(CustomDomainHeaderMiddleware(config.custom_domain))
        chain.extend(middleware)

        self._executor = AsyncHTTPExecutor(
            self._transport,
            base_url=config.base_url,
            source=ApiErrorSource.MANAGEMENT,
            retry_config=config.retry,
            timeout=config.timeout,
            middleware=chain,
            default_headers=config.headers,
            sleep=sleep,
        )

        self.users = UsersManager(self)

    def _create_token_provider(self, sleep: Sleep) -> AccessTokenSource:
        config = self.config
        if config.token is not None:
            return StaticTokenProvider(config.token)

        self._auth = AuthenticationClient(
            AuthenticationClientConfig(
                domain=config.domain,
                client_id=config.client_id,
                client_secret=config.client_secret,
                client_assertion_signing_key=config.client_assertion_signing_key,
                client_assertion_signing_alg=config.client_assertion_signing_alg,
                use_mtls=config.use_mtls,
                timeout=config.timeout,
                telemetry=config.telemetry,
            ),
            transport=self._transport,
            sleep=sleep,
        )
        oauth = self._auth.oauth
        audience = config.audience

        async def fetch_token() -> TokenSet:
            return await oauth.client_credentials_grant(audience)

        return TokenProvider(
            fetch_token,
            enable_cache=config.enable_cache,
            cache_ttl_seconds=config.cache_ttl_seconds,
        )

    @property
    def executor(self) -> AsyncHTTPExecutor:
        """Request pipeline of the Management API."""
        return self._executor

    async def request_raw(
        self,
        method: HTTPMethod,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str | None] | None = None,
        options: RequestOptions | None = None,
    ) -> httpx.Response:
        """Send a Management API request and return the raw response.

        Args:
            method: HTTP method.
            path: Path relative to ``/api/v2``, e.g. ``/users``.
            query: Query parameters; list values repeat the key.
            body: JSON body.
            headers: Extra headers; None values remove a header.
            options: Per-call request overrides.

        Returns:
            The 2xx response.
        """
        return await self._executor.execute(
            RequestDescriptor(
                path=path,
                method=method,
                headers=headers or {},
                query=query,
                body=body,
            ),
            options,
        )

    async def request(
        self,
        method: HTTPMethod,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        body: Any = None,
        headers: dict[str, str | None] | None = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a Management API request and decode the JSON response.

        Returns:
            Decoded JSON, or None for an empty response.
        """
        response = await self.request_raw(
            method, path, query=query, body=body, headers=headers, options=options
        )
        return json_body(response)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_transport:
            await self._transport.aclose()  # type: ignore[attr-defined]


__all__ = ["ManagementClient", "UsersManager"]
