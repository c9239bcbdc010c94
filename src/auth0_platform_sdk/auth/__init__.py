"""Authentication API client.

Groups the grant, passwordless, CIBA, token exchange, database and
UserInfo surfaces over one request pipeline and one ID token validator.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Self

from pydantic import ValidationError as PydanticValidationError

from ..config import AuthenticationClientConfig
from ..core.http_executor import AsyncHTTPExecutor, Sleep
from ..core.id_token_validator import IDTokenValidator
from ..errors import ApiErrorSource, ConfigurationError
from ..http import create_async_http_client
from ..jwks import AsyncJWKSCache
from ..middleware import RequestMiddleware, TelemetryMiddleware
from ..telemetry import get_logger
from .backchannel import Backchannel, BackchannelErrorKind, classify_backchannel_error
from .database import Database
from .oauth import OAuth
from .passwordless import Passwordless
from .token_exchange import TokenExchange
from .users import Users

if TYPE_CHECKING:
    from ..http import HttpTransport


class AuthenticationClient:
    """Asynchronous Authentication API client."""

    def __init__(
        self,
        config: AuthenticationClientConfig | None = None,
        *,
        transport: HttpTransport | None = None,
        middleware: Sequence[RequestMiddleware] = (),
        sleep: Sleep = asyncio.sleep,
        **kwargs: Any,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; built from ``kwargs`` when omitted.
            transport: HTTP transport; an ``httpx.AsyncClient`` is created
                (and closed by ``close``) when omitted.
            middleware: Extra middleware run after the telemetry middleware.
            sleep: Coroutine used for retry backoff waits.
            **kwargs: Fields of ``AuthenticationClientConfig``.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        if config is None:
            try:
                config = AuthenticationClientConfig(**kwargs)
            except PydanticValidationError as e:
                raise ConfigurationError(str(e)) from e

        self.config = config
        self._owns_transport = transport is None
        self._transport = transport or create_async_http_client(config.timeout)
        self._logger = get_logger()

        chain: list[RequestMiddleware] = []
        if config.telemetry.enabled:
            chain.append(TelemetryMiddleware(config.telemetry.client_info))
        chain.extend(middleware)

        self._executor = self._create_executor(ApiErrorSource.AUTHENTICATION, chain, sleep)
        self.jwks = AsyncJWKSCache(self._executor, ttl_seconds=600)
        self.id_token_validator = IDTokenValidator(config, self.jwks)

        self.oauth = OAuth(config, self._executor, self.id_token_validator)
        self.passwordless = Passwordless(config, self._executor, self.id_token_validator)
        self.backchannel = Backchannel(config, self._executor, self.id_token_validator)
        self.token_exchange = TokenExchange(config, self._executor, self.id_token_validator)
        self.database = Database(config, self._executor, self.id_token_validator)
        self.users = Users(self._create_executor(ApiErrorSource.USERINFO, chain, sleep))

    def _create_executor(
        self,
        source: ApiErrorSource,
        middleware: Sequence[RequestMiddleware],
        sleep: Sleep,
    ) -> AsyncHTTPExecutor:
        return AsyncHTTPExecutor(
            self._transport,
            base_url=self.config.base_url,
            source=source,
            retry_config=self.config.retry,
            timeout=self.config.timeout,
            middleware=middleware,
            default_headers=self.config.headers,
            sleep=sleep,
        )

    @property
    def executor(self) -> AsyncHTTPExecutor:
        """Request pipeline of the Authentication API."""
        return self._executor

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_transport:
            await self._transport.aclose()  # type: ignore[attr-defined]


__all__ = [
    "AuthenticationClient",
    "Backchannel",
    "BackchannelErrorKind",
    "Database",
    "OAuth",
    "Passwordless",
    "TokenExchange",
    "Users",
    "classify_backchannel_error",
]
