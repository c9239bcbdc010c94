"""Access token providers for the Management API.

``TokenProvider`` caches a client credentials token and refreshes it with
a single in-flight request no matter how many callers are waiting.
``StaticTokenProvider`` wraps a caller-supplied token or token callable.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from ..config import TokenSupplier
    from ..models import TokenSet

# Seconds subtracted from a token's lifetime before it is considered stale.
LEEWAY = 10

TokenFetcher = Callable[[], Awaitable["TokenSet"]]


class TokenProvider:
    """Single-flight cache around a client credentials grant."""

    def __init__(
        self,
        fetch_token: TokenFetcher,
        *,
        enable_cache: bool = True,
        cache_ttl_seconds: int | None = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        """Initialize token provider.

        Args:
            fetch_token: Coroutine function performing the grant.
            enable_cache: When False every call performs a grant.
            cache_ttl_seconds: Fixed cache lifetime overriding ``expires_in``.
            now: Clock, in seconds since the epoch.
        """
        if cache_ttl_seconds is not None and cache_ttl_seconds <= 0:
            msg = "cache_ttl_seconds must be greater than 0"
            raise ValueError(msg)

        self._fetch_token = fetch_token
        self.enable_cache = enable_cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self._now = now
        self._logger = get_logger()

        self._access_token = ""
        self._expires_at: float = 0
        self._refresh_at: float = 0
        self._pending: asyncio.Future[str] | None = None

    @property
    def expires_at(self) -> float:
        """Nominal expiry of the cached token (0 when empty)."""
        return self._expires_at

    @property
    def is_cached(self) -> bool:
        """Check if a usable token is cached."""
        return bool(self._access_token) and self._now() < self._refresh_at

    async def get_access_token(self) -> str:
        """Return a usable access token, refreshing it when needed.

        Concurrent callers share one refresh; a failed refresh is raised to
        every waiter and leaves the cache empty for the next call.
        """
        if not self.enable_cache:
            token_set = await self._fetch_token()
            return token_set.access_token

        if self.is_cached:
            return self._access_token

        # No await between the check and the assignment.
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._pending)

    async def _refresh(self) -> str:
        try:
            with trace_operation("token_refresh"):
                token_set = await self._fetch_token()
            issued_at = self._now()
            self._access_token = token_set.access_token
            self._expires_at = issued_at + token_set.expires_in
            self._refresh_at = issued_at + self._cache_lifetime(token_set.expires_in)
            self._logger.debug("Access token refreshed", expires_in=token_set.expires_in)
            return token_set.access_token
        finally:
            self._pending = None

    def _cache_lifetime(self, expires_in: int) -> float:
        if self.cache_ttl_seconds is not None:
            return self.cache_ttl_seconds
        # Short-lived tokens would be stale on arrival with the leeway applied.
        if expires_in <= LEEWAY:
            return expires_in
        return expires_in - LEEWAY

    def invalidate(self) -> None:
        """Drop the cached token."""
        self._access_token = ""
        self._expires_at = 0
        self._refresh_at = 0


class StaticTokenProvider:
    """Token provider for a caller-managed token."""

    def __init__(self, token: TokenSupplier) -> None:
        """Initialize static token provider.

        Args:
            token: The token itself, or a sync or async callable returning it.
        """
        self._token = token

    async def get_access_token(self) -> str:
        """Return the token, calling the supplier on every request.

        Returns:
            The current access token.
        """
        if isinstance(self._token, str):
            return self._token
        token = self._token()
        if inspect.isawaitable(token):
            token = await token
        return token
