"""JWKS caching for ID token validation.

Async-safe JWKS cache with configurable TTL. Keys are fetched through the
Authentication API request pipeline so they share its transport, timeout
and telemetry.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import jwt
from pydantic import ValidationError as PydanticValidationError

from .errors import IdTokenValidationError
from .http import RequestDescriptor
from .models import JWK, JWKS

if TYPE_CHECKING:
    from .core.http_executor import AsyncHTTPExecutor

JWKS_PATH = "/.well-known/jwks.json"


class AsyncJWKSCache:
    """Async JWKS cache with configurable TTL."""

    def __init__(
        self,
        executor: AsyncHTTPExecutor,
        *,
        path: str = JWKS_PATH,
        ttl_seconds: int = 600,
        cooldown_seconds: int = 30,
        now: Callable[[], float] = time.time,
    ) -> None:
        """Initialize async JWKS cache.

        Args:
            executor: Request pipeline of the issuing tenant.
            path: Path of the key set relative to the executor base URL.
            ttl_seconds: Cache TTL in seconds.
            cooldown_seconds: Minimum time between two refreshes forced by an
                unknown ``kid``.
            now: Clock, in seconds since the epoch.
        """
        self._executor = executor
        self.path = path
        self.ttl_seconds = ttl_seconds
        self.cooldown_seconds = cooldown_seconds
        self._now = now

        self._jwks: JWKS | None = None
        self._cache_time: float = 0
        self._forced_refresh_time: float | None = None
        self._lock = asyncio.Lock()

    async def get_signing_key(self, kid: str | None, alg: str) -> Any:
        """Get the verification key for a token header.

        An unknown ``kid`` triggers one forced refresh before giving up, so
        rotated keys are picked up without waiting for the TTL. Forced
        refreshes are at most one per ``cooldown_seconds``.

        Args:
            kid: Key ID from the token header, if any.
            alg: Signing algorithm from the token header.

        Returns:
            Key object suitable for ``jwt.decode``.

        Raises:
            IdTokenValidationError: If no matching key is published.
        """
        async with self._lock:
            if self._should_refresh():
                await self._refresh()

            jwk = self._select(kid)
            if jwk is None and kid is not None and self._may_force_refresh():
                self._forced_refresh_time = self._now()
                await self._refresh()
                jwk = self._select(kid)

        if jwk is None:
            msg = f'No key found in the JWKS matching kid "{kid}"'
            raise IdTokenValidationError(msg, claim="kid", found=kid)

        try:
            return jwt.PyJWK(jwk.model_dump(exclude_none=True), algorithm=alg).key
        except jwt.exceptions.PyJWKError as e:
            msg = f"Unusable key in the JWKS: {e}"
            raise IdTokenValidationError(msg, claim="kid", found=kid) from e

    def _select(self, kid: str | None) -> JWK | None:
        if self._jwks is None:
            return None
        if kid is not None:
            return self._jwks.get_key(kid)
        keys = self._jwks.get_signing_keys()
        return keys[0] if len(keys) == 1 else None

    def _may_force_refresh(self) -> bool:
        if self._forced_refresh_time is None:
            return True
        return self._now() - self._forced_refresh_time >= self.cooldown_seconds

    def _should_refresh(self) -> bool:
        """Check if cache should be refreshed."""
        if self._jwks is None:
            return True
        return self._now() - self._cache_time > self.ttl_seconds

    async def _refresh(self) -> None:
        """Refresh JWKS from server."""
        response = await self._executor.execute(RequestDescriptor(path=self.path))
        try:
            self._jwks = JWKS.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            msg = f"Failed to parse JWKS: {e}"
            raise IdTokenValidationError(msg) from e
        self._cache_time = self._now()

    async def invalidate(self) -> None:
        """Invalidate the cache, forcing refresh on next access."""
        async with self._lock:
            self._jwks = None
            self._cache_time = 0
            self._forced_refresh_time = None

    @property
    def is_cached(self) -> bool:
        """Check if JWKS is currently cached."""
        return self._jwks is not None and not self._should_refresh()
