"""Shared plumbing for the Authentication API surfaces."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..core.client_authentication import add_client_authentication
from ..core.grant import grant
from ..http import JSON_CONTENT_TYPE, RequestDescriptor

if TYPE_CHECKING:
    import httpx

    from ..config import AuthenticationClientConfig
    from ..core.http_executor import AsyncHTTPExecutor
    from ..core.id_token_validator import IDTokenValidator
    from ..http import HTTPMethod, RequestOptions
    from ..models import IDTokenValidateOptions, TokenSet


def without_none(params: Mapping[str, Any]) -> dict[str, Any]:
    """Drop parameters the caller left unset."""
    return {k: v for k, v in params.items() if v is not None}


class BaseAuthAPI:
    """Base class of the Authentication API surfaces.

    Every surface of one ``AuthenticationClient`` shares its configuration,
    request pipeline and ID token validator.
    """

    def __init__(
        self,
        config: AuthenticationClientConfig,
        executor: AsyncHTTPExecutor,
        id_token_validator: IDTokenValidator,
    ) -> None:
        self.config = config
        self._executor = executor
        self._id_token_validator = id_token_validator

    @property
    def domain(self) -> str:
        return self.config.domain

    @property
    def client_id(self) -> str:
        return self.config.client_id

    def add_client_authentication(
        self,
        payload: dict[str, Any],
        *,
        required: bool = True,
    ) -> dict[str, Any]:
        """Add this client's credentials to a request body."""
        return add_client_authentication(payload, self.config, required=required)

    async def _request(
        self,
        path: str,
        *,
        method: HTTPMethod = "POST",
        body: Any = None,
        headers: dict[str, str | None] | None = None,
        options: RequestOptions | None = None,
    ) -> httpx.Response:
        return await self._executor.execute(
            RequestDescriptor(path=path, method=method, headers=headers or {}, body=body),
            options,
        )

    async def _post_json(
        self,
        path: str,
        body: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> httpx.Response:
        return await self._request(
            path,
            body=body,
            headers={"Content-Type": JSON_CONTENT_TYPE},
            options=options,
        )

    async def _grant(
        self,
        grant_type: str,
        params: Mapping[str, Any],
        *,
        required_client_auth: bool,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
    ) -> TokenSet:
        return await grant(
            self._executor,
            grant_type,
            without_none(params),
            credentials=self.config,
            id_token_validator=self._id_token_validator,
            required_client_auth=required_client_auth,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )
