"""Client-Initiated Backchannel Authentication (CIBA).

The user approves the login on a separate authorization device while
the client polls the token endpoint with the ``auth_req_id``.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from ..core.grant import token_request, validate_required_params
from ..errors import ApiError
from ..models import BackchannelAuthorizeResponse
from ..telemetry import get_logger
from .base import BaseAuthAPI, without_none

if TYPE_CHECKING:
    from ..http import RequestOptions
    from ..models import IDTokenValidateOptions, TokenSet

CIBA_GRANT_TYPE = "urn:openid:params:grant-type:ciba"
CIBA_AUTHORIZE_PATH = "/bc-authorize"

# Seconds added to the polling interval on each slow_down response.
SLOW_DOWN_INCREMENT = 5


class BackchannelErrorKind(StrEnum):
    """Token endpoint errors a CIBA client is expected to tell apart."""

    AUTHORIZATION_PENDING = "authorization_pending"
    SLOW_DOWN = "slow_down"
    ACCESS_DENIED = "access_denied"


def classify_backchannel_error(error: BaseException) -> BackchannelErrorKind | None:
    """Classify a polling failure, or None if it is not a CIBA state."""
    if not isinstance(error, ApiError) or error.error is None:
        return None
    try:
        return BackchannelErrorKind(error.error)
    except ValueError:
        return None


def build_login_hint(user_id: str, domain: str) -> str:
    """``iss_sub`` login hint identifying the user to authenticate."""
    return json.dumps(
        {"format": "iss_sub", "iss": f"https://{domain}/", "sub": user_id},
        separators=(",", ":"),
    )


class Backchannel(BaseAuthAPI):
    """CIBA authorize request and token polling."""

    async def authorize(
        self,
        user_id: str,
        binding_message: str,
        scope: str,
        *,
        audience: str | None = None,
        request_expiry: int | None = None,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> BackchannelAuthorizeResponse:
        """Start a backchannel authentication request.

        Args:
            user_id: User to authenticate, as the ``sub`` of the login hint.
            binding_message: Message shown on both devices.
            scope: Requested scopes; must include ``openid``.
            audience: API the access token is for.
            request_expiry: Requested lifetime of the request in seconds.
            options: Per-call request overrides.
            **extra: Additional body parameters.

        Returns:
            The ``auth_req_id`` with its lifetime and polling interval.
        """
        validate_required_params(
            {"user_id": user_id, "binding_message": binding_message, "scope": scope},
            ["user_id", "binding_message", "scope"],
        )
        body = without_none(
            {
                "client_id": self.client_id,
                "login_hint": build_login_hint(user_id, self.domain),
                "binding_message": binding_message,
                "scope": scope,
                "audience": audience,
                "request_expiry": request_expiry,
                **extra,
            }
        )
        self.add_client_authentication(body, required=True)
        data = await token_request(self._executor, body, path=CIBA_AUTHORIZE_PATH, options=options)
        return BackchannelAuthorizeResponse.model_validate(data)

    async def backchannel_grant(
        self,
        auth_req_id: str,
        *,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
    ) -> TokenSet:
        """Poll the token endpoint once.

        Raises:
            ApiError: With ``error`` set to ``authorization_pending`` or
                ``slow_down`` while the request is still open, or
                ``access_denied`` when the user rejected it.
        """
        params = {"auth_req_id": auth_req_id}
        validate_required_params(params, ["auth_req_id"])
        return await self._grant(
            CIBA_GRANT_TYPE,
            params,
            required_client_auth=True,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    async def poll_backchannel_grant(
        self,
        auth_req_id: str,
        *,
        interval: int = 5,
        expires_in: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        **grant_kwargs: Any,
    ) -> TokenSet:
        """Poll until the user approves or rejects the request.

        Args:
            auth_req_id: Identifier returned by ``authorize``.
            interval: Initial seconds between polls.
            expires_in: Give up once this many seconds have been waited.
            sleep: Coroutine used to wait between polls.
            **grant_kwargs: Passed through to ``backchannel_grant``.

        Returns:
            The token set once approved.

        Raises:
            ApiError: On ``access_denied``, any other terminal error, or
                the last pending error once ``expires_in`` has elapsed.
        """
        logger = get_logger()
        waited = 0
        while True:
            try:
                return await self.backchannel_grant(auth_req_id, **grant_kwargs)
            except ApiError as e:
                kind = classify_backchannel_error(e)
                if kind is BackchannelErrorKind.SLOW_DOWN:
                    interval += SLOW_DOWN_INCREMENT
                elif kind is not BackchannelErrorKind.AUTHORIZATION_PENDING:
                    raise
                if expires_in is not None and waited + interval > expires_in:
                    raise
                logger.debug("Backchannel request pending", state=kind.value, interval=interval)
            await sleep(interval)
            waited += interval
