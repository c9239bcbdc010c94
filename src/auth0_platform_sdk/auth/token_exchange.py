"""Token exchange grants (RFC 8693).

Custom token exchange swaps an externally issued token for platform
tokens; federated connection exchange swaps a refresh token for an
access token of an upstream identity provider.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from ..core.grant import validate_required_params
from ..errors import ConfigurationError
from .base import BaseAuthAPI

if TYPE_CHECKING:
    from ..http import RequestOptions
    from ..models import IDTokenValidateOptions, TokenSet

TOKEN_EXCHANGE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:token-exchange"

FEDERATED_CONNECTION_GRANT_TYPE = (
    "urn:auth0:params:oauth:grant-type:token-exchange:federated-connection-access-token"
)
FEDERATED_CONNECTION_SUBJECT_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:refresh_token"
FEDERATED_CONNECTION_REQUESTED_TOKEN_TYPE = (
    "http://auth0.com/oauth/token-type/federated-connection-access-token"
)

RESERVED_SUBJECT_TOKEN_TYPES = (
    re.compile(r"^urn:ietf:params:oauth:", re.IGNORECASE),
    re.compile(r"^https://auth0\.com/", re.IGNORECASE),
    re.compile(r"^urn:auth0:", re.IGNORECASE),
)


def validate_subject_token_type(subject_token_type: str) -> None:
    """Reject token types in namespaces reserved by the platform.

    Raises:
        ConfigurationError: If the token type is reserved.
    """
    if any(pattern.match(subject_token_type) for pattern in RESERVED_SUBJECT_TOKEN_TYPES):
        msg = (
            f"Invalid subject_token_type '{subject_token_type}'. "
            "Reserved namespaces are prohibited. Use URIs under your organization's control."
        )
        raise ConfigurationError(msg, field="subject_token_type")


class TokenExchange(BaseAuthAPI):
    """Custom and federated connection token exchange."""

    async def exchange_token(
        self,
        subject_token: str,
        subject_token_type: str,
        audience: str,
        *,
        scope: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> TokenSet:
        """Exchange an external token through a custom token exchange profile.

        Args:
            subject_token: Token issued by the external system.
            subject_token_type: Profile identifier, a URI you control.
            audience: API the access token is for.
            scope: Requested scopes.
            id_token_validate_options: Expected nonce, max age and organization.
            validate_id_token: Set to False to skip ID token validation.
            options: Per-call request overrides.
            **extra: Additional body parameters.

        Returns:
            The token set.
        """
        params = {
            "subject_token": subject_token,
            "subject_token_type": subject_token_type,
            "audience": audience,
            "scope": scope,
            **extra,
        }
        validate_required_params(params, ["subject_token", "subject_token_type", "audience"])
        validate_subject_token_type(subject_token_type)
        return await self._grant(
            TOKEN_EXCHANGE_GRANT_TYPE,
            params,
            required_client_auth=True,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    async def exchange_for_connection_token(
        self,
        refresh_token: str | None,
        connection: str,
        *,
        login_hint: str | None = None,
        options: RequestOptions | None = None,
    ) -> TokenSet:
        """Get an upstream identity provider access token for a connection.

        Args:
            refresh_token: Platform refresh token of the user.
            connection: Name of the federated connection.
            login_hint: Upstream account to use when the user has several.
            options: Per-call request overrides.

        Returns:
            The upstream access token set.

        Raises:
            ConfigurationError: If ``refresh_token`` is missing.
        """
        if not refresh_token:
            msg = "refresh_token not present"
            raise ConfigurationError(msg, field="refresh_token")
        validate_required_params({"connection": connection}, ["connection"])
        return await self._grant(
            FEDERATED_CONNECTION_GRANT_TYPE,
            {
                "subject_token": refresh_token,
                "subject_token_type": FEDERATED_CONNECTION_SUBJECT_TOKEN_TYPE,
                "requested_token_type": FEDERATED_CONNECTION_REQUESTED_TOKEN_TYPE,
                "connection": connection,
                "login_hint": login_hint,
            },
            required_client_auth=True,
            validate_id_token=False,
            options=options,
        )
