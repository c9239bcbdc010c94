"""Token endpoint grant execution.

Every OAuth grant follows the same steps: check the grant-specific
parameters, add client authentication, POST a form body to the token
endpoint and validate the returned ID token, if any.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError, ErrorCode, ResponseError
from ..http import FORM_CONTENT_TYPE, RequestDescriptor, json_body
from ..models import TokenSet
from ..telemetry import trace_operation
from .client_authentication import add_client_authentication

if TYPE_CHECKING:
    import httpx

    from ..config import ClientCredentialsConfig
    from ..http import RequestOptions
    from ..models import IDTokenValidateOptions
    from .http_executor import AsyncHTTPExecutor
    from .id_token_validator import IDTokenValidator

TOKEN_PATH = "/oauth/token"
TOKEN_REQUEST_HEADERS = {"Content-Type": FORM_CONTENT_TYPE}


def validate_required_params(params: Mapping[str, Any], names: Iterable[str]) -> None:
    """Check that every named parameter is present.

    Raises:
        ConfigurationError: Naming the first missing parameter.
    """
    for name in names:
        if params.get(name) is None:
            msg = f"Required parameter '{name}' was null or undefined."
            raise ConfigurationError(msg, field=name, code=ErrorCode.REQUIRED_PARAMETER)


def build_grant_body(
    grant_type: str,
    params: Mapping[str, Any],
    credentials: ClientCredentialsConfig,
    *,
    required_client_auth: bool,
) -> dict[str, Any]:
    """Build an authenticated token request body.

    ``grant_type`` and ``client_id`` come first, then the grant
    parameters, then the client authentication fields. ``None`` values
    are left out when the body is encoded.
    """
    body: dict[str, Any] = {"grant_type": grant_type, "client_id": credentials.client_id}
    body.update(params)
    return add_client_authentication(body, credentials, required=required_client_auth)


async def post_form(
    executor: AsyncHTTPExecutor,
    body: dict[str, Any],
    *,
    path: str = TOKEN_PATH,
    options: RequestOptions | None = None,
) -> httpx.Response:
    """POST a form-encoded body through the Authentication API pipeline."""
    return await executor.execute(
        RequestDescriptor(
            path=path,
            method="POST",
            headers=dict(TOKEN_REQUEST_HEADERS),
            body=body,
        ),
        options,
    )


async def token_request(
    executor: AsyncHTTPExecutor,
    body: dict[str, Any],
    *,
    path: str = TOKEN_PATH,
    options: RequestOptions | None = None,
) -> Any:
    """POST a form body and return the decoded JSON response."""
    return json_body(await post_form(executor, body, path=path, options=options))


async def grant(
    executor: AsyncHTTPExecutor,
    grant_type: str,
    params: Mapping[str, Any],
    *,
    credentials: ClientCredentialsConfig,
    id_token_validator: IDTokenValidator,
    required_client_auth: bool = True,
    id_token_validate_options: IDTokenValidateOptions | None = None,
    validate_id_token: bool = True,
    options: RequestOptions | None = None,
) -> TokenSet:
    """Perform an OAuth 2.0 grant against the token endpoint.

    Args:
        executor: Authentication API request pipeline.
        grant_type: Value of the ``grant_type`` parameter.
        params: Grant-specific body parameters.
        credentials: Client credentials used for client authentication.
        id_token_validator: Validator for a returned ID token.
        required_client_auth: Fail when no client authentication is available.
        id_token_validate_options: Expected nonce, max age and organization.
        validate_id_token: Set to False to skip ID token validation.
        options: Per-call request overrides.

    Returns:
        The token set.

    Raises:
        ConfigurationError: If client authentication is required but missing.
        IdTokenValidationError: If the returned ID token is invalid.
        ApiError: If the token endpoint rejects the request.
    """
    with trace_operation("grant", attributes={"grant_type": grant_type}):
        body = build_grant_body(
            grant_type,
            params,
            credentials,
            required_client_auth=required_client_auth,
        )
        response = await post_form(executor, body, options=options)
        try:
            token_set = TokenSet.model_validate(json_body(response))
        except PydanticValidationError as e:
            raise ResponseError(
                response.status_code,
                response.text,
                response.headers,
                "Token endpoint returned an invalid token set",
            ) from e

        if token_set.id_token and validate_id_token:
            await id_token_validator.validate(token_set.id_token, id_token_validate_options)
        return token_set
