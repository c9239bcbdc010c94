"""OAuth 2.0 grants and token endpoint operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..core.grant import token_request, validate_required_params
from ..models import PushedAuthorizationResponse
from ..telemetry import traced_async
from .base import BaseAuthAPI, without_none

if TYPE_CHECKING:
    from ..http import RequestOptions
    from ..models import IDTokenValidateOptions, TokenSet

PASSWORD_REALM_GRANT_TYPE = "http://auth0.com/oauth/grant-type/password-realm"


class OAuth(BaseAuthAPI):
    """Token endpoint grants, refresh token revocation and PAR."""

    @traced_async("authorization_code_grant")
    async def authorization_code_grant(
        self,
        code: str,
        *,
        redirect_uri: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> TokenSet:
        """Exchange an authorization code for tokens.

        Confidential clients only; the client must authenticate.

        Args:
            code: Code returned by the authorization endpoint.
            redirect_uri: Redirect URI sent to the authorization endpoint.
            id_token_validate_options: Expected nonce, max age and organization.
            validate_id_token: Set to False to skip ID token validation.
            options: Per-call request overrides.
            **extra: Additional body parameters.

        Returns:
            The token set.
        """
        params = {"code": code, "redirect_uri": redirect_uri, **extra}
        validate_required_params(params, ["code"])
        return await self._grant(
            "authorization_code",
            params,
            required_client_auth=True,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    @traced_async("authorization_code_grant_with_pkce")
    async def authorization_code_grant_with_pkce(
        self,
        code: str,
        code_verifier: str,
        *,
        redirect_uri: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> TokenSet:
        """Exchange an authorization code using PKCE.

        Public clients may call this without client authentication.
        """
        params = {
            "code": code,
            "code_verifier": code_verifier,
            "redirect_uri": redirect_uri,
            **extra,
        }
        validate_required_params(params, ["code", "code_verifier"])
        return await self._grant(
            "authorization_code",
            params,
            required_client_auth=False,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    @traced_async("client_credentials_grant")
    async def client_credentials_grant(
        self,
        audience: str,
        *,
        organization: str | None = None,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> TokenSet:
        """Request a machine-to-machine token for an API.

        Args:
            audience: Identifier of the target API.
            organization: Organization to issue the token for.
            options: Per-call request overrides.
            **extra: Additional body parameters.

        Returns:
            The token set.
        """
        params = {"audience": audience, "organization": organization, **extra}
        validate_required_params(params, ["audience"])
        return await self._grant(
            "client_credentials",
            params,
            required_client_auth=True,
            options=options,
        )

    @traced_async("password_grant")
    async def password_grant(
        self,
        username: str,
        password: str,
        *,
        realm: str | None = None,
        audience: str | None = None,
        scope: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> TokenSet:
        """Resource owner password grant.

        With a ``realm`` the password-realm extension grant is used so the
        credentials are checked against that connection only.
        """
        params = {
            "username": username,
            "password": password,
            "realm": realm,
            "audience": audience,
            "scope": scope,
            **extra,
        }
        validate_required_params(params, ["username", "password"])
        return await self._grant(
            PASSWORD_REALM_GRANT_TYPE if realm else "password",
            params,
            required_client_auth=False,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    @traced_async("refresh_token_grant")
    async def refresh_token_grant(
        self,
        refresh_token: str,
        *,
        scope: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
        **extra: Any,
    ) -> TokenSet:
        """Exchange a refresh token for a new access token."""
        params = {"refresh_token": refresh_token, "scope": scope, **extra}
        validate_required_params(params, ["refresh_token"])
        return await self._grant(
            "refresh_token",
            params,
            required_client_auth=False,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    @traced_async("revoke_refresh_token")
    async def revoke_refresh_token(
        self,
        token: str,
        *,
        options: RequestOptions | None = None,
    ) -> None:
        """Revoke a refresh token."""
        body: dict[str, Any] = {"client_id": self.client_id, "token": token}
        validate_required_params(body, ["token"])
        self.add_client_authentication(body, required=False)
        await self._post_json("/oauth/revoke", body, options)

    @traced_async("pushed_authorization_request")
    async def pushed_authorization_request(
        self,
        response_type: str,
        redirect_uri: str,
        *,
        options: RequestOptions | None = None,
        **params: Any,
    ) -> PushedAuthorizationResponse:
        """Push authorization request parameters (RFC 9126).

        Args:
            response_type: OAuth response type, e.g. ``code``.
            redirect_uri: Where the user is sent after authorization.
            options: Per-call request overrides.
            **params: Any other authorization request parameters.

        Returns:
            The ``request_uri`` to send to ``/authorize`` and its lifetime.
        """
        body: dict[str, Any] = {
            "client_id": self.client_id,
            "response_type": response_type,
            "redirect_uri": redirect_uri,
            **without_none(params),
        }
        validate_required_params(body, ["response_type", "redirect_uri"])
        self.add_client_authentication(body, required=True)
        data = await token_request(self._executor, body, path="/oauth/par", options=options)
        return PushedAuthorizationResponse.model_validate(data)
