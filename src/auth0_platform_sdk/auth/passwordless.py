"""Passwordless authentication over email and SMS."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from ..core.grant import validate_required_params
from .base import BaseAuthAPI, without_none

if TYPE_CHECKING:
    from ..http import RequestOptions
    from ..models import IDTokenValidateOptions, TokenSet

PASSWORDLESS_OTP_GRANT_TYPE = "http://auth0.com/oauth/grant-type/passwordless/otp"


class Passwordless(BaseAuthAPI):
    """Start a passwordless flow and exchange the one-time code."""

    async def send_email(
        self,
        email: str,
        *,
        send: Literal["link", "code"] | None = None,
        auth_params: dict[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> None:
        """Send a magic link or a one-time code by email.

        Args:
            email: Recipient address.
            send: ``link`` or ``code``; the tenant default when omitted.
            auth_params: Authorization parameters appended to a magic link.
            options: Per-call request overrides.
        """
        body = without_none(
            {
                "client_id": self.client_id,
                "connection": "email",
                "email": email,
                "send": send,
                "authParams": auth_params,
            }
        )
        validate_required_params(body, ["email"])
        self.add_client_authentication(body, required=False)
        await self._post_json("/passwordless/start", body, options)

    async def send_sms(
        self,
        phone_number: str,
        *,
        options: RequestOptions | None = None,
    ) -> None:
        """Send a one-time code by SMS."""
        body = without_none(
            {"client_id": self.client_id, "connection": "sms", "phone_number": phone_number}
        )
        validate_required_params(body, ["phone_number"])
        self.add_client_authentication(body, required=False)
        await self._post_json("/passwordless/start", body, options)

    async def login_with_email(
        self,
        email: str,
        code: str,
        *,
        audience: str | None = None,
        scope: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
    ) -> TokenSet:
        """Exchange an emailed one-time code for tokens."""
        validate_required_params({"email": email, "code": code}, ["email", "code"])
        return await self._login(
            "email",
            email,
            code,
            audience=audience,
            scope=scope,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    async def login_with_sms(
        self,
        phone_number: str,
        code: str,
        *,
        audience: str | None = None,
        scope: str | None = None,
        id_token_validate_options: IDTokenValidateOptions | None = None,
        validate_id_token: bool = True,
        options: RequestOptions | None = None,
    ) -> TokenSet:
        """Exchange a one-time code received by SMS for tokens."""
        validate_required_params(
            {"phone_number": phone_number, "code": code}, ["phone_number", "code"]
        )
        return await self._login(
            "sms",
            phone_number,
            code,
            audience=audience,
            scope=scope,
            id_token_validate_options=id_token_validate_options,
            validate_id_token=validate_id_token,
            options=options,
        )

    async def _login(
        self,
        realm: str,
        username: str,
        otp: str,
        *,
        audience: str | None,
        scope: str | None,
        **grant_kwargs: Any,
    ) -> TokenSet:
        params = {
            "username": username,
            "otp": otp,
            "realm": realm,
            "audience": audience,
            "scope": scope,
        }
        return await self._grant(
            PASSWORDLESS_OTP_GRANT_TYPE,
            params,
            required_client_auth=False,
            **grant_kwargs,
        )
