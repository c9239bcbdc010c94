"""Database connection sign up and password reset."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..core.grant import validate_required_params
from ..http import json_body
from ..models import SignUpResponse
from .base import BaseAuthAPI, without_none

if TYPE_CHECKING:
    from ..http import RequestOptions


class Database(BaseAuthAPI):
    """Users stored in a database connection."""

    async def sign_up(
        self,
        email: str,
        password: str,
        connection: str,
        *,
        options: RequestOptions | None = None,
        **profile: Any,
    ) -> SignUpResponse:
        """Create a user in a database connection.

        Args:
            email: User's email address.
            password: Initial password.
            connection: Database connection name.
            options: Per-call request overrides.
            **profile: Optional profile fields such as ``username``,
                ``given_name`` or ``user_metadata``.

        Returns:
            The created user.
        """
        body = without_none(
            {
                "client_id": self.client_id,
                "email": email,
                "password": password,
                "connection": connection,
                **profile,
            }
        )
        validate_required_params(body, ["email", "password", "connection"])
        response = await self._post_json("/dbconnections/signup", body, options)
        return SignUpResponse.model_validate(json_body(response))

    async def change_password(
        self,
        email: str,
        connection: str,
        *,
        organization: str | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Send a change password email.

        Returns:
            The confirmation message from the server.
        """
        body = without_none(
            {
                "client_id": self.client_id,
                "email": email,
                "connection": connection,
                "organization": organization,
            }
        )
        validate_required_params(body, ["email", "connection"])
        response = await self._post_json("/dbconnections/change_password", body, options)
        return response.text
