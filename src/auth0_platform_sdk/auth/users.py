"""OIDC UserInfo endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..http import RequestDescriptor, json_body
from ..models import UserInfo

if TYPE_CHECKING:
    from ..core.http_executor import AsyncHTTPExecutor
    from ..http import RequestOptions


class Users:
    """Profile of the user an access token was issued for.

    Errors raised here carry ``source=userinfo``.
    """

    def __init__(self, executor: AsyncHTTPExecutor) -> None:
        self._executor = executor

    async def get_user_info(
        self,
        access_token: str,
        *,
        options: RequestOptions | None = None,
    ) -> UserInfo:
        """Fetch the user's profile with an access token."""
        response = await self._executor.execute(
            RequestDescriptor(
                path="/userinfo",
                method="GET",
                headers={"Authorization": f"Bearer {access_token}"},
            ),
            options,
        )
        return UserInfo.model_validate(json_body(response))
