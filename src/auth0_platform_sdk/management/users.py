"""Users resource of the Management API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

if TYPE_CHECKING:
    from ..http import RequestOptions
    from . import ManagementClient


def _user_path(user_id: str) -> str:
    return f"/users/{quote(user_id, safe='')}"


class UsersManager:
    """CRUD operations on users."""

    def __init__(self, client: ManagementClient) -> None:
        self._client = client

    async def get(
        self,
        user_id: str,
        *,
        fields: list[str] | None = None,
        include_fields: bool | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Get a user by ID."""
        query = {
            "fields": ",".join(fields) if fields else None,
            "include_fields": include_fields,
        }
        return await self._client.request("GET", _user_path(user_id), query=query, options=options)

    async def list(
        self,
        *,
        page: int | None = None,
        per_page: int | None = None,
        include_totals: bool | None = None,
        q: str | None = None,
        sort: str | None = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """List or search users.

        Returns:
            A list of users, or a page object when ``include_totals`` is set.
        """
        query = {
            "page": page,
            "per_page": per_page,
            "include_totals": include_totals,
            "q": q,
            "sort": sort,
        }
        return await self._client.request("GET", "/users", query=query, options=options)

    async def create(
        self,
        data: dict[str, Any],
        *,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Create a user."""
        return await self._client.request("POST", "/users", body=data, options=options)

    async def update(
        self,
        user_id: str,
        data: dict[str, Any],
        *,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Update a user's attributes."""
        return await self._client.request(
            "PATCH", _user_path(user_id), body=data, options=options
        )

    async def delete(
        self,
        user_id: str,
        *,
        options: RequestOptions | None = None,
    ) -> None:
        """Delete a user."""
        await self._client.request("DELETE", _user_path(user_id), options=options)
