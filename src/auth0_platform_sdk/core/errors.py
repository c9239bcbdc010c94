"""Centralized error factory for the Auth0 Platform SDK.

Turns non-2xx responses into ``ApiError`` (or ``ResponseError`` when the
body is not in a recognised shape) and transport exceptions into SDK
errors. None of these functions raise.
"""

from __future__ import annotations

import builtins
import json
from typing import Any

import httpx

from ..errors import (
    ApiError,
    ApiErrorSource,
    Auth0Error,
    ResponseError,
    TimeoutError,
    TransportError,
)


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def from_response(
        response: httpx.Response,
        source: ApiErrorSource,
    ) -> ResponseError:
        """Create an SDK error from an error response.

        Authentication API errors look like ``{error, error_description}``
        (older endpoints use ``{code, description}``); Management API
        errors look like ``{statusCode, error, message, errorCode}``.

        Args:
            response: HTTP response object.
            source: API family the response came from.

        Returns:
            ApiError, or ResponseError if the body is not parseable.
        """
        body = _read_text(response)
        try:
            data = json.loads(body)
        except ValueError:
            return ErrorFactory.generic(response, body)
        if not isinstance(data, dict):
            return ErrorFactory.generic(response, body)

        if source is ApiErrorSource.MANAGEMENT:
            return ApiError(
                source=source,
                status_code=_int_or(data.get("statusCode"), response.status_code),
                body=body,
                headers=response.headers,
                error=_str_or_none(data.get("error")),
                error_code=_str_or_none(data.get("errorCode")),
                message=_str_or_none(data.get("message")),
            )

        if "error" in data:
            error = data.get("error")
            description = data.get("error_description")
        else:
            error = data.get("code")
            description = data.get("description")
        if error is None and description is None:
            return ErrorFactory.generic(response, body)

        return ApiError(
            source=source,
            status_code=response.status_code,
            body=body,
            headers=response.headers,
            error=_str_or_none(error),
            error_description=_str_or_none(description),
        )

    @staticmethod
    def generic(response: httpx.Response, body: str | None = None) -> ResponseError:
        """Fallback error carrying the raw status and body."""
        return ResponseError(
            response.status_code,
            _read_text(response) if body is None else body,
            response.headers,
            "Response returned an error code",
        )

    @staticmethod
    def from_exception(
        exc: Exception,
        *,
        timeout_seconds: float | None = None,
    ) -> Auth0Error:
        """Create SDK error from a transport exception.

        Args:
            exc: Original exception.
            timeout_seconds: Timeout in effect for the attempt.

        Returns:
            Appropriate Auth0Error subclass.
        """
        if isinstance(exc, Auth0Error):
            return exc

        if isinstance(exc, httpx.TimeoutException | builtins.TimeoutError):
            return TimeoutError(timeout_seconds=timeout_seconds)

        return TransportError(cause=exc)


def _read_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return ""


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


def _int_or(value: Any, default: int) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else default
