"""Error classes for the Auth0 Platform SDK.

Implements a structured error hierarchy with stable error codes. HTTP
failures from the Authentication, Management and UserInfo APIs share a
single ``ApiError`` shape tagged with the API that produced it.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

import httpx


class ErrorCode(StrEnum):
    """Standardized error codes for the Auth0 Platform SDK."""

    # Configuration errors (1xxx)
    INVALID_CONFIG = "CFG_1001"
    REQUIRED_PARAMETER = "CFG_1002"

    # ID token validation errors (2xxx)
    ID_TOKEN_INVALID = "IDT_2001"

    # Transport errors (3xxx)
    NETWORK_ERROR = "NET_3001"
    TIMEOUT_ERROR = "NET_3002"
    REQUEST_ABORTED = "NET_3003"

    # HTTP status errors (4xxx)
    RESPONSE_ERROR = "HTTP_4001"
    API_ERROR = "HTTP_4002"
    RETRY_EXHAUSTED = "HTTP_4003"


class ApiErrorSource(StrEnum):
    """API family that produced an ``ApiError``."""

    AUTHENTICATION = "authentication"
    MANAGEMENT = "management"
    USERINFO = "userinfo"


class Auth0Error(Exception):
    """Base error for the Auth0 Platform SDK with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if isinstance(code, str) else code.value
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(Auth0Error):
    """Invalid or missing SDK configuration or request parameters."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        code: ErrorCode = ErrorCode.INVALID_CONFIG,
    ) -> None:
        super().__init__(
            message,
            code,
            details={"field": field} if field else None,
        )
        self.field = field


class TransportError(Auth0Error):
    """The HTTP exchange failed before a response was received."""

    def __init__(
        self,
        message: str = (
            "The request failed and the interceptors did not return an alternative response"
        ),
        *,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.NETWORK_ERROR,
            details={"cause": str(cause)} if cause else None,
        )
        self.__cause__ = cause


class TimeoutError(Auth0Error):
    """Request timed out."""

    def __init__(
        self,
        message: str = "The request was timed out.",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.TIMEOUT_ERROR,
            details={"timeout_seconds": timeout_seconds} if timeout_seconds else None,
        )
        self.timeout_seconds = timeout_seconds


class RequestAbortedError(Auth0Error):
    """The caller aborted the request."""

    def __init__(self, message: str = "The request was aborted.") -> None:
        super().__init__(message, ErrorCode.REQUEST_ABORTED)


class ResponseError(Auth0Error):
    """The API returned an error response that could not be parsed further."""

    def __init__(
        self,
        status_code: int,
        body: str,
        headers: httpx.Headers,
        message: str = "Response returned an error code",
        *,
        code: ErrorCode = ErrorCode.RESPONSE_ERROR,
    ) -> None:
        super().__init__(message, code, status_code=status_code)
        self.body = body
        self.headers = headers


class ApiError(ResponseError):
    """Parsed error response from one of the Auth0 APIs."""

    def __init__(
        self,
        *,
        source: ApiErrorSource,
        status_code: int,
        body: str,
        headers: httpx.Headers,
        error: str | None = None,
        error_description: str | None = None,
        error_code: str | None = None,
        message: str | None = None,
        code: ErrorCode = ErrorCode.API_ERROR,
    ) -> None:
        super().__init__(
            status_code,
            body,
            headers,
            message or error_description or error or f"Request failed with status {status_code}",
            code=code,
        )
        self.source = source
        self.error = error
        self.error_description = error_description
        self.error_code = error_code
        self.details = {
            "source": source.value,
            "error": error,
            "error_description": error_description,
            "error_code": error_code,
        }


class RetryExhaustedError(ApiError):
    """The final attempt still returned a retryable status."""

    def __init__(
        self,
        last_error: ResponseError,
        *,
        attempts: int,
        source: ApiErrorSource,
    ) -> None:
        if isinstance(last_error, ApiError):
            error = last_error.error
            error_description = last_error.error_description
            error_code = last_error.error_code
        else:
            error = error_description = error_code = None
        super().__init__(
            source=source,
            status_code=last_error.status_code,
            body=last_error.body,
            headers=last_error.headers,
            error=error,
            error_description=error_description,
            error_code=error_code,
            message=last_error.message,
            code=ErrorCode.RETRY_EXHAUSTED,
        )
        self.attempts = attempts
        self.details["attempts"] = attempts
        self.__cause__ = last_error


class IdTokenValidationError(Auth0Error):
    """ID token failed one of the OIDC validation rules."""

    def __init__(
        self,
        message: str,
        *,
        claim: str | None = None,
        expected: Any = None,
        found: Any = None,
    ) -> None:
        details: dict[str, Any] = {}
        if claim:
            details["claim"] = claim
        if expected is not None:
            details["expected"] = expected
        if found is not None:
            details["found"] = found
        super().__init__(message, ErrorCode.ID_TOKEN_INVALID, details=details)
        self.claim = claim
        self.expected = expected
        self.found = found
