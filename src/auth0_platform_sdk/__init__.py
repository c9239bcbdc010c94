"""Auth0 Platform Python SDK."""

from .auth import AuthenticationClient, BackchannelErrorKind, classify_backchannel_error
from .config import (
    AuthenticationClientConfig,
    ClientCredentialsConfig,
    ManagementClientConfig,
    RetryConfig,
    TelemetryConfig,
)
from .errors import (
    ApiError,
    ApiErrorSource,
    Auth0Error,
    ConfigurationError,
    ErrorCode,
    IdTokenValidationError,
    RequestAbortedError,
    ResponseError,
    RetryExhaustedError,
    TimeoutError,
    TransportError,
)
from .headers import get_client_quota_limit, get_organization_quota_limit
from .http import RequestOptions
from .management import ManagementClient
from .middleware import RequestMiddleware
from .models import IDTokenValidateOptions, TokenSet
from .telemetry import configure_telemetry

__all__ = [
    "AuthenticationClient",
    "ManagementClient",
    "AuthenticationClientConfig",
    "ClientCredentialsConfig",
    "ManagementClientConfig",
    "RetryConfig",
    "TelemetryConfig",
    "RequestOptions",
    "RequestMiddleware",
    "IDTokenValidateOptions",
    "TokenSet",
    "Auth0Error",
    "ApiError",
    "ApiErrorSource",
    "ConfigurationError",
    "ErrorCode",
    "IdTokenValidationError",
    "RequestAbortedError",
    "ResponseError",
    "RetryExhaustedError",
    "TimeoutError",
    "TransportError",
    "BackchannelErrorKind",
    "classify_backchannel_error",
    "get_client_quota_limit",
    "get_organization_quota_limit",
    "configure_telemetry",
]

__version__ = "0.1.0"
