"""Core runtime of the Auth0 Platform SDK.

Request pipeline, client authentication, ID token validation, token
caching and grant execution shared by the Authentication and Management
clients.
"""

from __future__ import annotations

from .client_authentication import add_client_authentication, create_client_assertion
from .errors import ErrorFactory
from .grant import grant, validate_required_params
from .http_executor import AsyncHTTPExecutor
from .id_token_validator import IDTokenValidator
from .token_provider import StaticTokenProvider, TokenProvider

__all__ = [
    "ErrorFactory",
    "AsyncHTTPExecutor",
    "IDTokenValidator",
    "TokenProvider",
    "StaticTokenProvider",
    "add_client_authentication",
    "create_client_assertion",
    "grant",
    "validate_required_params",
]
