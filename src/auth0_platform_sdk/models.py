"""Pydantic models for the Auth0 Platform SDK.

Wire responses are parsed with ``extra="allow"`` so that fields the
platform adds later survive a round trip through the SDK.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TokenSet(BaseModel):
    """OAuth 2.0 token response from the token endpoint."""

    model_config = ConfigDict(frozen=True, extra="allow")

    access_token: str = Field(..., min_length=1)
    token_type: str = Field(default="Bearer")
    expires_in: int = Field(..., ge=0)
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | None = None

    @property
    def scopes(self) -> list[str]:
        """Get scopes as list."""
        if self.scope is None:
            return []
        return self.scope.split()


class IDTokenClaims(BaseModel):
    """Decoded, unverified claims of an ID token."""

    model_config = ConfigDict(frozen=True, extra="allow")

    iss: Any = None
    sub: Any = None
    aud: Any = None
    exp: Any = None
    iat: Any = None
    nonce: Any = None
    azp: Any = None
    auth_time: Any = None
    org_id: Any = None
    org_name: Any = None


class IDTokenValidateOptions(BaseModel):
    """Per-call expectations for ID token validation."""

    model_config = ConfigDict(frozen=True)

    nonce: str | None = None
    max_age: int | None = Field(default=None, ge=0)
    organization: str | None = None


class PushedAuthorizationResponse(BaseModel):
    """Response of the pushed authorization request endpoint."""

    model_config = ConfigDict(frozen=True, extra="allow")

    request_uri: str
    expires_in: int


class BackchannelAuthorizeResponse(BaseModel):
    """Response of the CIBA ``/bc-authorize`` endpoint."""

    model_config = ConfigDict(frozen=True, extra="allow")

    auth_req_id: str
    expires_in: int
    interval: int = 5


class UserInfo(BaseModel):
    """OIDC UserInfo response."""

    model_config = ConfigDict(frozen=True, extra="allow")

    sub: str
    name: str | None = None
    nickname: str | None = None
    email: str | None = None
    email_verified: bool | None = None
    picture: str | None = None
    updated_at: str | None = None


class SignUpResponse(BaseModel):
    """Response of the database connection sign up endpoint."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str = Field(..., alias="_id")
    email: str
    email_verified: bool = False
    username: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    name: str | None = None
    nickname: str | None = None
    picture: str | None = None
    user_metadata: dict[str, Any] | None = None


class TokenQuotaLimit(BaseModel):
    """A single rate-limit quota window."""

    model_config = ConfigDict(frozen=True)

    quota: int
    remaining: int
    reset_after: int


class TokenQuotaBucket(BaseModel):
    """Per-hour and per-day quota windows."""

    model_config = ConfigDict(frozen=True)

    per_hour: TokenQuotaLimit | None = None
    per_day: TokenQuotaLimit | None = None


class JWK(BaseModel):
    """JSON Web Key representation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    kty: str = Field(..., description="Key type")
    kid: str | None = Field(default=None, description="Key ID")
    use: str | None = Field(default=None, description="Key use")
    alg: str | None = Field(default=None, description="Algorithm")

    # RSA keys
    n: str | None = None
    e: str | None = None


class JWKS(BaseModel):
    """JSON Web Key Set."""

    model_config = ConfigDict(frozen=True)

    keys: list[JWK]

    def get_key(self, kid: str) -> JWK | None:
        """Get key by ID."""
        for key in self.keys:
            if key.kid == kid:
                return key
        return None

    def get_signing_keys(self) -> list[JWK]:
        """Get all keys suitable for signature verification."""
        return [k for k in self.keys if k.use in (None, "sig")]
