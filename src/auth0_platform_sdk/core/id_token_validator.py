"""ID token validation per OpenID Connect Core.

Claims are checked one rule at a time in a fixed order so the first
violated rule is the one reported, then the signature is verified with
PyJWT (HS256 with the client secret, RS256 against the tenant JWKS),
which re-checks issuer, audience and expiry.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import jwt

from ..errors import ConfigurationError, IdTokenValidationError
from ..models import IDTokenClaims, IDTokenValidateOptions
from ..telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from ..config import AuthenticationClientConfig
    from ..jwks import AsyncJWKSCache

SUPPORTED_ALGORITHMS = ("RS256", "HS256")


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_present_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


class IDTokenValidator:
    """Validates ID tokens issued to one client by one tenant."""

    def __init__(
        self,
        config: AuthenticationClientConfig,
        jwks: AsyncJWKSCache,
        *,
        now: Callable[[], float] = time.time,
    ) -> None:
        """Initialize ID token validator.

        Args:
            config: Authentication client configuration.
            jwks: Key set cache used for RS256 tokens.
            now: Clock, in seconds since the epoch.
        """
        self.alg = config.id_token_signing_alg
        self.issuer = config.issuer
        self.audience = config.client_id
        self.clock_tolerance = config.clock_tolerance
        self._client_secret = config.client_secret
        self._jwks = jwks
        self._now = now
        self._logger = get_logger()

    async def validate(
        self,
        id_token: str,
        options: IDTokenValidateOptions | None = None,
    ) -> IDTokenClaims:
        """Validate an ID token.

        Args:
            id_token: Compact serialized JWT.
            options: Expected nonce, max age and organization.

        Returns:
            The validated claims.

        Raises:
            IdTokenValidationError: If any rule fails.
        """
        options = options or IDTokenValidateOptions()
        with trace_operation("validate_id_token", attributes={"alg": self.alg}):
            header, claims = self._decode_unverified(id_token)
            self.check_claims(header, claims, options)
            key = await self._verification_key(header)
            self._verify_signature(id_token, key, options)
            return claims

    def _decode_unverified(self, id_token: str) -> tuple[dict[str, Any], IDTokenClaims]:
        try:
            header = jwt.get_unverified_header(id_token)
            payload = jwt.decode(id_token, options={"verify_signature": False})
        except jwt.exceptions.DecodeError as e:
            msg = "ID token could not be decoded"
            raise IdTokenValidationError(msg) from e
        return header, IDTokenClaims.model_validate(payload)

    def check_claims(
        self,
        header: dict[str, Any],
        claims: IDTokenClaims,
        options: IDTokenValidateOptions,
    ) -> None:
        """Apply the claim rules, failing on the first violation.

        Args:
            header: Decoded JOSE header.
            claims: Decoded, unverified claims.
            options: Per-call expectations.

        Raises:
            IdTokenValidationError: On the first violated rule.
        """
        alg = header.get("alg")
        if alg not in SUPPORTED_ALGORITHMS:
            msg = (
                f'Signature algorithm of "{alg}" is not supported. '
                'Expected the ID token to be signed with "RS256" or "HS256".'
            )
            raise IdTokenValidationError(
                msg, claim="alg", expected=list(SUPPORTED_ALGORITHMS), found=alg
            )

        # Issuer
        if not _is_present_string(claims.iss):
            msg = "Issuer (iss) claim must be a string present in the ID token"
            raise IdTokenValidationError(msg, claim="iss", expected=self.issuer)
        if claims.iss != self.issuer:
            msg = (
                "Issuer (iss) claim mismatch in the ID token; "
                f'expected "{self.issuer}", found "{claims.iss}"'
            )
            raise IdTokenValidationError(msg, claim="iss", expected=self.issuer, found=claims.iss)

        # Subject
        if not _is_present_string(claims.sub):
            msg = "Subject (sub) claim must be a string present in the ID token"
            raise IdTokenValidationError(msg, claim="sub")

        # Audience
        aud = claims.aud
        valid_list = isinstance(aud, list) and bool(aud) and all(isinstance(a, str) for a in aud)
        if not (_is_present_string(aud) or valid_list):
            msg = (
                "Audience (aud) claim must be a string or array of strings "
                "present in the ID token"
            )
            raise IdTokenValidationError(msg, claim="aud", expected=self.audience)
        if isinstance(aud, list) and self.audience not in aud:
            msg = (
                "Audience (aud) claim mismatch in the ID token; "
                f'expected "{self.audience}" but was not one of "{", ".join(aud)}"'
            )
            raise IdTokenValidationError(msg, claim="aud", expected=self.audience, found=aud)
        if isinstance(aud, str) and aud != self.audience:
            msg = (
                "Audience (aud) claim mismatch in the ID token; "
                f'expected "{self.audience}" but found "{aud}"'
            )
            raise IdTokenValidationError(msg, claim="aud", expected=self.audience, found=aud)

        # Organization
        if options.organization:
            self._check_organization(claims, options.organization)

        now = int(self._now())

        # Expiration time
        if not _is_number(claims.exp):
            msg = "Expiration Time (exp) claim must be a number present in the ID token"
            raise IdTokenValidationError(msg, claim="exp")
        exp_time = claims.exp + self.clock_tolerance
        if now > exp_time:
            msg = (
                "Expiration Time (exp) claim error in the ID token; "
                f"current time ({now}) is after expiration time ({exp_time})"
            )
            raise IdTokenValidationError(msg, claim="exp", expected=exp_time, found=now)

        # Issued at
        if not _is_number(claims.iat):
            msg = "Issued At (iat) claim must be a number present in the ID token"
            raise IdTokenValidationError(msg, claim="iat")

        # Nonce
        if options.nonce or claims.nonce:
            if not _is_present_string(claims.nonce):
                msg = "Nonce (nonce) claim must be a string present in the ID token"
                raise IdTokenValidationError(msg, claim="nonce", expected=options.nonce)
            if claims.nonce != options.nonce:
                msg = (
                    "Nonce (nonce) claim mismatch in the ID token; "
                    f'expected "{options.nonce}", found "{claims.nonce}"'
                )
                raise IdTokenValidationError(
                    msg, claim="nonce", expected=options.nonce, found=claims.nonce
                )

        # Authorized party
        if isinstance(aud, list) and len(aud) > 1:
            if not _is_present_string(claims.azp):
                msg = (
                    "Authorized Party (azp) claim must be a string present in the ID token "
                    "when Audience (aud) claim has multiple values"
                )
                raise IdTokenValidationError(msg, claim="azp", expected=self.audience)
            if claims.azp != self.audience:
                msg = (
                    "Authorized Party (azp) claim mismatch in the ID token; "
                    f'expected "{self.audience}", found "{claims.azp}"'
                )
                raise IdTokenValidationError(
                    msg, claim="azp", expected=self.audience, found=claims.azp
                )

        # Authentication time
        if options.max_age is not None:
            if not _is_number(claims.auth_time):
                msg = (
                    "Authentication Time (auth_time) claim must be a number present in the "
                    "ID token when Max Age (max_age) is specified"
                )
                raise IdTokenValidationError(msg, claim="auth_time")
            auth_valid_until = claims.auth_time + options.max_age + self.clock_tolerance
            if now > auth_valid_until:
                msg = (
                    "Authentication Time (auth_time) claim in the ID token indicates that too "
                    "much time has passed since the last end-user authentication. "
                    f"Current time ({now}) is after last auth at {auth_valid_until}"
                )
                raise IdTokenValidationError(
                    msg, claim="auth_time", expected=auth_valid_until, found=now
                )

    def _check_organization(self, claims: IDTokenClaims, organization: str) -> None:
        # org_id is an opaque identifier; org_name is stored lower-cased by the platform.
        if organization.startswith("org_"):
            if not _is_present_string(claims.org_id):
                msg = "Organization Id (org_id) claim must be a string present in the ID token"
                raise IdTokenValidationError(msg, claim="org_id", expected=organization)
            if claims.org_id != organization:
                msg = (
                    "Organization Id (org_id) claim value mismatch in the ID token; "
                    f'expected "{organization}", found "{claims.org_id}"'
                )
                raise IdTokenValidationError(
                    msg, claim="org_id", expected=organization, found=claims.org_id
                )
            return

        if not _is_present_string(claims.org_name):
            msg = "Organization Name (org_name) claim must be a string present in the ID token"
            raise IdTokenValidationError(msg, claim="org_name", expected=organization)
        if claims.org_name.lower() != organization.lower():
            msg = (
                "Organization Name (org_name) claim value mismatch in the ID token; "
                f'expected "{organization}", found "{claims.org_name}"'
            )
            raise IdTokenValidationError(
                msg, claim="org_name", expected=organization, found=claims.org_name
            )

    async def _verification_key(self, header: dict[str, Any]) -> Any:
        if self.alg == "HS256":
            if self._client_secret is None:
                msg = "client_secret is required to validate HS256 ID tokens"
                raise ConfigurationError(msg, field="client_secret")
            return self._client_secret.get_secret_value().encode("utf-8")
        return await self._jwks.get_signing_key(header.get("kid"), self.alg)

    def _verify_signature(
        self,
        id_token: str,
        key: Any,
        options: IDTokenValidateOptions,
    ) -> None:
        try:
            verified = jwt.decode(
                id_token,
                key,
                algorithms=[self.alg],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.clock_tolerance,
                # exp is enforced by check_claims against the injected clock;
                # a future iat is accepted.
                options={"require": ["exp", "iat"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.exceptions.InvalidSignatureError as e:
            msg = "ID token signature verification failed"
            raise IdTokenValidationError(msg) from e
        except jwt.exceptions.InvalidAlgorithmError as e:
            msg = f'ID token is not signed with the configured algorithm "{self.alg}"'
            raise IdTokenValidationError(msg, claim="alg", expected=self.alg) from e
        except jwt.exceptions.InvalidTokenError as e:
            msg = f"ID token verification failed: {e}"
            raise IdTokenValidationError(msg) from e

        if options.max_age is not None:
            max_iat_age = options.max_age + self.clock_tolerance
            age = int(self._now()) - verified["iat"]
            if age > max_iat_age:
                msg = (
                    "Issued At (iat) claim in the ID token is older than Max Age (max_age); "
                    f"token age ({age}s) exceeds {max_iat_age}s"
                )
                raise IdTokenValidationError(msg, claim="iat", expected=max_iat_age, found=age)

        self._logger.debug("ID token validated", alg=self.alg)
