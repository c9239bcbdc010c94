"""Client authentication for token endpoint requests.

Adds ``client_secret`` (client secret post) or a signed
``client_assertion`` (private key JWT) to a request body. A signing key
takes precedence over a secret.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import jwt

from ..errors import ConfigurationError

if TYPE_CHECKING:
    from ..config import ClientCredentialsConfig

CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
CLIENT_ASSERTION_LIFETIME = 180


def create_client_assertion(
    config: ClientCredentialsConfig,
    client_id: str,
    *,
    now: Callable[[], float] = time.time,
) -> str:
    """Sign a client assertion JWT (RFC 7523).

    Args:
        config: Client credentials holding the private key.
        client_id: Issuer and subject of the assertion.
        now: Clock, in seconds since the epoch.

    Returns:
        Compact signed JWT.

    Raises:
        ConfigurationError: If no signing key is configured or it is unusable.
    """
    if config.client_assertion_signing_key is None:
        msg = "client_assertion_signing_key is required to sign a client assertion"
        raise ConfigurationError(msg, field="client_assertion_signing_key")

    issued_at = int(now())
    claims = {
        "iss": client_id,
        "sub": client_id,
        "aud": config.issuer,
        "iat": issued_at,
        "exp": issued_at + CLIENT_ASSERTION_LIFETIME,
        "jti": str(uuid.uuid4()),
    }
    try:
        return jwt.encode(
            claims,
            config.client_assertion_signing_key.get_secret_value(),
            algorithm=config.client_assertion_signing_alg,
        )
    except (ValueError, TypeError, jwt.exceptions.PyJWTError) as e:
        msg = f"Unable to sign client assertion with {config.client_assertion_signing_alg}: {e}"
        raise ConfigurationError(msg, field="client_assertion_signing_key") from e


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def add_client_authentication(
    payload: dict[str, Any],
    config: ClientCredentialsConfig,
    *,
    required: bool = True,
    now: Callable[[], float] = time.time,
) -> dict[str, Any]:
    """Add client authentication, if available, to a request body.

    Fields already present in ``payload`` are never overwritten, so the
    function can be applied repeatedly to the same body.

    Args:
        payload: Request body; mutated in place.
        config: Client credentials configuration.
        required: Fail when no client authentication ends up in the body.
        now: Clock, in seconds since the epoch.

    Returns:
        The same ``payload``.

    Raises:
        ConfigurationError: If ``required`` and neither a secret nor an
            assertion is present and mTLS is not in use.
    """
    client_id = payload.get("client_id") or config.client_id

    if config.client_assertion_signing_key is not None:
        if not payload.get("client_assertion"):
            payload["client_assertion"] = create_client_assertion(config, client_id, now=now)
            payload["client_assertion_type"] = CLIENT_ASSERTION_TYPE
    elif config.client_secret is not None and not payload.get("client_secret"):
        payload["client_secret"] = config.client_secret.get_secret_value()

    if (
        required
        and _is_blank(payload.get("client_secret"))
        and _is_blank(payload.get("client_assertion"))
        and not config.use_mtls
    ):
        msg = (
            "The client_secret or client_assertion field is required, "
            "or it should be mTLS request."
        )
        raise ConfigurationError(msg, field="client_secret")

    return payload
