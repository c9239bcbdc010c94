"""Telemetry for the Auth0 Platform SDK.

Provides tracing, structured logging and the ``Auth0-Client`` header
payload that identifies the SDK to the platform.
"""

from __future__ import annotations

import base64
import functools
import json
import logging
import platform
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, ParamSpec, TypeVar

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Generator

    from .config import TelemetryConfig

P = ParamSpec("P")
T = TypeVar("T")

SDK_NAME = "auth0-platform-sdk-python"
SDK_VERSION = "0.1.0"

_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Return the SDK tracer, creating it from the global provider on first use."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("auth0-platform-sdk", SDK_VERSION)
    return _tracer


def get_logger() -> structlog.BoundLogger:
    """Return the shared SDK logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger("auth0-platform-sdk")
    return _logger


def configure_telemetry(config: TelemetryConfig) -> None:
    """Route SDK logs through a JSON structlog pipeline and name the tracer.

    ``config.enabled`` only governs the ``Auth0-Client`` header; logging
    and tracing are configured either way.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level_number(config.log_level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    _tracer = trace.get_tracer(config.service_name, SDK_VERSION)
    _logger = structlog.get_logger(config.service_name).bind(sdk=SDK_NAME)


def log_level_number(level: str) -> int:
    """Map a level name to its ``logging`` number; unknown names mean INFO."""
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def generate_client_info() -> dict[str, Any]:
    """Default client info reported in the ``Auth0-Client`` header."""
    return {
        "name": SDK_NAME,
        "version": SDK_VERSION,
        "env": {"python": platform.python_version()},
    }


def encode_client_info(client_info: dict[str, Any]) -> str | None:
    """Encode client info as unpadded base64url JSON.

    Returns None when the client info carries no usable ``name``.
    """
    name = client_info.get("name")
    if not isinstance(name, str) or not name:
        return None
    raw = json.dumps(client_info, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run a block inside an ``auth0.<name>`` span.

    Failures mark the span as errored and propagate unchanged.
    """
    span_attributes: dict[str, Any] = {"auth0.sdk.version": SDK_VERSION}
    span_attributes.update(attributes or {})
    with get_tracer().start_as_current_span(
        f"auth0.{name}",
        attributes=span_attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, f"{type(e).__name__}: {e}"))
            raise


def traced_async(
    name: str | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Wrap a coroutine function in ``trace_operation``; the span defaults to its name."""

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        span_name = name or func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with trace_operation(span_name):
                return await func(*args, **kwargs)  # type: ignore[misc]

        return wrapper  # type: ignore[return-value]

    return decorator
