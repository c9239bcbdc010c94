"""Centralized HTTP executor for the Auth0 Platform SDK.

Turns a ``RequestDescriptor`` into an HTTP exchange: pre-request
middleware, per-attempt timeout, retry with exponential backoff on
configured statuses, post-response middleware and error translation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

from ..config import MAX_NUMBER_RETRIES, RetryConfig
from ..errors import (
    ApiErrorSource,
    RequestAbortedError,
    ResponseError,
    RetryExhaustedError,
)
from ..http import FetchParams, RequestDescriptor, RequestOptions, build_fetch_params
from ..middleware import ErrorContext, RequestContext, RequestMiddleware, ResponseContext
from ..telemetry import get_logger, trace_operation
from .errors import ErrorFactory

if TYPE_CHECKING:
    from ..http import HttpTransport

T = TypeVar("T")

ErrorParser = Callable[[httpx.Response], ResponseError]
Sleep = Callable[[float], Awaitable[Any]]


def calculate_retry_delay(retry_config: RetryConfig, attempt: int) -> float:
    """Calculate retry delay with exponential backoff.

    Args:
        retry_config: Retry configuration.
        attempt: Current attempt number (0-indexed).

    Returns:
        Delay in seconds.
    """
    return retry_config.get_delay(attempt)


def is_success_status(status_code: int) -> bool:
    """Check if a status code is in the 2xx range."""
    return 200 <= status_code < 300


class AsyncHTTPExecutor:
    """Asynchronous request pipeline with middleware, timeout and retry."""

    def __init__(
        self,
        transport: HttpTransport,
        *,
        base_url: str,
        source: ApiErrorSource,
        retry_config: RetryConfig,
        timeout: float,
        middleware: Sequence[RequestMiddleware] = (),
        default_headers: dict[str, str] | None = None,
        parse_error: ErrorParser | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize async HTTP executor.

        Args:
            transport: Object sending ``httpx.Request`` instances.
            base_url: Prefix for every descriptor path.
            source: API family, used to tag parsed errors.
            retry_config: Retry configuration.
            timeout: Default per-attempt timeout in seconds.
            middleware: Middleware run in registration order.
            default_headers: Headers sent with every request.
            parse_error: Override for turning error responses into errors.
            sleep: Coroutine used for backoff waits.
        """
        self._transport = transport
        self.base_url = base_url
        self.source = source
        self._retry_config = retry_config
        self._timeout = timeout
        self._middleware: list[RequestMiddleware] = list(middleware)
        self._default_headers = dict(default_headers or {})
        self._parse_error = parse_error or self._default_parse_error
        self._sleep = sleep
        self._logger = get_logger()

    @property
    def middleware(self) -> list[RequestMiddleware]:
        """Registered middleware, in execution order."""
        return self._middleware

    @property
    def retry_config(self) -> RetryConfig:
        """Get retry configuration."""
        return self._retry_config

    def use(self, *middleware: RequestMiddleware) -> AsyncHTTPExecutor:
        """Append middleware to the chain."""
        self._middleware.extend(middleware)
        return self

    def _default_parse_error(self, response: httpx.Response) -> ResponseError:
        return ErrorFactory.from_response(response, self.source)

    def _max_attempts(self, options: RequestOptions | None) -> int:
        if not self._retry_config.enabled:
            return 1
        max_retries = self._retry_config.max_retries
        if options is not None and options.max_retries is not None:
            max_retries = options.max_retries
        return min(MAX_NUMBER_RETRIES, max(0, max_retries)) + 1

    async def execute(
        self,
        descriptor: RequestDescriptor,
        options: RequestOptions | None = None,
    ) -> httpx.Response:
        """Execute a logical request.

        Args:
            descriptor: Logical request relative to ``base_url``.
            options: Per-call overrides.

        Returns:
            The final 2xx response.

        Raises:
            ApiError: On a non-2xx response with a parseable body.
            ResponseError: On a non-2xx response with an unparseable body.
            RetryExhaustedError: When every attempt returned a retryable status.
            TimeoutError: When an attempt exceeded the timeout.
            TransportError: When the transport failed and no middleware recovered.
            RequestAbortedError: When the caller's abort signal fired.
        """
        timeout = self._timeout
        abort_signal = None
        if options is not None:
            timeout = options.timeout or timeout
            abort_signal = options.abort_signal

        base_params = build_fetch_params(
            self.base_url,
            descriptor,
            default_headers=self._default_headers,
            options=options,
        )
        max_attempts = self._max_attempts(options)

        for attempt in range(max_attempts):
            delay = calculate_retry_delay(self._retry_config, attempt)
            if delay > 0:
                await _until_aborted(self._sleep(delay), abort_signal)
            if abort_signal is not None and abort_signal.is_set():
                raise RequestAbortedError()

            params = await self._run_pre(base_params.clone(), attempt)
            response = await self._attempt(params, attempt, timeout, abort_signal)

            is_last = attempt == max_attempts - 1
            if self._retry_config.should_retry(response.status_code) and not is_last:
                self._logger.warning(
                    "Retrying request",
                    method=params.method,
                    url=params.url,
                    status=response.status_code,
                    attempt=attempt,
                    delay=calculate_retry_delay(self._retry_config, attempt + 1),
                )
                await response.aclose()
                continue

            response = await self._run_post(params, response)
            if is_success_status(response.status_code):
                return response

            await response.aread()
            error = self._parse_error(response)
            if attempt > 0 and self._retry_config.should_retry(response.status_code):
                self._logger.error(
                    "Retries exhausted",
                    url=params.url,
                    status=response.status_code,
                    attempts=attempt + 1,
                )
                raise RetryExhaustedError(error, attempts=attempt + 1, source=self.source)
            raise error

        # range() always yields at least one attempt
        raise AssertionError("unreachable")

    async def _attempt(
        self,
        params: FetchParams,
        attempt: int,
        timeout: float,
        abort_signal: asyncio.Event | None,
    ) -> httpx.Response:
        """Send a single attempt, letting ``on_error`` middleware recover."""
        with trace_operation(
            "http_request",
            attributes={"http.method": params.method, "http.url": params.url, "attempt": attempt},
        ) as span:
            request = params.to_request(timeout)
            try:
                async with asyncio.timeout(timeout):
                    response = await _until_aborted(self._transport.send(request), abort_signal)
            except (httpx.HTTPError, TimeoutError) as exc:
                substitute = await self._run_on_error(params, exc)
                if substitute is None:
                    raise ErrorFactory.from_exception(exc, timeout_seconds=timeout) from exc
                response = substitute

            span.set_attribute("http.status_code", response.status_code)
            return response

    async def _run_pre(self, params: FetchParams, attempt: int) -> FetchParams:
        for middleware in self._middleware:
            result = await middleware.pre(RequestContext(params=params, attempt=attempt))
            if result is not None:
                params = result
        return params

    async def _run_post(self, params: FetchParams, response: httpx.Response) -> httpx.Response:
        for middleware in self._middleware:
            result = await middleware.post(ResponseContext(params=params, response=response))
            if result is not None:
                response = result
        return response

    async def _run_on_error(
        self,
        params: FetchParams,
        error: Exception,
    ) -> httpx.Response | None:
        response: httpx.Response | None = None
        for middleware in self._middleware:
            result = await middleware.on_error(
                ErrorContext(params=params, error=error, response=response)
            )
            if result is not None:
                response = result
        return response


async def _until_aborted(awaitable: Awaitable[T], abort_signal: asyncio.Event | None) -> T:
    """Await ``awaitable`` unless the abort signal fires first."""
    if abort_signal is None:
        return await awaitable
    if abort_signal.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise RequestAbortedError()

    work = asyncio.ensure_future(awaitable)
    aborted = asyncio.ensure_future(abort_signal.wait())
    try:
        await asyncio.wait({work, aborted}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (work, aborted):
            if not task.done():
                task.cancel()

    if abort_signal.is_set():
        raise RequestAbortedError()
    return work.result()
