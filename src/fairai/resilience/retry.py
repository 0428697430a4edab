"""
Retry Strategies using Tenacity.

Standard retry policy for ledger and chain reads.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from fairai.core.exceptions import NetworkError
from fairai.core.logging import get_logger

logger = get_logger("resilience.retry")

T = TypeVar("T")

MAX_ATTEMPTS = 4


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network/infrastructure error."""
    if isinstance(exception, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exception, NetworkError):
        return exception.is_rate_limited() or exception.is_server_error()
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        return status == 429 or 500 <= status < 600
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        f"Retrying {getattr(retry_state.fn, '__name__', 'call')} "
        f"(attempt {retry_state.attempt_number}): {retry_state.outcome.exception()}"
    )


def _policy(max_attempts: int) -> AsyncRetrying:
    # Backoff: 0.5s, 1s, 2s, ... capped at 8s
    return AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        stop=stop_after_attempt(max_attempts),
        reraise=True,
        before_sleep=_log_retry,
    )


async def execute_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = MAX_ATTEMPTS,
    **kwargs: Any,
) -> T:
    """Execute an async function with the standard retry policy."""
    async for attempt in _policy(max_attempts):
        with attempt:
            return await func(*args, **kwargs)
    raise AssertionError("unreachable")  # pragma: no cover
