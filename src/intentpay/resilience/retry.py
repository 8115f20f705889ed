"""
Retry Strategies using Tenacity.

Retries are only applied to idempotent provider reads (status polling,
deposit notifications). Quote requests never go through here: a rejected
quote moves the negotiator on to its next variant instead.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from intentpay.core.exceptions import ProviderError
from intentpay.core.logging import get_logger

logger = get_logger("retry")


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network/infrastructure error."""
    if isinstance(exception, ProviderError):
        return exception.is_transient()
    return False


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Retrying provider call (attempt {retry_state.attempt_number}): {exc}")


async def execute_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    attempts: int = 3,
    max_wait: float = 8.0,
    **kwargs: Any,
) -> Any:
    """
    Execute an async function, retrying transient ProviderErrors.

    Args:
        func: Coroutine function to call
        attempts: Total attempts including the first one
        max_wait: Upper bound of the exponential backoff in seconds

    Returns:
        Whatever ``func`` returns. The last error is re-raised once attempts run out.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=max_wait),
        stop=stop_after_attempt(max(attempts, 1)),
        reraise=True,
        before_sleep=_log_before_sleep,
    ):
        with attempt:
            return await func(*args, **kwargs)
