"""Retry with exponential backoff for calls to external services.

Only errors listed in ``RetryConfig.retryable_exceptions`` are retried.
A ``NavigationError`` may carry a server hint in ``details["retry_after"]``
(seconds); the wait before the next attempt is then at least that long,
still capped at ``max_delay``.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .exceptions import NavigationError, TransientError

T = TypeVar("T")
logger = logging.getLogger(__name__)

RetryCallback = Callable[[Exception, int], None]


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 30.0
    retryable_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (TransientError,)
    )

    def delay_for(self, attempt: int, error: Exception | None = None) -> float:
        """Wait before the attempt that follows failed ``attempt`` (0-based)."""
        delay = self.base_delay * (self.multiplier**attempt)
        hint = retry_after_hint(error)
        if hint is not None:
            delay = max(delay, hint)
        return min(delay, self.max_delay)


def retry_after_hint(error: Exception | None) -> float | None:
    """Server-requested wait in seconds carried by ``error``, if any."""
    if not isinstance(error, NavigationError):
        return None
    value = error.details.get("retry_after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def _next_delay(
    config: RetryConfig,
    error: Exception,
    attempt: int,
    operation_name: str,
    on_retry: RetryCallback | None,
) -> float:
    """Log a failed attempt and return the wait, or re-raise when attempts run out."""
    if attempt >= config.max_attempts - 1:
        logger.error(f"{operation_name} failed after {config.max_attempts} attempts: {error}")
        raise error

    delay = config.delay_for(attempt, error)
    logger.warning(
        f"{operation_name} failed (attempt {attempt + 1}/{config.max_attempts}), "
        f"retrying in {delay:.1f}s: {error}"
    )
    if on_retry:
        on_retry(error, attempt)
    return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
    on_retry: RetryCallback | None = None,
) -> T:
    """Run an async operation, retrying retryable failures with backoff."""
    config = config or RetryConfig()
    attempt = 0
    while True:
        try:
            return await operation()
        except config.retryable_exceptions as e:
            delay = _next_delay(config, e, attempt, operation_name, on_retry)
        await asyncio.sleep(delay)
        attempt += 1


def with_retry_sync(
    operation: Callable[[], T],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
    on_retry: RetryCallback | None = None,
) -> T:
    """Synchronous version of with_retry."""
    config = config or RetryConfig()
    attempt = 0
    while True:
        try:
            return operation()
        except config.retryable_exceptions as e:
            delay = _next_delay(config, e, attempt, operation_name, on_retry)
        time.sleep(delay)
        attempt += 1
