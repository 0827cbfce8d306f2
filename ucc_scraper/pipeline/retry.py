"""Retry coordinator: bounded exponential backoff with attempt accounting.

Rules:
  - Delay before attempt n+1 is base_delay * 2**(n-1), capped at max_delay.
  - Errors whose ``retryable`` attribute is False stop the loop at once.
  - Errors without that attribute (driver timeouts, etc.) are transient.
  - A returned value can also ask for another attempt via retry_on_result.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from ucc_scraper.core.errors import RetryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryResult(Generic[T]):
    """Final value of a retried operation plus the attempts it took."""

    def __init__(self, value: T, attempts: int) -> None:
        self.value = value
        self.attempts = attempts

    def __repr__(self) -> str:
        return f"RetryResult(value={self.value!r}, attempts={self.attempts})"


def default_is_retryable(exc: BaseException) -> bool:
    return bool(getattr(exc, "retryable", True))


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay to wait after the given (1-based) failed attempt."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


async def run_with_backoff(
    operation: Callable[[], Awaitable[T]],
    label: str,
    max_attempts: int,
    *,
    base_delay: float = 2.0,
    max_delay: float = 30.0,
    is_retryable: Callable[[BaseException], bool] = default_is_retryable,
    retry_on_result: Callable[[T], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> RetryResult[T]:
    """Run ``operation`` up to ``max_attempts`` times.

    Returns:
        RetryResult with the operation's value and the attempts used. When
        ``retry_on_result`` keeps rejecting values, the last value is
        returned once attempts run out.

    Raises:
        RetryError: the last error was terminal, or every attempt raised.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)

    do_sleep = sleep or asyncio.sleep

    for attempt in range(1, max_attempts + 1):
        try:
            value = await operation()
        except Exception as e:
            if not is_retryable(e):
                logger.error("%s: terminal failure on attempt %d: %s", label, attempt, e)
                raise RetryError(label, attempt, e) from e
            if attempt == max_attempts:
                logger.error("%s: giving up after %d attempt(s): %s", label, attempt, e)
                raise RetryError(label, attempt, e) from e
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "%s: attempt %d/%d failed (%s), retrying in %.1fs",
                label, attempt, max_attempts, e, delay,
            )
            await do_sleep(delay)
            continue

        if retry_on_result is not None and retry_on_result(value) and attempt < max_attempts:
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "%s: attempt %d/%d returned a retryable result, retrying in %.1fs",
                label, attempt, max_attempts, delay,
            )
            await do_sleep(delay)
            continue

        return RetryResult(value, attempt)

    # Unreachable: the loop either returns or raises on the last attempt.
    msg = f"{label}: retry loop exited without a result"
    raise RuntimeError(msg)
