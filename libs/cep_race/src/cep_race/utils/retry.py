"""Retry utility for serialized attempts with linear, cancellable backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from ..exceptions import ScopeCancelledError

if TYPE_CHECKING:
    from ..scope import RaceScope

T = TypeVar("T")

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, backoff_step: float) -> float:
    """Delay before the 0-indexed `attempt`: 0 for the first, then step, 2*step, ..."""
    return attempt * backoff_step


async def retry_with_backoff(
    operation: Callable[..., Awaitable[T]],
    max_attempts: int = 3,
    backoff_step: float = 0.1,
    scope: "RaceScope | None" = None,
    operation_args: tuple[Any, ...] | None = None,
    operation_kwargs: dict[str, Any] | None = None,
    on_retry: Callable[..., None] | None = None,
) -> T:
    """Execute an async operation up to `max_attempts` times, one attempt at a time.

    Every exception raised by the operation is retried. There is no delay before
    the first attempt; attempt ``n`` (0-indexed) is preceded by
    ``n * backoff_step`` seconds, so a 3-attempt run waits 0.1s then 0.2s with
    the default step. When a scope is given, no attempt starts after it is
    cancelled and a pending backoff wait ends as soon as it is cancelled.

    Args:
        operation: Async function to execute
        max_attempts: Total number of attempts, including the first (default: 3)
        backoff_step: Linear backoff increment in seconds (default: 0.1)
        scope: Optional race scope observed at attempt boundaries
        operation_args: Tuple of positional arguments to pass to operation
        operation_kwargs: Dictionary of keyword arguments to pass to operation
        on_retry: Optional callback called before each retry with (attempt, max_attempts, error, delay)

    Returns:
        Result of the first successful attempt

    Raises:
        ValueError: If max_attempts < 1 or backoff_step is negative
        ScopeCancelledError: If the scope was cancelled before any attempt ran
        Exception: The last attempt's exception when all attempts fail or the
            scope is cancelled between attempts
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")  # noqa: TRY003
    if backoff_step < 0:
        raise ValueError("backoff_step must be >= 0")  # noqa: TRY003

    if operation_args is None:
        operation_args = ()
    if operation_kwargs is None:
        operation_kwargs = {}

    last_error: Exception | None = None

    for attempt in range(max_attempts):
        if attempt > 0:
            delay = backoff_delay(attempt, backoff_step)
            logger.warning(
                "Attempt %d/%d failed: %s. Retrying in %.3fs",
                attempt,
                max_attempts,
                last_error,
                delay,
            )
            if on_retry:
                on_retry(
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=last_error,
                    delay=delay,
                )
            if scope is not None:
                await scope.wait_cancelled(delay)
            else:
                await asyncio.sleep(delay)

        if scope is not None and scope.cancelled:
            logger.debug("Scope cancelled before attempt %d, giving up", attempt + 1)
            break

        try:
            return await operation(*operation_args, **operation_kwargs)
        except Exception as e:
            last_error = e

    if last_error is None:
        raise ScopeCancelledError("Scope cancelled before the first attempt")
    raise last_error
