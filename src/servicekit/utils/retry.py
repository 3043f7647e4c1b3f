"""Retry utilities with fixed or exponential backoff."""
import asyncio
import functools
import inspect
import logging
import random
import time
from typing import Callable, Optional, Tuple, Type


logger = logging.getLogger(__name__)


def calculate_backoff(
    attempt: int,
    base_seconds: float = 1.0,
    factor: float = 2.0,
    max_seconds: float = 60.0,
    jitter_percent: float = 0.0,
) -> float:
    """Calculate the delay before retry number ``attempt``.

    ``factor=1.0`` with no jitter gives a fixed delay of ``base_seconds``.

    Args:
        attempt: Retry number (1 for the first retry)
        base_seconds: Base delay for first retry
        factor: Exponential factor
        max_seconds: Maximum delay
        jitter_percent: Jitter percentage (0.0-1.0)

    Returns:
        Delay in seconds
    """
    delay = base_seconds * (factor ** max(0, attempt - 1))
    delay = min(delay, max_seconds)

    if jitter_percent > 0:
        jitter = delay * jitter_percent
        delay = delay + random.uniform(-jitter, jitter)

    return max(0.0, delay)


def _log_failure(func_name: str, attempt: int, max_attempts: int, error: Exception) -> None:
    logger.warning(
        f"{func_name} failed (attempt {attempt}/{max_attempts}): {type(error).__name__}: {error}",
        extra={
            "function": func_name,
            "attempt": attempt,
            "max_attempts": max_attempts,
            "exception_type": type(error).__name__,
        },
    )


def retry(
    max_attempts: int = 3,
    delay_seconds: float = 1.0,
    backoff_factor: float = 1.0,
    max_delay_seconds: float = 60.0,
    jitter_percent: float = 0.0,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    on_give_up: Optional[Callable[[Exception, int], Exception]] = None,
):
    """Decorator retrying a sync or async function a fixed number of times.

    Args:
        max_attempts: Maximum number of attempts (including first)
        delay_seconds: Delay before the first retry
        backoff_factor: Multiplier applied per retry (1.0 = fixed delay)
        max_delay_seconds: Maximum delay between attempts
        jitter_percent: Jitter percentage (0.0 = no jitter)
        retry_on: Exception types to retry on; others propagate immediately
        on_give_up: Builds the exception raised after the last attempt from
            (last_exception, attempts). Defaults to re-raising the last one.

    Example:
        @retry(max_attempts=5, delay_seconds=3.0, retry_on=(OSError,))
        async def open_connection():
            ...
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def give_up(func_name: str, error: Exception) -> Exception:
        logger.error(
            f"{func_name} failed after {max_attempts} attempts",
            extra={"function": func_name, "max_attempts": max_attempts},
        )
        if on_give_up is not None:
            return on_give_up(error, max_attempts)
        return error

    def next_delay(attempt: int) -> float:
        return calculate_backoff(
            attempt=attempt,
            base_seconds=delay_seconds,
            factor=backoff_factor,
            max_seconds=max_delay_seconds,
            jitter_percent=jitter_percent,
        )

    def decorator(func: Callable):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    _log_failure(func.__name__, attempt, max_attempts, e)
                    if attempt == max_attempts:
                        final = give_up(func.__name__, e)
                        if final is e:
                            raise
                        raise final from e
                    await asyncio.sleep(next_delay(attempt))

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    _log_failure(func.__name__, attempt, max_attempts, e)
                    if attempt == max_attempts:
                        final = give_up(func.__name__, e)
                        if final is e:
                            raise
                        raise final from e
                    time.sleep(next_delay(attempt))

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
