"""Cancellation and deadline scope for cache operations."""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Set, TypeVar

from src.servicekit.exceptions.cache import CacheCancelledError, CacheTimeoutError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationContext:
    """Cancellation switch plus optional deadline bound to a repository.

    Every Redis call issued by a repository (and by the pipelines it creates)
    runs through ``run()``. Once the context is cancelled or its deadline
    passes, in-flight calls are abandoned and later calls fail immediately.

    Example:
        ctx = OperationContext(timeout=5.0)
        repo = CacheRepository(client, ctx, value_type=str)
        ...
        ctx.cancel("shutting down")   # pending repo calls raise CacheCancelledError

    Args:
        timeout: Seconds from now until the deadline (None = no deadline)
        name: Label used in logs
    """

    def __init__(self, timeout: Optional[float] = None, name: str = "default"):
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")
        self.name = name
        self.timeout = timeout
        self._deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )
        self._cancelled = False
        self._cancel_reason: Optional[str] = None
        self._waiters: Set[asyncio.Future] = set()

    @classmethod
    def background(cls) -> "OperationContext":
        """Context that is never cancelled and has no deadline."""
        return cls(name="background")

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel the context and wake every pending call."""
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel_reason = reason
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_result(None)
        logger.info(
            f"Operation context '{self.name}' cancelled",
            extra={"context": self.name, "reason": reason, "pending": len(self._waiters)},
        )

    def check(self, operation: str, cache_key: Optional[str] = None) -> None:
        """Raise if no further calls may be issued.

        Raises:
            CacheCancelledError: Context was cancelled
            CacheTimeoutError: Deadline has passed
        """
        if self._cancelled:
            message = f"Context '{self.name}' cancelled"
            if self._cancel_reason:
                message += f": {self._cancel_reason}"
            raise CacheCancelledError(message, cache_key=cache_key, operation=operation)
        if self.expired:
            raise CacheTimeoutError(
                f"Context '{self.name}' deadline exceeded",
                cache_key=cache_key,
                operation=operation,
                timeout_seconds=self.timeout,
            )

    async def run(
        self,
        call: Callable[[], Awaitable[T]],
        operation: str,
        cache_key: Optional[str] = None,
    ) -> T:
        """Await ``call()`` unless the context is cancelled or expires first.

        Args:
            call: Zero-argument callable returning the awaitable to run
            operation: Operation name for errors and logs
            cache_key: Key involved, for errors

        Returns:
            Result of the awaited call

        Raises:
            CacheCancelledError: Context cancelled before the call finished
            CacheTimeoutError: Deadline passed before the call finished
        """
        self.check(operation, cache_key)

        loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(call())
        waiter = loop.create_future()
        self._waiters.add(waiter)
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._waiters.discard(waiter)
            if not waiter.done():
                waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.wait({task})
        logger.warning(
            f"Abandoned {operation} on context '{self.name}'",
            extra={"context": self.name, "operation": operation, "cache_key": cache_key},
        )
        self.check(operation, cache_key)
        # Deadline fired on a boundary the monotonic clock has not reached yet
        raise CacheTimeoutError(
            f"Context '{self.name}' deadline exceeded",
            cache_key=cache_key,
            operation=operation,
            timeout_seconds=self.timeout,
        )

    def __repr__(self) -> str:
        return (
            f"OperationContext(name={self.name!r}, cancelled={self._cancelled}, "
            f"remaining={self.remaining()})"
        )
