"""Unit tests for OperationContext cancellation and deadlines."""
import asyncio

import pytest

from src.servicekit.exceptions import CacheCancelledError, CacheTimeoutError
from src.servicekit.utils.cache import OperationContext


async def _value(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


def test_background_context_never_expires():
    ctx = OperationContext.background()

    assert not ctx.cancelled
    assert not ctx.expired
    assert ctx.remaining() is None


def test_timeout_must_be_positive():
    with pytest.raises(ValueError):
        OperationContext(timeout=0)


@pytest.mark.asyncio
async def test_run_returns_result():
    ctx = OperationContext()

    assert await ctx.run(lambda: _value(7), "get") == 7


@pytest.mark.asyncio
async def test_run_propagates_call_errors():
    ctx = OperationContext()

    async def boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        await ctx.run(boom, "get")


@pytest.mark.asyncio
async def test_cancelled_context_fails_before_call():
    ctx = OperationContext(name="worker")
    ctx.cancel("shutdown")
    calls = []

    async def call():
        calls.append(1)

    with pytest.raises(CacheCancelledError) as exc_info:
        await ctx.run(call, "set", "k")

    assert calls == []
    assert exc_info.value.cache_key == "k"
    assert "shutdown" in str(exc_info.value)
    assert exc_info.value.details["operation"] == "set"


@pytest.mark.asyncio
async def test_cancel_interrupts_pending_call():
    ctx = OperationContext()
    started = asyncio.Event()
    was_cancelled = asyncio.Event()

    async def slow():
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            was_cancelled.set()
            raise

    task = asyncio.create_task(ctx.run(slow, "get", "k"))
    await started.wait()
    ctx.cancel("stop")

    with pytest.raises(CacheCancelledError):
        await task
    assert was_cancelled.is_set()


@pytest.mark.asyncio
async def test_deadline_interrupts_slow_call():
    ctx = OperationContext(timeout=0.05)

    with pytest.raises(CacheTimeoutError) as exc_info:
        await ctx.run(lambda: _value(1, delay=5), "get", "slow")

    assert exc_info.value.error_code == "CACHE_TIMEOUT"
    assert exc_info.value.details["timeout_seconds"] == 0.05


@pytest.mark.asyncio
async def test_expired_context_rejects_new_calls():
    ctx = OperationContext(timeout=0.01)
    await asyncio.sleep(0.02)

    assert ctx.expired
    with pytest.raises(CacheTimeoutError):
        await ctx.run(lambda: _value(1), "get")


def test_timeout_error_is_cancellation():
    assert issubclass(CacheTimeoutError, CacheCancelledError)


def test_cancel_is_idempotent():
    ctx = OperationContext()
    ctx.cancel("first")
    ctx.cancel("second")

    with pytest.raises(CacheCancelledError, match="first"):
        ctx.check("get")
