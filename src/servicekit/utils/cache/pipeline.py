"""Chainable Redis command batches with a sticky first error."""
import functools
import logging
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from redis.exceptions import RedisError

from src.servicekit.exceptions.cache import CacheError, CacheValidationError
from src.servicekit.utils.cache.connection import translate_redis_error
from src.servicekit.utils.cache.context import OperationContext
from src.servicekit.utils.cache.keys import (
    TTL,
    ttl_to_milliseconds,
    validate_field,
    validate_fields,
    validate_key,
)
from src.servicekit.utils.cache.serializers import ValueCodec


logger = logging.getLogger(__name__)

V = TypeVar("V")


class CachePipeline(Generic[V]):
    """Batch of Redis commands sent in a single MULTI/EXEC round trip.

    Builder methods return the pipeline so calls can be chained. The first
    invalid argument is captured; after that every builder call is a no-op
    and ``execute()`` raises the captured error without contacting Redis.

    Example:
        await (
            repo.new_pipeline()
            .hset("user:42", "name", "ada")
            .expire("user:42", 3600)
            .incr_by("users:count", 1)
            .execute_and_discard()
        )

    Args:
        client: Redis client providing ``pipeline()``
        context: Cancellation/deadline scope for the flush
        codec: Codec used for set/hset/hmset values
        transaction: Wrap the batch in MULTI/EXEC (default: True)
    """

    def __init__(
        self,
        client: Any,
        context: OperationContext,
        codec: ValueCodec[V],
        transaction: bool = True,
    ):
        self._pipe = client.pipeline(transaction=transaction)
        self._context = context
        self._codec = codec
        self._error: Optional[CacheError] = None
        self._commands: List[str] = []
        self._executed = False

    @property
    def error(self) -> Optional[CacheError]:
        """First error captured while building, if any."""
        return self._error

    @property
    def commands(self) -> List[str]:
        """Names of queued commands in submission order."""
        return list(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def _accepting(self) -> bool:
        if self._error is not None:
            return False
        if self._executed:
            self._error = CacheValidationError(
                "pipeline already executed",
                reason="pipeline_executed",
            )
            return False
        return True

    def _fail(self, error: CacheError, command: str) -> "CachePipeline[V]":
        self._error = error
        logger.debug(
            f"Pipeline stopped at {command}: {error}",
            extra={"command": command, "queued": len(self._commands)},
        )
        return self

    def _queue(self, command: str) -> "CachePipeline[V]":
        self._commands.append(command)
        return self

    def set(self, key: str, value: V, ttl: TTL = None) -> "CachePipeline[V]":
        if not self._accepting():
            return self
        try:
            validate_key(key)
            ttl_ms = ttl_to_milliseconds(ttl, key)
            data = self._codec.encode(value)
        except CacheError as e:
            return self._fail(e, "set")
        self._pipe.set(key, data, px=ttl_ms)
        return self._queue("set")

    def hset(self, key: str, field: str, value: V) -> "CachePipeline[V]":
        """Set a single field in a hash, creating or overwriting it."""
        if not self._accepting():
            return self
        try:
            validate_field(key, field)
            data = self._codec.encode(value)
        except CacheError as e:
            return self._fail(e, "hset")
        self._pipe.hset(key, field, data)
        return self._queue("hset")

    def hmset(self, key: str, fields: Mapping[str, V]) -> "CachePipeline[V]":
        """Set several fields of a hash in one command."""
        if not self._accepting():
            return self
        try:
            validate_fields(key, fields.keys())
            mapping = {field: self._codec.encode(value) for field, value in fields.items()}
        except CacheError as e:
            return self._fail(e, "hmset")
        self._pipe.hset(key, mapping=mapping)
        return self._queue("hmset")

    def hdel(self, key: str, *fields: str) -> "CachePipeline[V]":
        if not self._accepting():
            return self
        try:
            fields = validate_fields(key, fields)
        except CacheError as e:
            return self._fail(e, "hdel")
        self._pipe.hdel(key, *fields)
        return self._queue("hdel")

    def delete(self, *keys: str) -> "CachePipeline[V]":
        if not self._accepting():
            return self
        try:
            if not keys:
                raise CacheValidationError("at least one key must be specified", reason="no_keys")
            for key in keys:
                validate_key(key)
        except CacheError as e:
            return self._fail(e, "delete")
        self._pipe.delete(*keys)
        return self._queue("delete")

    def expire(self, key: str, ttl: TTL) -> "CachePipeline[V]":
        """Expire ``key`` after ``ttl`` (seconds or timedelta, must be positive)."""
        if not self._accepting():
            return self
        try:
            validate_key(key)
            ttl_ms = ttl_to_milliseconds(ttl, key)
            if ttl_ms is None:
                raise CacheValidationError(
                    "expiration must be positive",
                    cache_key=key,
                    reason="no_expiration",
                )
        except CacheError as e:
            return self._fail(e, "expire")
        self._pipe.pexpire(key, ttl_ms)
        return self._queue("expire")

    def incr_by(self, key: str, amount: int = 1) -> "CachePipeline[V]":
        if not self._accepting():
            return self
        try:
            validate_key(key)
        except CacheError as e:
            return self._fail(e, "incr_by")
        self._pipe.incrby(key, amount)
        return self._queue("incr_by")

    def decr_by(self, key: str, amount: int = 1) -> "CachePipeline[V]":
        if not self._accepting():
            return self
        try:
            validate_key(key)
        except CacheError as e:
            return self._fail(e, "decr_by")
        self._pipe.decrby(key, amount)
        return self._queue("decr_by")

    async def execute(self) -> List[Any]:
        """Flush the batch and return per-command results in submission order.

        Raises:
            CacheError: The captured builder error (nothing is sent)
            CacheConnectionError: Transport failure
            CacheCommandError: A command in the batch was rejected by Redis
            CacheCancelledError: The bound context was cancelled or expired
        """
        if self._error is not None:
            raise self._error
        if self._executed:
            raise CacheValidationError("pipeline already executed", reason="pipeline_executed")
        self._executed = True

        if not self._commands:
            return []

        try:
            results = await self._context.run(
                functools.partial(self._pipe.execute, raise_on_error=True),
                "pipeline",
            )
        except RedisError as e:
            raise translate_redis_error(e, "pipeline") from e

        logger.debug(
            f"Pipeline executed {len(self._commands)} commands",
            extra={"commands": self._commands},
        )
        return list(results)

    async def execute_and_discard(self) -> None:
        """Flush the batch, keeping only success or failure."""
        await self.execute()
