"""Generic Redis-backed cache repository."""
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from redis.exceptions import RedisError

from src.servicekit.exceptions.cache import CacheSerializationError, CacheValidationError
from src.servicekit.utils.cache.connection import translate_redis_error
from src.servicekit.utils.cache.context import OperationContext
from src.servicekit.utils.cache.keys import (
    TTL,
    ttl_to_milliseconds,
    validate_field,
    validate_fields,
    validate_key,
)
from src.servicekit.utils.cache.pipeline import CachePipeline
from src.servicekit.utils.cache.serializers import ValueCodec, get_codec


logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_SCAN_COUNT = 100


def _to_text(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8")
    return raw


@dataclass(frozen=True)
class CacheLookup(Generic[V]):
    """Result of a single-value read.

    ``found`` distinguishes a miss from a stored falsy value.

    Example:
        lookup = await repo.get("session:42")
        if lookup:
            use(lookup.value)
    """

    found: bool
    value: Optional[V] = None

    @classmethod
    def hit(cls, value: V) -> "CacheLookup[V]":
        return cls(found=True, value=value)

    @classmethod
    def miss(cls) -> "CacheLookup[V]":
        return cls(found=False)

    def value_or(self, default: V) -> V:
        return self.value if self.found else default

    def __bool__(self) -> bool:
        return self.found


class CacheRepository(Generic[V]):
    """Typed access to one logical keyspace in Redis.

    Concrete repositories subclass this and override only the methods they
    need; the defaults call each other through ``self`` so overrides apply
    everywhere.

    Example:
        class SessionCache(CacheRepository[Session]):
            def __init__(self, client, context):
                super().__init__(client, context, value_type=Session)

            async def set(self, key, value, ttl=3600):
                await super().set(key, value, ttl)

        sessions = SessionCache(client, OperationContext.background())
        await sessions.set("session:42", session)
        lookup = await sessions.get("session:42")

    Args:
        client: Connected ``redis.asyncio.Redis`` (or compatible) client
        context: Cancellation/deadline scope for every call
        value_type: Declared type of stored values
        scan_count: COUNT hint per SCAN/HSCAN round trip

    Raises:
        CacheValidationError: If client or context is missing
    """

    def __init__(
        self,
        client: Any,
        context: OperationContext,
        value_type: Type[V] = str,
        scan_count: int = DEFAULT_SCAN_COUNT,
    ):
        if client is None:
            raise CacheValidationError("redis client is required", reason="missing_client")
        if context is None:
            raise CacheValidationError("operation context is required", reason="missing_context")
        if scan_count < 1:
            raise CacheValidationError("scan_count must be positive", reason="scan_count")

        self._client = client
        self._context = context
        self._codec: ValueCodec[V] = get_codec(value_type)
        self._scan_count = scan_count
        self._repo_name = type(self).__name__

        logger.debug(
            f"{self._repo_name}: created",
            extra={"value_type": repr(self._codec), "context": context.name},
        )

    @property
    def client(self) -> Any:
        return self._client

    @property
    def context(self) -> OperationContext:
        return self._context

    @property
    def codec(self) -> ValueCodec[V]:
        return self._codec

    async def _execute(
        self,
        operation: str,
        cache_key: Optional[str],
        func: Callable,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Run one client call under the bound context."""
        try:
            return await self._context.run(
                functools.partial(func, *args, **kwargs),
                operation,
                cache_key,
            )
        except RedisError as e:
            raise translate_redis_error(e, operation, cache_key) from e

    def _decode(self, data: Union[bytes, str], cache_key: str) -> V:
        try:
            return self._codec.decode(data)
        except CacheSerializationError as e:
            e.cache_key = cache_key
            raise

    def _encode(self, value: V, cache_key: str) -> bytes:
        try:
            return self._codec.encode(value)
        except CacheSerializationError as e:
            e.cache_key = cache_key
            raise

    # ==================== Key/value ====================

    async def get(self, key: str) -> CacheLookup[V]:
        """Fetch and decode the value stored at ``key``.

        Returns:
            CacheLookup; ``found`` is False when the key does not exist
        """
        validate_key(key)
        data = await self._execute("get", key, self._client.get, key)

        if data is None:
            logger.debug(f"{self._repo_name}: cache miss {key}")
            return CacheLookup.miss()

        logger.debug(f"{self._repo_name}: cache hit {key}")
        return CacheLookup.hit(self._decode(data, key))

    async def set(self, key: str, value: V, ttl: TTL = None) -> None:
        """Encode and store ``value``.

        Args:
            key: Cache key
            value: Value of the declared type
            ttl: Seconds or timedelta; None or 0 keeps the key forever
        """
        validate_key(key)
        ttl_ms = ttl_to_milliseconds(ttl, key)
        data = self._encode(value, key)
        await self._execute("set", key, self._client.set, key, data, px=ttl_ms)
        logger.debug(f"{self._repo_name}: set {key}", extra={"cache_key": key, "ttl_ms": ttl_ms})

    async def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True if it existed."""
        validate_key(key)
        removed = await self._execute("delete", key, self._client.delete, key)
        return removed > 0

    async def exists(self, key: str) -> bool:
        validate_key(key)
        count = await self._execute("exists", key, self._client.exists, key)
        return count > 0

    async def get_keys_by_pattern(self, pattern: str) -> List[str]:
        """Collect every key matching a glob ``pattern``.

        Walks the keyspace with SCAN, ``scan_count`` keys per round trip,
        until the cursor returns to 0. Keys reported more than once by SCAN
        appear once, in first-seen order.
        """
        if not pattern:
            raise CacheValidationError("pattern cannot be empty", reason="empty_pattern")

        keys: Dict[str, None] = {}
        cursor = 0
        rounds = 0
        while True:
            cursor, batch = await self._execute(
                "scan", None, self._client.scan,
                cursor=cursor, match=pattern, count=self._scan_count,
            )
            rounds += 1
            for raw in batch:
                keys.setdefault(_to_text(raw), None)
            if int(cursor) == 0:
                break

        logger.debug(
            f"{self._repo_name}: pattern {pattern} matched {len(keys)} keys",
            extra={"pattern": pattern, "rounds": rounds},
        )
        return list(keys)

    # ==================== Hashes ====================

    async def hget(self, key: str, field: str) -> CacheLookup[V]:
        validate_field(key, field)
        data = await self._execute("hget", key, self._client.hget, key, field)
        if data is None:
            return CacheLookup.miss()
        return CacheLookup.hit(self._decode(data, key))

    async def hget_all(self, key: str) -> Dict[str, V]:
        """Return every field of the hash at ``key`` (empty if absent)."""
        validate_key(key)
        result = await self._execute("hgetall", key, self._client.hgetall, key)
        return {_to_text(field): self._decode(data, key) for field, data in result.items()}

    async def hget_fields(self, key: str, *fields: str) -> Dict[str, V]:
        """Return the requested fields that exist; missing ones are left out."""
        fields = validate_fields(key, fields)
        values = await self._execute("hmget", key, self._client.hmget, key, fields)
        return {
            field: self._decode(data, key)
            for field, data in zip(fields, values)
            if data is not None
        }

    async def hscan(self, key: str, pattern: str = "*", count: Optional[int] = None) -> Dict[str, V]:
        """Collect hash fields matching ``pattern`` with an HSCAN cursor loop."""
        validate_key(key)
        count = count or self._scan_count

        fields: Dict[str, V] = {}
        cursor = 0
        while True:
            cursor, batch = await self._execute(
                "hscan", key, self._client.hscan, key,
                cursor=cursor, match=pattern, count=count,
            )
            for field, data in batch.items():
                fields[_to_text(field)] = self._decode(data, key)
            if int(cursor) == 0:
                break
        return fields

    async def hset(self, key: str, field: str, value: V) -> None:
        validate_field(key, field)
        data = self._encode(value, key)
        await self._execute("hset", key, self._client.hset, key, field, data)

    async def hmset(self, key: str, fields: Mapping[str, V]) -> None:
        """Set several hash fields in one command."""
        validate_fields(key, fields.keys())
        mapping = {field: self._encode(value, key) for field, value in fields.items()}
        await self._execute("hset", key, self._client.hset, key, mapping=mapping)

    async def hdel(self, key: str, *fields: str) -> int:
        """Remove fields from the hash. Returns how many existed."""
        fields = validate_fields(key, fields)
        return await self._execute("hdel", key, self._client.hdel, key, *fields)

    async def hexists(self, key: str, field: str) -> bool:
        validate_field(key, field)
        return bool(await self._execute("hexists", key, self._client.hexists, key, field))

    # ==================== Pipelines ====================

    def new_pipeline(self) -> CachePipeline[V]:
        """Start a command batch on the same client, context and codec."""
        return CachePipeline(self._client, self._context, self._codec)
