"""Abstract interfaces for servicekit infrastructure.

Allows dependency injection for testability and flexibility.
Concrete implementations: ``CacheRepository``, ``CachePipeline``,
``SQLDriver`` and the in-memory doubles in ``servicekit.testing``.
"""
from abc import abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Protocol, TypeVar, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncEngine

V = TypeVar("V")


# ==================== Cache Interfaces ====================

@runtime_checkable
class ICachePipeline(Protocol[V]):
    """Protocol for a batch of cache commands flushed in one round trip."""

    def set(self, key: str, value: V, ttl: Any = None) -> "ICachePipeline[V]": ...

    def hset(self, key: str, field: str, value: V) -> "ICachePipeline[V]": ...

    def hmset(self, key: str, fields: Mapping[str, V]) -> "ICachePipeline[V]": ...

    def hdel(self, key: str, *fields: str) -> "ICachePipeline[V]": ...

    def delete(self, *keys: str) -> "ICachePipeline[V]": ...

    def expire(self, key: str, ttl: Any) -> "ICachePipeline[V]": ...

    def incr_by(self, key: str, amount: int = 1) -> "ICachePipeline[V]": ...

    def decr_by(self, key: str, amount: int = 1) -> "ICachePipeline[V]": ...

    @abstractmethod
    async def execute(self) -> List[Any]:
        """Flush the batch.

        Returns:
            Per-command results in submission order
        """
        ...

    async def execute_and_discard(self) -> None: ...


@runtime_checkable
class ICacheRepository(Protocol[V]):
    """Protocol for typed cache access.

    Implementations: CacheRepository and its subclasses.
    """

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Get value from cache.

        Returns:
            Lookup result telling a miss apart from a stored value
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: V, ttl: Any = None) -> None:
        """Set value in cache with optional TTL (seconds or timedelta)."""
        ...

    async def delete(self, key: str) -> bool: ...

    async def exists(self, key: str) -> bool: ...

    async def get_keys_by_pattern(self, pattern: str) -> List[str]: ...

    async def hget(self, key: str, field: str) -> Any: ...

    async def hget_all(self, key: str) -> Dict[str, V]: ...

    async def hget_fields(self, key: str, *fields: str) -> Dict[str, V]: ...

    async def hscan(self, key: str, pattern: str = "*", count: Optional[int] = None) -> Dict[str, V]: ...

    async def hset(self, key: str, field: str, value: V) -> None: ...

    async def hmset(self, key: str, fields: Mapping[str, V]) -> None: ...

    async def hdel(self, key: str, *fields: str) -> int: ...

    async def hexists(self, key: str, field: str) -> bool: ...

    def new_pipeline(self) -> ICachePipeline[V]: ...


# ==================== Database Interfaces ====================

@runtime_checkable
class ISQLDriver(Protocol):
    """Protocol for a relational database driver."""

    name: str

    @abstractmethod
    async def connect(self, config: Any) -> AsyncEngine:
        """Open an engine and verify the server answers.

        Raises:
            SQLAlchemyError or OSError: Server unreachable
        """
        ...


__all__ = [
    "ICacheRepository",
    "ICachePipeline",
    "ISQLDriver",
]
