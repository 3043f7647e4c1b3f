"""Redis connection manager with pooling."""
import logging
from typing import Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from src.servicekit.config.settings import RedisConfig
from src.servicekit.exceptions.cache import (
    CacheCommandError,
    CacheConnectionError,
    CacheError,
)


logger = logging.getLogger(__name__)


def translate_redis_error(
    error: RedisError,
    operation: str,
    cache_key: Optional[str] = None,
) -> CacheError:
    """Map a redis-py exception onto the cache exception hierarchy.

    Transport problems become CacheConnectionError; error replies from the
    server become CacheCommandError.
    """
    if isinstance(error, (RedisConnectionError, RedisTimeoutError)):
        logger.error(
            f"Redis unavailable during {operation}: {error}",
            extra={"operation": operation, "cache_key": cache_key},
        )
        return CacheConnectionError(
            f"Redis unavailable during {operation}",
            cache_key=cache_key,
            original=error,
        )
    logger.error(
        f"Redis command {operation} failed: {error}",
        extra={"operation": operation, "cache_key": cache_key},
    )
    return CacheCommandError(
        f"Redis command {operation} failed: {error}",
        cache_key=cache_key,
        operation=operation,
        original=error,
    )


class RedisConnection:
    """Redis connection manager with pooling.

    Owns the connection pool shared by every repository built on its client.

    Example:
        connection = RedisConnection.from_config(load_config().redis)
        client = await connection.initialize()
        repo = CacheRepository(client, OperationContext.background(), value_type=str)
        ...
        await connection.close()

    Args:
        redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
        password: Optional password for authentication
        pool_size: Number of connections in pool (default: 10)
        socket_timeout: Socket timeout in seconds (default: 5)
        socket_connect_timeout: Connection timeout in seconds (default: 5)
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        pool_size: int = 10,
        socket_timeout: float = 5,
        socket_connect_timeout: float = 5,
    ):
        self.redis_url = redis_url
        self.password = password
        self.pool_size = pool_size
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout

        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None

        logger.debug(
            "RedisConnection created",
            extra={
                "redis_url": redis_url,
                "pool_size": pool_size,
                "has_password": password is not None,
            },
        )

    @classmethod
    def from_config(cls, config: RedisConfig) -> "RedisConnection":
        """Build a connection manager from REDIS_* settings."""
        return cls(
            redis_url=config.url,
            password=config.password,
            pool_size=config.pool_size,
            socket_timeout=config.socket_timeout,
            socket_connect_timeout=config.socket_connect_timeout,
        )

    @property
    def client(self) -> Redis:
        """Initialized Redis client.

        Raises:
            CacheConnectionError: If initialize() has not been called
        """
        if self._redis is None:
            raise CacheConnectionError(
                "Redis not initialized. Call initialize() first.",
                cache_url=self.redis_url,
            )
        return self._redis

    async def initialize(self) -> Redis:
        """Create the pool, ping the server, and return the client.

        Raises:
            CacheConnectionError: If the server does not answer PING
        """
        logger.info("Initializing Redis connection pool")

        self._pool = ConnectionPool.from_url(
            self.redis_url,
            password=self.password,
            max_connections=self.pool_size,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_connect_timeout,
            decode_responses=False,  # codecs work on bytes
        )
        self._redis = Redis(connection_pool=self._pool)

        try:
            await self._redis.ping()
        except RedisError as e:
            logger.error(f"Failed to initialize Redis pool: {e}", exc_info=True)
            await self._redis.aclose()
            self._redis = None
            self._pool = None
            raise CacheConnectionError(
                f"cannot connect to redis at {self.redis_url}",
                cache_url=self.redis_url,
                original=e,
            ) from e

        logger.info(
            "Redis connection pool initialized successfully",
            extra={"pool_size": self.pool_size, "redis_url": self.redis_url},
        )
        return self._redis

    async def ping(self) -> bool:
        """Check if Redis connection is healthy.

        Returns:
            True if Redis responds to PING, False otherwise
        """
        if self._redis is None:
            return False

        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close all connections in pool."""
        if self._redis is None:
            return

        logger.info("Closing Redis connection pool")
        await self._redis.aclose()
        self._redis = None
        self._pool = None
        logger.info("Redis connection pool closed")

    def get_pool_info(self) -> dict:
        """Get information about connection pool."""
        return {
            "initialized": self._pool is not None,
            "redis_url": self.redis_url,
            "pool_size": self.pool_size,
        }
