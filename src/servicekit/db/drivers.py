"""Database drivers building async SQLAlchemy engines."""
import logging
from typing import Dict, Type

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.servicekit.config.settings import DatabaseConfig


logger = logging.getLogger(__name__)


class SQLDriver:
    """Base driver: builds a pooled engine and proves it with ``SELECT 1``.

    Subclasses only choose the dialect; see ``PostgresDriver`` and
    ``MariaDBDriver``.
    """

    name = "generic"

    def create_engine(self, config: DatabaseConfig) -> AsyncEngine:
        """Create configured async engine with connection pooling."""
        return create_async_engine(
            config.url_for(self.name),
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_recycle=config.pool_recycle,
            pool_timeout=config.pool_timeout,
            pool_pre_ping=config.pool_pre_ping,
        )

    async def connect(self, config: DatabaseConfig) -> AsyncEngine:
        """Open an engine and verify the server answers.

        The engine is disposed again if the probe fails.
        """
        engine = self.create_engine(config)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except BaseException:
            await engine.dispose()
            raise
        return engine


class PostgresDriver(SQLDriver):
    """PostgreSQL through asyncpg."""

    name = "postgres"


class MariaDBDriver(SQLDriver):
    """MariaDB/MySQL through aiomysql."""

    name = "mariadb"


DRIVERS: Dict[str, Type[SQLDriver]] = {
    PostgresDriver.name: PostgresDriver,
    MariaDBDriver.name: MariaDBDriver,
}


def get_driver(name: str) -> SQLDriver:
    """Return a driver instance by name.

    Raises:
        ValueError: Unknown driver name
    """
    try:
        return DRIVERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown database driver '{name}', expected one of {sorted(DRIVERS)}"
        ) from None
