"""Retry-wrapped database bootstrap: connect, then create tables."""
import logging
from collections import OrderedDict
from typing import Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.servicekit.config.settings import DatabaseConfig
from src.servicekit.db.drivers import get_driver
from src.servicekit.exceptions.database import DatabaseConnectionError, DatabaseError
from src.servicekit.interfaces import ISQLDriver
from src.servicekit.models.base import Base
from src.servicekit.utils.retry import retry


logger = logging.getLogger(__name__)

DEFAULT_CONNECT_ATTEMPTS = 5
DEFAULT_RETRY_DELAY_SECONDS = 3.0


class DatabaseConnection:
    """Connected engine plus the session factory built on it.

    Args:
        engine: Connected async engine
        driver_name: Name of the driver that opened it
    """

    def __init__(self, engine: AsyncEngine, driver_name: str = "generic"):
        self.engine = engine
        self.driver_name = driver_name
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        """New session bound to this connection (caller closes it)."""
        return self.session_factory()

    async def migrate(self, *models: Type[Base]) -> "DatabaseConnection":
        """Create the tables of ``models`` that do not exist yet.

        Tables are grouped per metadata so foreign keys are created in
        dependency order. Returns self for chaining.
        """
        if not models:
            logger.warning("No models provided for migration, skipping")
            return self

        by_metadata: "OrderedDict[int, tuple]" = OrderedDict()
        for model in models:
            metadata = model.metadata
            entry = by_metadata.setdefault(id(metadata), (metadata, []))
            entry[1].append(model.__table__)

        try:
            async with self.engine.begin() as conn:
                for metadata, tables in by_metadata.values():
                    await conn.run_sync(metadata.create_all, tables=tables)
        except SQLAlchemyError as e:
            logger.error(f"Error migrating models: {e}", exc_info=True)
            raise DatabaseError(f"Failed to migrate models: {e}", original=e) from e

        logger.info(
            "Models migrated",
            extra={"models": [model.__name__ for model in models]},
        )
        return self

    async def ping(self) -> bool:
        """Check if the database answers ``SELECT 1``."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()
        logger.info("Database engine disposed", extra={"driver": self.driver_name})


async def connect(
    config: DatabaseConfig,
    driver: Optional[ISQLDriver] = None,
    attempts: int = DEFAULT_CONNECT_ATTEMPTS,
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
) -> DatabaseConnection:
    """Connect to the database, retrying a fixed number of times.

    Each failed attempt is logged and followed by a fixed delay. After the
    last attempt the error is final.

    Args:
        config: Database settings
        driver: Driver to use (default: by ``config.driver``)
        attempts: Total connection attempts
        delay_seconds: Pause between attempts

    Returns:
        DatabaseConnection ready for sessions and ``migrate()``

    Raises:
        DatabaseConnectionError: All attempts failed
    """
    driver = driver or get_driver(config.driver)

    def give_up(error: Exception, tried: int) -> Exception:
        return DatabaseConnectionError(
            "connection failed after multiple attempts",
            details={"driver": driver.name, "host": config.host, "attempts": tried},
            original=error,
        )

    @retry(
        max_attempts=attempts,
        delay_seconds=delay_seconds,
        retry_on=(SQLAlchemyError, OSError),
        on_give_up=give_up,
    )
    async def open_engine() -> AsyncEngine:
        return await driver.connect(config)

    engine = await open_engine()
    logger.info(
        "Database connection established",
        extra={"driver": driver.name, "host": config.host, "database": config.database},
    )
    return DatabaseConnection(engine, driver.name)
