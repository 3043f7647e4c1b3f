"""Environment-file configuration for databases and Redis."""
import logging
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from src.servicekit.exceptions.config import ConfigNotFoundError, ConfigValidationError


logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"

ENABLE = "enable"
DISABLE = "disable"


class DatabaseConfig(BaseSettings):
    """Relational database settings, read from POSTGRES_* variables.

    The same variables configure the MariaDB driver; ``driver`` selects it.
    """

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    driver: Literal["postgres", "mariadb"] = Field(default="postgres", description="SQL dialect")
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    user: str = Field(default="postgres", description="Database user")
    password: str = Field(default="postgres", description="Database password")
    database: str = Field(default="postgres", description="Database name")
    sslmode: str = Field(default=DISABLE, description="'enable' turns on TLS")

    # Connection pool settings
    pool_size: int = Field(default=5, description="Connections kept in the pool")
    max_overflow: int = Field(default=10, description="Extra connections beyond pool_size")
    pool_recycle: int = Field(default=3600, description="Recycle connections after N seconds")
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    pool_pre_ping: bool = Field(default=True, description="Test connections before use")

    echo: bool = Field(default=False, description="Echo SQL statements (DEBUG mode)")

    @field_validator("sslmode", mode="before")
    @classmethod
    def normalize_sslmode(cls, v: Optional[str]) -> str:
        """Anything other than 'enable' disables TLS."""
        return ENABLE if str(v or "").strip().lower() == ENABLE else DISABLE

    @property
    def ssl_enabled(self) -> bool:
        return self.sslmode == ENABLE

    @property
    def url(self) -> URL:
        """Async SQLAlchemy URL for the configured driver."""
        return self.url_for(self.driver)

    def url_for(self, driver: str) -> URL:
        """Async SQLAlchemy URL for ``driver`` ("postgres" or "mariadb")."""
        if driver == "mariadb":
            return URL.create(
                "mysql+aiomysql",
                username=self.user,
                password=self.password,
                host=self.host,
                port=self.port,
                database=self.database,
                query={"charset": "utf8mb4"},
            )
        query = {"ssl": "require"} if self.ssl_enabled else {}
        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
            query=query,
        )


class RedisConfig(BaseSettings):
    """Redis settings, read from REDIS_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    db: int = Field(default=0, ge=0, description="Redis logical database")
    password: Optional[str] = Field(default=None, description="Redis password")
    pool_size: int = Field(default=10, description="Max pooled connections")
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    socket_connect_timeout: float = Field(default=5.0, description="Connect timeout in seconds")

    @property
    def url(self) -> str:
        """Connection URL without credentials."""
        return f"redis://{self.host}:{self.port}/{self.db}"


class LibraryConfig(BaseModel):
    """Everything ``load_config`` reads from one env file."""

    database: DatabaseConfig
    redis: RedisConfig
    env_file: Optional[str] = None


def load_config(env_file: Optional[Union[str, Path]] = DEFAULT_ENV_FILE) -> LibraryConfig:
    """Load database and Redis settings from ``env_file`` and the environment.

    Process environment variables take precedence over the file.

    Args:
        env_file: Path to the env file; None reads the environment only

    Returns:
        LibraryConfig with both sections

    Raises:
        ConfigNotFoundError: env_file does not exist
        ConfigValidationError: A variable has an invalid value (e.g. non-numeric port)
    """
    path: Optional[str] = None
    if env_file is not None:
        if not Path(env_file).is_file():
            raise ConfigNotFoundError(config_file=str(env_file))
        path = str(env_file)

    try:
        database = DatabaseConfig(_env_file=path)
        redis = RedisConfig(_env_file=path)
    except ValidationError as e:
        field_errors = {
            ".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()
        }
        logger.error(
            "Configuration validation failed",
            extra={"config_file": path, "field_errors": field_errors},
        )
        raise ConfigValidationError(
            "failed to load configuration",
            config_file=path,
            field_errors=field_errors,
            original=e,
        ) from e

    logger.info(
        "Configuration loaded",
        extra={
            "config_file": path,
            "db_driver": database.driver,
            "db_host": database.host,
            "redis_url": redis.url,
        },
    )
    return LibraryConfig(database=database, redis=redis, env_file=path)
