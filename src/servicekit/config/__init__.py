"""Configuration loading."""

from src.servicekit.config.settings import (
    DatabaseConfig,
    LibraryConfig,
    RedisConfig,
    load_config,
)

__all__ = [
    "DatabaseConfig",
    "RedisConfig",
    "LibraryConfig",
    "load_config",
]
