"""Custom exceptions for servicekit."""

from src.servicekit.exceptions.base import ServiceKitError

from src.servicekit.exceptions.database import (
    DatabaseConnectionError,
    DatabaseError,
    RepositoryConflictError,
    RepositoryNotFoundError,
)

from src.servicekit.exceptions.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
)

from src.servicekit.exceptions.cache import (
    CacheError,
    CacheValidationError,
    CacheConnectionError,
    CacheCommandError,
    CacheSerializationError,
    CacheEncodingError,
    CacheDecodingError,
    CacheTypeMismatchError,
    CacheCancelledError,
    CacheTimeoutError,
)

__all__ = [
    # Base exceptions
    "ServiceKitError",
    # Database exceptions
    "DatabaseError",
    "DatabaseConnectionError",
    "RepositoryNotFoundError",
    "RepositoryConflictError",
    # Configuration exceptions
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    # Cache exceptions
    "CacheError",
    "CacheValidationError",
    "CacheConnectionError",
    "CacheCommandError",
    "CacheSerializationError",
    "CacheEncodingError",
    "CacheDecodingError",
    "CacheTypeMismatchError",
    "CacheCancelledError",
    "CacheTimeoutError",
]
