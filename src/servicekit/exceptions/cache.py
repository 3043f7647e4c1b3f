"""Cache-related exceptions."""
from typing import Optional

from src.servicekit.exceptions.base import ServiceKitError


class CacheError(ServiceKitError):
    """Base exception for cache errors.

    Args:
        message: Human-readable error message
        cache_key: Cache key involved
        error_code: Machine-readable error code
        details: Additional error context
        original: Underlying client exception
    """

    def __init__(
        self,
        message: str,
        cache_key: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        self.cache_key = cache_key
        super().__init__(
            message=message,
            error_code=error_code or "CACHE_ERROR",
            details=details,
            original=original,
        )

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.cache_key:
            parts.append(f"Key: {self.cache_key}")
        return " | ".join(parts)


class CacheValidationError(CacheError):
    """Invalid key, field, TTL or argument, rejected before any I/O."""

    def __init__(
        self,
        message: str = "Invalid cache argument",
        cache_key: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        details = {}
        if reason is not None:
            details["reason"] = reason
        super().__init__(message, cache_key, "CACHE_VALIDATION", details)


class CacheConnectionError(CacheError):
    """Redis is unreachable or the transport failed mid-operation."""

    def __init__(
        self,
        message: str = "Cache connection failed",
        cache_key: Optional[str] = None,
        cache_url: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        details = {}
        if cache_url is not None:
            details["cache_url"] = cache_url
        super().__init__(message, cache_key, "CACHE_UNAVAILABLE", details, original)


class CacheCommandError(CacheError):
    """Redis answered with an error reply (e.g. WRONGTYPE)."""

    def __init__(
        self,
        message: str = "Cache command failed",
        cache_key: Optional[str] = None,
        operation: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        details = {}
        if operation is not None:
            details["operation"] = operation
        super().__init__(message, cache_key, "CACHE_COMMAND_FAILED", details, original)


class CacheSerializationError(CacheError):
    """Failed to serialize/deserialize cache value."""

    def __init__(
        self,
        message: str = "Cache serialization failed",
        cache_key: Optional[str] = None,
        value_type: Optional[str] = None,
        original: Optional[Exception] = None,
        error_code: str = "CACHE_SERIALIZATION",
    ):
        details = {}
        if value_type is not None:
            details["value_type"] = value_type
        super().__init__(message, cache_key, error_code, details, original)


class CacheEncodingError(CacheSerializationError):
    """Value could not be rendered for storage."""

    def __init__(
        self,
        message: str = "Cache value encoding failed",
        cache_key: Optional[str] = None,
        value_type: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(message, cache_key, value_type, original, "CACHE_ENCODING")


class CacheDecodingError(CacheSerializationError):
    """Stored payload is malformed for the declared value type."""

    def __init__(
        self,
        message: str = "Cache value decoding failed",
        cache_key: Optional[str] = None,
        value_type: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(message, cache_key, value_type, original, "CACHE_DECODING")


class CacheTypeMismatchError(CacheSerializationError):
    """Value or payload does not match the declared value type."""

    def __init__(
        self,
        message: str = "Cache value type mismatch",
        cache_key: Optional[str] = None,
        value_type: Optional[str] = None,
        actual_type: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(message, cache_key, value_type, original, "CACHE_TYPE_MISMATCH")
        if actual_type is not None:
            self.details["actual_type"] = actual_type


class CacheCancelledError(CacheError):
    """The operation context was cancelled before the call completed."""

    def __init__(
        self,
        message: str = "Cache operation cancelled",
        cache_key: Optional[str] = None,
        operation: Optional[str] = None,
        error_code: str = "CACHE_CANCELLED",
    ):
        details = {}
        if operation is not None:
            details["operation"] = operation
        super().__init__(message, cache_key, error_code, details)


class CacheTimeoutError(CacheCancelledError):
    """The operation context deadline expired."""

    def __init__(
        self,
        message: str = "Cache operation timed out",
        cache_key: Optional[str] = None,
        operation: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        super().__init__(message, cache_key, operation, "CACHE_TIMEOUT")
        if timeout_seconds is not None:
            self.details["timeout_seconds"] = timeout_seconds
