"""Cache key building and argument validation."""
import logging
import math
from datetime import timedelta
from typing import Iterable, Optional, Union

from src.servicekit.exceptions.cache import CacheValidationError


logger = logging.getLogger(__name__)

TTL = Union[int, float, timedelta, None]


def build_cache_key(namespace: str, identifier: str, *parts: str) -> str:
    """Build cache key with namespace and optional parts.

    Args:
        namespace: Namespace for grouping (e.g., "session", "user")
        identifier: Unique identifier for the cached item
        *parts: Optional additional parts for the key

    Returns:
        Colon-separated cache key (e.g., "session:user:42")

    Example:
        build_cache_key("session", "user", "42")
        # Returns: "session:user:42"
    """
    if not namespace:
        raise CacheValidationError("namespace is required", reason="empty_namespace")
    if not identifier:
        raise CacheValidationError("identifier is required", reason="empty_identifier")

    key = ":".join([namespace, identifier] + [p for p in parts if p])

    logger.debug(f"Built cache key: {key}", extra={"key": key, "parts_count": len(parts) + 2})

    return key


def validate_key(key: str) -> str:
    """Reject empty or non-string keys.

    Raises:
        CacheValidationError: If key is empty or not a string
    """
    if not isinstance(key, str):
        raise CacheValidationError(
            f"Cache key must be string, got {type(key).__name__}",
            reason="key_not_string",
        )
    if not key:
        raise CacheValidationError("Cache key cannot be empty", reason="empty_key")
    return key


def validate_field(key: str, field: str) -> None:
    """Reject an empty key or an empty hash field name."""
    validate_key(key)
    if not isinstance(field, str) or not field:
        raise CacheValidationError(
            "key and field must not be empty",
            cache_key=key,
            reason="empty_field",
        )


def validate_fields(key: str, fields: Iterable[str]) -> list:
    """Validate a non-empty collection of field names and return it as a list."""
    validate_key(key)
    fields = list(fields)
    if not fields:
        raise CacheValidationError(
            "at least one field must be specified",
            cache_key=key,
            reason="no_fields",
        )
    for field in fields:
        validate_field(key, field)
    return fields


def ttl_to_milliseconds(ttl: TTL, cache_key: Optional[str] = None) -> Optional[int]:
    """Normalize a TTL to whole milliseconds.

    ``None`` and zero mean "no expiration" and yield None.

    Args:
        ttl: Seconds (int/float) or timedelta
        cache_key: Key, for error context

    Raises:
        CacheValidationError: If ttl is negative, not finite, or of an unsupported type
    """
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        seconds = ttl.total_seconds()
    elif isinstance(ttl, (int, float)) and not isinstance(ttl, bool):
        seconds = float(ttl)
    else:
        raise CacheValidationError(
            f"TTL must be seconds or timedelta, got {type(ttl).__name__}",
            cache_key=cache_key,
            reason="ttl_type",
        )

    if not math.isfinite(seconds):
        raise CacheValidationError("TTL must be finite", cache_key=cache_key, reason="ttl_not_finite")
    if seconds < 0:
        raise CacheValidationError("TTL cannot be negative", cache_key=cache_key, reason="negative_ttl")
    if seconds == 0:
        return None

    return max(1, int(round(seconds * 1000)))
