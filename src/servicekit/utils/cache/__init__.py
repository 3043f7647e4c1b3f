"""Cache infrastructure utilities."""

from src.servicekit.utils.cache.connection import RedisConnection, translate_redis_error  # noqa: F401
from src.servicekit.utils.cache.context import OperationContext  # noqa: F401
from src.servicekit.utils.cache.keys import (
    build_cache_key,
    ttl_to_milliseconds,
    validate_field,
    validate_key,
)  # noqa: F401
from src.servicekit.utils.cache.serializers import (
    ValueCodec,
    ValueKind,
    decode,
    encode,
    get_codec,
    is_primitive,
)  # noqa: F401
from src.servicekit.utils.cache.pipeline import CachePipeline  # noqa: F401
from src.servicekit.utils.cache.repository import CacheLookup, CacheRepository  # noqa: F401

__all__ = [
    # Connection management
    "RedisConnection",
    "translate_redis_error",
    "OperationContext",
    # Serialization policy
    "ValueCodec",
    "ValueKind",
    "is_primitive",
    "get_codec",
    "encode",
    "decode",
    # Keys
    "build_cache_key",
    "validate_key",
    "validate_field",
    "ttl_to_milliseconds",
    # Repository
    "CacheRepository",
    "CacheLookup",
    "CachePipeline",
]
