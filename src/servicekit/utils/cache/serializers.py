"""Cache serialization policy.

Primitive values (str, int, float, bool, bytes) are stored as their plain
text form; everything else is stored as JSON produced by a pydantic
``TypeAdapter`` for the declared value type. The kind is resolved once per
value type, when the codec is built.
"""
import dataclasses
import enum
import functools
import logging
from typing import Any, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError
from pydantic_core import PydanticSerializationError

from src.servicekit.exceptions.cache import (
    CacheDecodingError,
    CacheEncodingError,
    CacheTypeMismatchError,
)


logger = logging.getLogger(__name__)

V = TypeVar("V")

# bool must come before int: bool is an int subclass
_PRIMITIVE_TYPES = (bool, str, bytes, int, float)

_TRUE_TEXT = {"true", "1"}
_FALSE_TEXT = {"false", "0"}


class ValueKind(str, enum.Enum):
    """Storage form of a cache value."""

    PRIMITIVE = "primitive"
    STRUCTURED = "structured"


def is_primitive(value_type: Any) -> bool:
    """Return True if values of ``value_type`` are stored as plain text.

    Enum subclasses of int/str are treated as structured so that they go
    through pydantic validation on the way back.
    """
    if not isinstance(value_type, type):
        return False
    if issubclass(value_type, enum.Enum):
        return False
    return issubclass(value_type, _PRIMITIVE_TYPES)


def _instance_type(value_type: Any) -> Optional[type]:
    """Class that values must be instances of, when isinstance applies."""
    if not isinstance(value_type, type):
        return None
    if issubclass(value_type, (BaseModel, enum.Enum)) or dataclasses.is_dataclass(value_type):
        return value_type
    return None


def _base_primitive(value_type: type) -> type:
    for candidate in _PRIMITIVE_TYPES:
        if issubclass(value_type, candidate):
            return candidate
    raise TypeError(f"{value_type!r} is not a primitive type")


class ValueCodec(Generic[V]):
    """Encode and decode values of one declared type.

    Example:
        codec = ValueCodec(int)
        codec.encode(42)          # b"42"
        codec.decode(b"42")       # 42

        codec = ValueCodec(UserSession)   # pydantic model or dataclass
        codec.decode(codec.encode(session)) == session

    Attributes:
        value_type: Declared type of the values
        kind: ValueKind resolved at construction
    """

    def __init__(self, value_type: Type[V]):
        self.value_type = value_type
        self.kind = ValueKind.PRIMITIVE if is_primitive(value_type) else ValueKind.STRUCTURED
        self._type_name = getattr(value_type, "__name__", repr(value_type))
        self._primitive: Optional[type] = None
        self._adapter: Optional[TypeAdapter] = None
        self._instance_type = _instance_type(value_type)

        if self.kind is ValueKind.PRIMITIVE:
            self._primitive = _base_primitive(value_type)
        else:
            try:
                self._adapter = TypeAdapter(value_type)
            except PydanticSchemaGenerationError as e:
                raise CacheEncodingError(
                    f"Type {self._type_name} cannot be stored as JSON",
                    value_type=self._type_name,
                    original=e,
                ) from e

    @property
    def is_primitive(self) -> bool:
        return self.kind is ValueKind.PRIMITIVE

    def encode(self, value: V) -> bytes:
        """Render ``value`` for storage.

        Raises:
            CacheTypeMismatchError: The value is not an instance of the declared type
            CacheEncodingError: JSON serialization failed or the value does not fit the declared type
        """
        if self.kind is ValueKind.PRIMITIVE:
            return self._encode_primitive(value)

        if self._instance_type is not None and not isinstance(value, self._instance_type):
            raise CacheTypeMismatchError(
                f"Expected {self._type_name}, got {type(value).__name__}",
                value_type=self._type_name,
                actual_type=type(value).__name__,
            )

        try:
            # pydantic only warns on unexpected values unless asked to raise
            return self._adapter.dump_json(value, warnings="error")
        except PydanticSerializationError as e:
            logger.error(f"JSON serialization failed for {self._type_name}: {e}", exc_info=True)
            raise CacheEncodingError(
                f"Value is not JSON-serializable as {self._type_name}: {e}",
                value_type=self._type_name,
                original=e,
            ) from e

    def decode(self, data: Union[bytes, str]) -> V:
        """Rebuild a value of the declared type from its stored form.

        Raises:
            CacheTypeMismatchError: Stored text is not a valid rendering of the primitive type
            CacheDecodingError: Stored JSON is malformed or fails validation
        """
        if isinstance(data, str):
            data = data.encode("utf-8")

        if self.kind is ValueKind.PRIMITIVE:
            return self._decode_primitive(data)

        try:
            return self._adapter.validate_json(data)
        except ValidationError as e:
            logger.error(f"JSON deserialization failed for {self._type_name}: {e}", exc_info=True)
            raise CacheDecodingError(
                f"Invalid JSON data for {self._type_name}: {e}",
                value_type=self._type_name,
                original=e,
            ) from e

    def _encode_primitive(self, value: Any) -> bytes:
        base = self._primitive
        accepted = isinstance(value, base) or (
            base is float and isinstance(value, int) and not isinstance(value, bool)
        )
        if base is int and isinstance(value, bool):
            accepted = False
        if not accepted:
            raise CacheTypeMismatchError(
                f"Expected {self._type_name}, got {type(value).__name__}",
                value_type=self._type_name,
                actual_type=type(value).__name__,
            )

        if base is bytes:
            return bytes(value)
        if base is bool:
            return b"true" if value else b"false"
        if base is float:
            return repr(float(value)).encode("utf-8")
        if base is int:
            return str(int(value)).encode("utf-8")
        return str(value).encode("utf-8")

    def _decode_primitive(self, data: bytes) -> V:
        base = self._primitive
        if base is bytes:
            return self.value_type(data)

        try:
            text = data.decode("utf-8")
            if base is bool:
                lowered = text.strip().lower()
                if lowered in _TRUE_TEXT:
                    return True
                if lowered in _FALSE_TEXT:
                    return False
                raise ValueError(f"not a boolean: {text!r}")
            parsed = base(text)
        except (UnicodeDecodeError, ValueError) as e:
            raise CacheTypeMismatchError(
                f"Stored value is not a valid {self._type_name}: {e}",
                value_type=self._type_name,
                original=e,
            ) from e

        if self.value_type is not base:
            return self.value_type(parsed)
        return parsed

    def __repr__(self) -> str:
        return f"ValueCodec({self._type_name}, kind={self.kind.value})"


@functools.lru_cache(maxsize=128)
def get_codec(value_type: Any) -> ValueCodec:
    """Return a shared codec for ``value_type``.

    Example:
        get_codec(str).encode("hello")   # b"hello"
    """
    return ValueCodec(value_type)


def encode(value: Any, value_type: Optional[Any] = None) -> bytes:
    """Encode ``value`` using the codec of ``value_type`` (default: its own type)."""
    return get_codec(value_type if value_type is not None else type(value)).encode(value)


def decode(data: Union[bytes, str], value_type: Any) -> Any:
    """Decode stored ``data`` into ``value_type``."""
    return get_codec(value_type).decode(data)
