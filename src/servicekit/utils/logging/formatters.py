"""Structured JSON and console log formatters."""
import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from src.servicekit.utils.logging.context import get_context


# Attributes every LogRecord has; anything else came from ``extra=``
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

# Sensitive key fragments to redact
_SENSITIVE_PATTERNS = (
    "api_key",
    "password",
    "passwd",
    "token",
    "secret",
    "authorization",
    "bearer",
)


def _serialize_value(value: Any) -> Any:
    """Safely serialize value to JSON-compatible type."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _redact_sensitive(data: Any) -> Any:
    """Replace values under sensitive keys with [REDACTED]."""
    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            if any(pattern in str(key).lower() for pattern in _SENSITIVE_PATTERNS):
                redacted[key] = "[REDACTED]"
            else:
                redacted[key] = _redact_sensitive(value)
        return redacted
    if isinstance(data, list):
        return [_redact_sensitive(item) for item in data]
    return data


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Context fields plus ``extra=`` fields of a record, redacted."""
    fields = get_context()
    for key, value in record.__dict__.items():
        if key not in _RESERVED_ATTRS and not key.startswith("_"):
            fields[key] = value
    return _redact_sensitive(fields)


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as one JSON object per line with:
    - timestamp (ISO 8601 UTC)
    - level, logger_name, message
    - service_name (context, else the formatter default)
    - caller: source file, line and function
    - exception and stack_trace (if applicable)
    - every context and ``extra=`` field, with secrets redacted
    """

    def __init__(self, service_name: str = "unknown"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        fields = record_fields(record)

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": fields.pop("service_name", None) or self.service_name,
            "logger_name": record.name,
            "message": record.getMessage(),
            "caller": f"{record.pathname}:{record.lineno}",
            "function": record.funcName,
        }

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "module": exc_type.__module__ if exc_type else None,
            }
            if exc_tb:
                log_entry["stack_trace"] = traceback.format_exception(exc_type, exc_value, exc_tb)

        for key, value in fields.items():
            log_entry.setdefault(key, value)

        return json.dumps(_serialize_value(log_entry), default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable single-line formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if fields:
            rendered = " ".join(f"{k}={_serialize_value(v)}" for k, v in fields.items())
            line = f"{line} | {rendered}"
        return line
