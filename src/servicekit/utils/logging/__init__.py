"""Structured logging utilities."""

from src.servicekit.utils.logging.context import (
    get_context,
    get_correlation_id,
    get_operation_name,
    get_service_name,
    log_context,
    with_correlation_id,
)
from src.servicekit.utils.logging.factory import (
    capture_error,
    configure_logging,
    disable_logging,
    get_logger,
)
from src.servicekit.utils.logging.formatters import ConsoleFormatter, StructuredJSONFormatter

__all__ = [
    # Context management
    "get_correlation_id",
    "get_service_name",
    "get_operation_name",
    "get_context",
    "log_context",
    "with_correlation_id",
    # Setup
    "configure_logging",
    "get_logger",
    "capture_error",
    "disable_logging",
    # Formatters
    "StructuredJSONFormatter",
    "ConsoleFormatter",
]
