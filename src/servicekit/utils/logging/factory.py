"""Logging setup for services built on servicekit."""
import logging
import sys
from typing import Any, Dict, Optional

from src.servicekit.utils.logging.context import set_service_name
from src.servicekit.utils.logging.formatters import ConsoleFormatter, StructuredJSONFormatter

_logger = logging.getLogger(__name__)


def configure_logging(
    service_name: str,
    level: int = logging.INFO,
    dev_mode: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Args:
        service_name: Service name stamped on every record
        level: Global log level
        dev_mode: Human-readable console output instead of JSON lines
        log_file: Also write JSON lines to this file (rotated at 10MB)
    """
    set_service_name(service_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        ConsoleFormatter() if dev_mode else StructuredJSONFormatter(service_name=service_name)
    )
    root_logger.addHandler(console_handler)

    if log_file:
        from logging.handlers import RotatingFileHandler

        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(StructuredJSONFormatter(service_name=service_name))
        root_logger.addHandler(file_handler)

    _logger.info(
        "Logging configured",
        extra={
            "service_name": service_name,
            "level": logging.getLevelName(level),
            "dev_mode": dev_mode,
            "log_file": log_file,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger (typically ``get_logger(__name__)``)."""
    return logging.getLogger(name)


def capture_error(
    logger: logging.Logger,
    error: Optional[BaseException],
    message: str,
    fields: Optional[Dict[str, Any]] = None,
) -> None:
    """Log ``error`` at ERROR level with ``fields``; no-op when error is None."""
    if error is None:
        return
    extra = dict(fields or {})
    extra["error"] = str(error)
    extra["error_type"] = type(error).__name__
    logger.error(message, extra=extra, exc_info=error)


def disable_logging() -> None:
    """Drop every root handler. Useful for tests."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(logging.NullHandler())
