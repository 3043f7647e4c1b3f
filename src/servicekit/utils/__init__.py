"""Shared utilities module."""

from src.servicekit.utils import retry  # noqa: F401
from src.servicekit.utils.retry import calculate_backoff  # noqa: F401

__all__ = [
    # Retry utilities
    "retry",
    "calculate_backoff",
]
