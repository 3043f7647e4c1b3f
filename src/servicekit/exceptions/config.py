"""Configuration-related exceptions."""
from typing import Optional

from src.servicekit.exceptions.base import ServiceKitError


class ConfigError(ServiceKitError):
    """Base exception for configuration errors.

    Args:
        message: Human-readable error message
        config_file: Path to the env file involved
        error_code: Machine-readable error code
        details: Additional error context
        original: Wrapped exception
    """

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        self.config_file = config_file
        super().__init__(
            message=message,
            error_code=error_code or "CONFIG_ERROR",
            details=details,
            original=original,
        )

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.config_file:
            parts.append(f"Config: {self.config_file}")
        return " | ".join(parts)


class ConfigNotFoundError(ConfigError):
    """Env file not found."""

    def __init__(
        self,
        message: str = "Error loading .env file",
        config_file: Optional[str] = None,
    ):
        super().__init__(message, config_file, "CONFIG_NOT_FOUND")


class ConfigValidationError(ConfigError):
    """Configuration failed validation."""

    def __init__(
        self,
        message: str = "Configuration validation failed",
        config_file: Optional[str] = None,
        field_errors: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        details = {}
        if field_errors is not None:
            details["field_errors"] = field_errors
        super().__init__(message, config_file, "CONFIG_INVALID", details, original)
