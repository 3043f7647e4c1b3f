"""Database-related exceptions."""
from typing import Optional

from src.servicekit.exceptions.base import ServiceKitError


class DatabaseError(ServiceKitError):
    """Base exception for database errors.

    All database-related exceptions inherit from this class.

    Args:
        message: Human-readable error message
        error_code: Machine-readable error code
        details: Additional context as dictionary
        original: Original exception if wrapping another exception
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code or "DB_ERROR",
            details=details,
            original=original,
        )


class DatabaseConnectionError(DatabaseError):
    """Exception raised when the database stays unreachable after all attempts.

    Args:
        message: Human-readable error message
        details: Additional context (driver, attempts)
        original: Last connection exception
    """

    def __init__(
        self,
        message: str = "Database connection failed",
        details: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code="DB_CONNECTION_FAILED",
            details=details,
            original=original,
        )


class RepositoryNotFoundError(DatabaseError):
    """Exception raised when repository operation fails to find object.

    Example: Trying to update a user with id=999 that doesn't exist.
    """

    def __init__(
        self,
        message: str = "Repository object not found",
        details: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code="REPOSITORY_NOT_FOUND",
            details=details,
            original=original,
        )


class RepositoryConflictError(DatabaseError):
    """Exception raised when repository operation violates constraints.

    Examples:
    - Inserting duplicate email
    - Updating with invalid foreign key
    """

    def __init__(
        self,
        message: str = "Repository conflict error",
        details: Optional[dict] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            error_code="REPOSITORY_CONFLICT",
            details=details,
            original=original,
        )
