"""
Exceptions Package for Uptime Watch

Provides the exception hierarchy used for error handling
throughout the application.
"""

from exceptions.base import (
    UptimeWatchException,
    ConfigurationError,
    InitializationError,
)

from exceptions.database import (
    DatabaseException,
    DatabaseConnectionError,
    DatabaseQueryError,
    TargetNotFoundError,
    DuplicateTargetError,
)

from exceptions.validation import (
    ValidationException,
    InvalidURLError,
    InvalidIntervalError,
    InvalidTargetIdError,
    MissingFieldError,
)

__all__ = [
    # Base exceptions
    "UptimeWatchException",
    "ConfigurationError",
    "InitializationError",

    # Database exceptions
    "DatabaseException",
    "DatabaseConnectionError",
    "DatabaseQueryError",
    "TargetNotFoundError",
    "DuplicateTargetError",

    # Validation exceptions
    "ValidationException",
    "InvalidURLError",
    "InvalidIntervalError",
    "InvalidTargetIdError",
    "MissingFieldError",
]
