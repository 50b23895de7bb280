"""
Validation Exception Classes for Uptime Watch

Exceptions for input validation errors: URLs, check intervals,
target identifiers and missing fields.
"""

from __future__ import annotations

from typing import Any, Optional

from exceptions.base import UptimeWatchException


class ValidationException(UptimeWatchException):
    """
    Base Validation Exception

    Parent class for all validation-related exceptions.
    """

    default_error_code = 3000
    default_recoverable = True

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if field:
            self.details["field"] = field

        if value is not None:
            self.details["value"] = self._sanitize_value(value)

    @staticmethod
    def _sanitize_value(value: Any) -> str:
        str_value = str(value)
        if len(str_value) > 100:
            str_value = str_value[:100] + "..."
        return str_value


class InvalidURLError(ValidationException):
    """
    Invalid URL Error

    Raised when a provided URL is invalid or malformed.
    """

    default_error_code = 3001

    def __init__(
        self,
        message: str = "Invalid URL format",
        url: Optional[Any] = None,
        reason: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, field="url", value=url, **kwargs)

        if reason:
            self.details["reason"] = reason


class InvalidIntervalError(ValidationException):
    """
    Invalid Interval Error

    Raised when a check interval is outside the allowed range.
    """

    default_error_code = 3002

    def __init__(
        self,
        message: str = "Invalid check interval",
        interval: Optional[Any] = None,
        min_interval: Optional[int] = None,
        max_interval: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, field="check_interval", value=interval, **kwargs)

        if min_interval is not None:
            self.details["min_interval"] = min_interval

        if max_interval is not None:
            self.details["max_interval"] = max_interval

    def user_message(self) -> str:
        min_val = self.details.get("min_interval")
        max_val = self.details.get("max_interval")

        if min_val is not None and max_val is not None:
            return f"Check interval must be between {min_val} and {max_val} minutes"

        return self.message


class InvalidTargetIdError(ValidationException):
    """
    Invalid Target Id Error

    Raised when a target identifier is not a positive integer.
    """

    default_error_code = 3003

    def __init__(
        self,
        target_id: Optional[Any] = None,
        message: str = "Invalid target ID",
        **kwargs: Any
    ) -> None:
        super().__init__(message, field="id", value=target_id, **kwargs)


class MissingFieldError(ValidationException):
    """
    Missing Field Error

    Raised when a required field is absent or empty.
    """

    default_error_code = 3004

    def __init__(
        self,
        field_name: str,
        message: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(
            message or f"Field '{field_name}' is required",
            field=field_name,
            **kwargs
        )
