"""
Database Exception Classes for Uptime Watch

Specialized exceptions for database-related errors including connection
issues, query errors, missing records and uniqueness violations.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from exceptions.base import UptimeWatchException


class DatabaseException(UptimeWatchException):
    """
    Base Database Exception

    Parent class for all database-related exceptions.
    """

    default_error_code = 2000
    default_recoverable = False

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if query:
            self.details["query"] = self._sanitize_query(query)

        if table:
            self.details["table"] = table

    @staticmethod
    def _sanitize_query(query: str) -> str:
        """Strip literal values from a SQL string before it is logged."""
        query = re.sub(r"'[^']*'", "'***'", query)
        query = re.sub(r"= \d+", "= ***", query)

        if len(query) > 500:
            query = query[:500] + "..."

        return query


class DatabaseConnectionError(DatabaseException):
    """
    Database Connection Error

    Raised when unable to establish or maintain database connection.
    """

    default_error_code = 2001

    def __init__(
        self,
        message: str = "Unable to connect to database",
        host: Optional[str] = None,
        port: Optional[int] = None,
        database: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if host:
            self.details["host"] = host

        if port:
            self.details["port"] = port

        if database:
            self.details["database"] = database

    def user_message(self) -> str:
        return "Unable to access the database. Please try again later."


class DatabaseQueryError(DatabaseException):
    """
    Database Query Error

    Raised when a database statement fails to execute.
    """

    default_error_code = 2002

    def __init__(
        self,
        message: str = "Database query failed",
        operation: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if operation:
            self.details["operation"] = operation

    def user_message(self) -> str:
        return "An error occurred while processing your request."


class TargetNotFoundError(DatabaseException):
    """
    Target Not Found Error

    Raised when a target id does not match any registered target.
    """

    default_error_code = 2003
    default_recoverable = True

    def __init__(
        self,
        target_id: Any = None,
        message: str = "Target not found",
        **kwargs: Any
    ) -> None:
        super().__init__(message, table="targets", **kwargs)

        if target_id is not None:
            self.details["target_id"] = str(target_id)

        self.target_id = target_id

    def user_message(self) -> str:
        return "Target not found"


class DuplicateTargetError(DatabaseException):
    """
    Duplicate Target Error

    Raised when a target URL is already registered.
    """

    default_error_code = 2004
    default_recoverable = True

    def __init__(
        self,
        url: Optional[str] = None,
        message: str = "URL already exists",
        **kwargs: Any
    ) -> None:
        super().__init__(message, table="targets", **kwargs)

        if url:
            self.details["url"] = url[:100]

    def user_message(self) -> str:
        return "URL already exists"
