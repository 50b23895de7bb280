"""
============================================================================
UPTIME WATCH - VALIDATORS UTILITY
============================================================================
Validation functions for target URLs, check intervals and identifiers.
============================================================================
"""

from typing import Any
from urllib.parse import urlparse

import validators as external_validators

from config.constants import Limits
from exceptions import (
    InvalidIntervalError,
    InvalidTargetIdError,
    InvalidURLError,
    MissingFieldError,
)
from utils.logger import get_logger


logger = get_logger("Validators")


# ============================================================================
# URL VALIDATORS
# ============================================================================

class URLValidator:
    """
    URL validation for probe targets.
    """

    ALLOWED_SCHEMES = ("http", "https")

    @staticmethod
    def has_http_scheme(url: Any) -> bool:
        """True for strings with an http(s) scheme and a host part."""
        if not isinstance(url, str):
            return False
        parsed = urlparse(url.strip())
        return parsed.scheme.lower() in URLValidator.ALLOWED_SCHEMES and bool(parsed.netloc)

    @staticmethod
    def is_valid_url(url: Any) -> bool:
        """
        Check if URL is a well-formed http(s) URL.

        Args:
            url: URL to validate

        Returns:
            True if valid, False otherwise
        """
        if not URLValidator.has_http_scheme(url):
            return False

        if len(url) > Limits.MAX_URL_LENGTH:
            return False

        # simple_host lets intranet names such as http://localhost:3000 through
        result = external_validators.url(url.strip(), simple_host=True)
        if result is not True:
            logger.debug(f"URL validation failed for {url!r}")
            return False
        return True

    @staticmethod
    def validate(url: Any) -> str:
        """
        Return the stripped URL or raise ``InvalidURLError``.
        """
        if url is None or (isinstance(url, str) and not url.strip()):
            raise MissingFieldError("url")

        if not URLValidator.has_http_scheme(url):
            raise InvalidURLError(url=url, reason="no_scheme")

        if not URLValidator.is_valid_url(url):
            raise InvalidURLError(url=url, reason="invalid_format")

        return url.strip()


# ============================================================================
# DATA VALIDATORS
# ============================================================================

class DataValidator:
    """
    General data validation utilities.
    """

    @staticmethod
    def is_valid_interval(
        interval: Any,
        min_val: int = Limits.MIN_CHECK_INTERVAL,
        max_val: int = Limits.MAX_CHECK_INTERVAL,
    ) -> bool:
        """Check interval in minutes, inclusive range."""
        if isinstance(interval, bool) or not isinstance(interval, int):
            return False
        return min_val <= interval <= max_val

    @staticmethod
    def validate_interval(interval: Any) -> int:
        """Return the interval or raise ``InvalidIntervalError``."""
        if not DataValidator.is_valid_interval(interval):
            raise InvalidIntervalError(
                interval=interval,
                min_interval=Limits.MIN_CHECK_INTERVAL,
                max_interval=Limits.MAX_CHECK_INTERVAL,
            )
        return interval

    @staticmethod
    def validate_name(name: Any) -> str:
        """Return the stripped display name or raise."""
        if not isinstance(name, str) or not name.strip():
            raise MissingFieldError("name")
        name = name.strip()
        if len(name) > Limits.MAX_NAME_LENGTH:
            raise MissingFieldError(
                "name",
                message=f"Name must be at most {Limits.MAX_NAME_LENGTH} characters",
            )
        return name

    @staticmethod
    def parse_target_id(value: Any) -> int:
        """
        Parse a target id from an int or a decimal string.

        Raises:
            InvalidTargetIdError: for anything that is not a positive integer
        """
        if isinstance(value, bool):
            raise InvalidTargetIdError(value)

        if isinstance(value, int):
            target_id = value
        elif isinstance(value, str) and value.strip().isdigit():
            target_id = int(value.strip())
        else:
            raise InvalidTargetIdError(value)

        if target_id <= 0:
            raise InvalidTargetIdError(value)
        return target_id
