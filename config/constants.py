"""
Constants Module for Uptime Watch

Contains constant values and enumerations used throughout the application.
"""

from __future__ import annotations

from enum import Enum
from typing import Final, Optional


class CheckStatus(str, Enum):
    """
    Liveness classification of a single check.

    A target that has never been checked has no status at all (``None``);
    that is the "unknown" state of the transition table.
    """

    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["CheckStatus"]:
        """Parse a stored status string; ``None`` stays ``None``."""
        if value is None or isinstance(value, cls):
            return value
        return cls(str(value).lower())


class TransitionType(str, Enum):
    """Notification to send after a check."""

    DOWN = "down"
    RECOVERY = "recovery"


class ProbeErrors:
    """Human-readable cause strings recorded on ``down`` checks."""

    TIMEOUT: Final[str] = "Request timed out"
    CONNECTION_REFUSED: Final[str] = "Connection refused - server may be down"
    DNS_FAILURE: Final[str] = "DNS resolution failed - domain not found"
    NO_RESPONSE: Final[str] = "No response received from server"
    UNKNOWN: Final[str] = "Unknown network error"

    @staticmethod
    def http_error(status_code: int, reason: str) -> str:
        reason = reason or "Server Error"
        return f"HTTP {status_code}: {reason}"

    @staticmethod
    def network_error(detail: str) -> str:
        return f"Network error: {detail}" if detail else ProbeErrors.UNKNOWN

    @staticmethod
    def check_failed(cause: str) -> str:
        return f"Check failed: {cause}"


class Limits:
    """Validation limits."""

    MIN_CHECK_INTERVAL: Final[int] = 1        # minutes
    MAX_CHECK_INTERVAL: Final[int] = 1440     # minutes (24 h)
    MAX_NAME_LENGTH: Final[int] = 255
    MAX_URL_LENGTH: Final[int] = 2048
    MAX_ERROR_LENGTH: Final[int] = 500
    MAX_HISTORY_LIMIT: Final[int] = 1000


class Defaults:
    """Default values."""

    CHECK_INTERVAL: Final[int] = 60           # minutes
    PROBE_TIMEOUT_MS: Final[int] = 10_000
    PACING_DELAY_MS: Final[int] = 1_000
    WARMUP_DELAY_SECONDS: Final[int] = 30
    HISTORY_LIMIT: Final[int] = 50
    RECENT_DOWN_HOURS: Final[int] = 24
