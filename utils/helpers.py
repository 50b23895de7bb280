"""
============================================================================
UPTIME WATCH - HELPER UTILITIES
============================================================================
Time arithmetic for the sweep schedule and small string helpers used
when building error messages and notification bodies.
============================================================================
"""

import html
from datetime import datetime, timedelta, timezone
from typing import Optional


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities. All datetimes are UTC-aware.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
        """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def next_hourly_run(now: Optional[datetime] = None, minute: int = 0) -> datetime:
        """
        Next UTC instant strictly after ``now`` whose minute equals ``minute``
        and whose seconds are zero. ``minute=0`` is the top of every hour.

        Args:
            now: Reference time (defaults to the current time)
            minute: Minute past the hour

        Returns:
            UTC datetime of the next run
        """
        now = TimeHelper.ensure_utc(now) or TimeHelper.get_utc_now()
        candidate = now.replace(minute=minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(hours=1)
        return candidate

    @staticmethod
    def seconds_until(target: datetime, now: Optional[datetime] = None) -> float:
        """Seconds from ``now`` until ``target``, never negative."""
        now = TimeHelper.ensure_utc(now) or TimeHelper.get_utc_now()
        return max(0.0, (TimeHelper.ensure_utc(target) - now).total_seconds())

    @staticmethod
    def format_datetime(dt: datetime, fmt: str = "%Y-%m-%d %H:%M:%S UTC") -> str:
        """Format a datetime in UTC."""
        return TimeHelper.ensure_utc(dt).strftime(fmt)

    @staticmethod
    def to_iso(dt: Optional[datetime]) -> Optional[str]:
        """ISO-8601 string of a UTC datetime, or None."""
        dt = TimeHelper.ensure_utc(dt)
        return dt.isoformat() if dt else None

    @staticmethod
    def seconds_to_human_readable(seconds: int) -> str:
        """
        Convert seconds to human-readable format.

        Args:
            seconds: Number of seconds

        Returns:
            Human-readable string (e.g., "2h 30m 15s")
        """
        if seconds < 0:
            return "0s"

        days, remainder = divmod(int(seconds), 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)


# ============================================================================
# STRING UTILITIES
# ============================================================================

class StringHelper:
    """
    String manipulation utilities.
    """

    @staticmethod
    def truncate(text: str, max_length: int = 200, suffix: str = "...") -> str:
        """
        Truncate text to a maximum length.

        Args:
            text: Text to truncate
            max_length: Maximum length including the suffix
            suffix: Appended when truncation happens

        Returns:
            Truncated text
        """
        if len(text) <= max_length:
            return text
        return text[: max_length - len(suffix)] + suffix

    @staticmethod
    def escape_html(text: str) -> str:
        """Escape HTML special characters."""
        return html.escape(text, quote=True)
