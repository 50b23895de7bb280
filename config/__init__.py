"""
Configuration Package for Uptime Watch

This package contains all configuration-related modules including:
- Settings management with environment variable support
- Constants and enums used throughout the application
"""

from config.settings import (
    Settings,
    DatabaseSettings,
    MonitoringSettings,
    NotificationSettings,
    LoggingSettings,
    ApiSettings,
    DatabaseType,
    Environment,
    LogLevel,
    get_settings,
)

from config.constants import (
    CheckStatus,
    TransitionType,
    ProbeErrors,
    Limits,
    Defaults,
)

__all__ = [
    # Settings
    "Settings",
    "DatabaseSettings",
    "MonitoringSettings",
    "NotificationSettings",
    "LoggingSettings",
    "ApiSettings",
    "DatabaseType",
    "Environment",
    "LogLevel",
    "get_settings",

    # Constants
    "CheckStatus",
    "TransitionType",
    "ProbeErrors",
    "Limits",
    "Defaults",
]
