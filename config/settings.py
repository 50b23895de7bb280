"""
Settings Module for Uptime Watch

Configuration management using Pydantic Settings.
Supports environment variables, .env files, and runtime configuration.
Includes validation, type checking, and sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.constants import Defaults, Limits


class Environment(str, Enum):
    """Application environment enumeration."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    """Supported database types."""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class DatabaseSettings(BaseSettingsConfig):
    """
    Database Configuration Settings

    PostgreSQL for production, SQLite for development and tests.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore"
    )

    type: DatabaseType = Field(
        default=DatabaseType.SQLITE,
        description="Database type: postgresql or sqlite"
    )

    # PostgreSQL settings
    host: str = Field(
        default="localhost",
        description="Database host address"
    )
    port: int = Field(
        default=5432,
        ge=1,
        le=65535,
        description="Database port number"
    )
    name: str = Field(
        default="uptime_watch",
        min_length=1,
        max_length=64,
        description="Database name"
    )
    user: str = Field(
        default="postgres",
        min_length=1,
        max_length=64,
        description="Database username"
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password"
    )

    # SQLite settings
    sqlite_path: Path = Field(
        default=Path("data/monitor.db"),
        description="Path to SQLite database file"
    )

    # Connection pool settings (ignored for SQLite)
    pool_size: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Connection pool size"
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Maximum overflow connections"
    )
    pool_timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Pool connection timeout in seconds"
    )
    pool_recycle: int = Field(
        default=1800,
        ge=60,
        le=7200,
        description="Connection recycle time in seconds"
    )
    pool_pre_ping: bool = Field(
        default=True,
        description="Enable connection health check before use"
    )

    echo: bool = Field(
        default=False,
        description="Echo SQL queries (debug mode)"
    )

    @property
    def url(self) -> str:
        """Generate database URL based on configuration."""
        if self.type == DatabaseType.SQLITE:
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.sqlite_path}"

        elif self.type == DatabaseType.POSTGRESQL:
            password = self.password.get_secret_value()
            return (
                f"postgresql+asyncpg://{self.user}:{password}"
                f"@{self.host}:{self.port}/{self.name}"
            )

        raise ValueError(f"Unsupported database type: {self.type}")

    @property
    def is_sqlite(self) -> bool:
        return self.type == DatabaseType.SQLITE

    @field_validator("sqlite_path")
    @classmethod
    def validate_sqlite_path(cls, v: Path) -> Path:
        """Validate and normalize SQLite path."""
        if not v.suffix:
            v = v.with_suffix(".db")
        return v


class MonitoringSettings(BaseSettingsConfig):
    """
    Monitoring Configuration Settings

    Controls the probe timeout, the pacing between checks inside a sweep,
    and the sweep schedule.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        extra="ignore"
    )

    request_timeout_ms: int = Field(
        default=10_000,
        ge=100,
        le=120_000,
        description="HTTP probe timeout in milliseconds"
    )
    pacing_delay_ms: int = Field(
        default=1_000,
        ge=0,
        le=60_000,
        description="Delay between consecutive checks within a sweep"
    )
    warmup_delay_seconds: int = Field(
        default=30,
        ge=0,
        le=3600,
        description="Delay before the first sweep after start"
    )
    sweep_minute: int = Field(
        default=0,
        ge=0,
        le=59,
        description="Minute past each UTC hour at which the recurring sweep fires"
    )
    default_check_interval: int = Field(
        default=Defaults.CHECK_INTERVAL,
        ge=Limits.MIN_CHECK_INTERVAL,
        le=Limits.MAX_CHECK_INTERVAL,
        description="Default check interval for new targets, in minutes"
    )
    history_limit: int = Field(
        default=Defaults.HISTORY_LIMIT,
        ge=1,
        le=Limits.MAX_HISTORY_LIMIT,
        description="Default number of check records returned by history queries"
    )
    user_agent: str = Field(
        default="UptimeWatch/1.0 (Compatible; Monitoring Service)",
        description="User agent string for HTTP probes"
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates when probing"
    )

    @property
    def pacing_delay(self) -> float:
        """Pacing delay in seconds."""
        return self.pacing_delay_ms / 1000


class NotificationSettings(BaseSettingsConfig):
    """
    SMTP Notification Settings

    Consumed only by the email notifier.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True
    )

    host: str = Field(
        default="smtp.gmail.com",
        description="SMTP server host"
    )
    port: int = Field(
        default=587,
        ge=1,
        le=65535,
        description="SMTP server port"
    )
    secure: bool = Field(
        default=False,
        description="Use implicit TLS (SMTPS) instead of STARTTLS"
    )
    user: str = Field(
        default="",
        description="SMTP username"
    )
    password: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("SMTP_PASS", "SMTP_PASSWORD", "password"),
        description="SMTP password"
    )
    email_from: str = Field(
        default="",
        validation_alias=AliasChoices("EMAIL_FROM", "email_from"),
        description="Sender address (defaults to the SMTP user)"
    )
    email_to: str = Field(
        default="",
        validation_alias=AliasChoices("EMAIL_TO", "email_to"),
        description="Recipient address for alerts"
    )
    timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="SMTP connection timeout in seconds"
    )

    @model_validator(mode="after")
    def default_sender(self) -> "NotificationSettings":
        """Fall back to the SMTP user as the sender address."""
        if not self.email_from and self.user:
            self.email_from = self.user
        return self

    @property
    def is_configured(self) -> bool:
        """True when enough is set to actually deliver mail."""
        return bool(self.host and self.email_from and self.email_to)


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration Settings
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )
    console_enabled: bool = Field(
        default=True,
        description="Enable console logging"
    )
    colorize: bool = Field(
        default=True,
        description="Enable colored console output"
    )
    file_enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    file_path: Path = Field(
        default=Path("logs/uptime_watch.log"),
        description="Log file path"
    )
    file_rotation: str = Field(
        default="10 MB",
        description="Log rotation size (e.g., '10 MB', '1 day')"
    )
    file_retention: str = Field(
        default="30 days",
        description="Log retention period"
    )
    json_format: bool = Field(
        default=False,
        description="Serialize file log records as JSON"
    )
    error_file_enabled: bool = Field(
        default=False,
        description="Write ERROR and above to a separate errors.log"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class ApiSettings(BaseSettingsConfig):
    """
    HTTP API Settings
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Serve the JSON API"
    )
    host: str = Field(
        default="0.0.0.0",
        description="Bind address"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Bind port"
    )


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections and provides the main
    configuration interface for the application.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    app_name: str = Field(
        default="Uptime Watch",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # Nested settings
    database: DatabaseSettings = Field(
        default_factory=DatabaseSettings
    )
    monitoring: MonitoringSettings = Field(
        default_factory=MonitoringSettings
    )
    notifications: NotificationSettings = Field(
        default_factory=NotificationSettings
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings
    )
    api: ApiSettings = Field(
        default_factory=ApiSettings
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    @model_validator(mode="after")
    def configure_for_environment(self) -> "Settings":
        """Apply environment-specific configuration."""
        if self.is_production:
            self.debug = False
            self.database.echo = False

        elif self.debug and self.logging.level == LogLevel.INFO:
            self.logging.level = LogLevel.DEBUG

        return self

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump(mode="json")

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "password" not in k.lower()
                        and "secret" not in k.lower()
                    }
                elif isinstance(obj, list):
                    return [remove_secrets(item) for item in obj]
                return obj

            data = remove_secrets(data)

        return data


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Cached so a single settings instance is shared for the
    application lifecycle.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
