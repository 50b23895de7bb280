"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from config.settings import (
    DatabaseSettings,
    DatabaseType,
    MonitoringSettings,
    NotificationSettings,
)
from database.connection import DatabaseManager
from database.repositories import TargetRepository


@pytest.fixture
def db_settings(tmp_path) -> DatabaseSettings:
    """SQLite database file isolated per test."""
    return DatabaseSettings(type=DatabaseType.SQLITE, sqlite_path=tmp_path / "monitor.db")


@pytest_asyncio.fixture
async def db_manager(db_settings):
    manager = DatabaseManager(db_settings)
    await manager.initialize()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def repository(db_manager) -> TargetRepository:
    return TargetRepository(db_manager)


@pytest.fixture
def monitoring_settings() -> MonitoringSettings:
    """No pacing and no warm-up so sweeps run instantly."""
    return MonitoringSettings(
        request_timeout_ms=1_000,
        pacing_delay_ms=0,
        warmup_delay_seconds=0,
    )


@pytest.fixture
def smtp_settings() -> NotificationSettings:
    return NotificationSettings(
        host="smtp.example.com",
        port=587,
        user="monitor@example.com",
        password="hunter2",
        email_to="ops@example.com",
    )


@pytest.fixture
def mock_notifier() -> MagicMock:
    """Notifier double recording notify_down / notify_up calls."""
    notifier = MagicMock()
    notifier.notify_down = AsyncMock(return_value=True)
    notifier.notify_up = AsyncMock(return_value=True)
    return notifier
