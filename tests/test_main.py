"""Startup and shutdown of the wired application."""

from __future__ import annotations

import pytest

from config.settings import ApiSettings, NotificationSettings, Settings, get_settings
from exceptions import ConfigurationError
from main import UptimeWatchApplication, load_settings, main


@pytest.fixture
def app_settings(db_settings, monitoring_settings) -> Settings:
    return Settings(
        database=db_settings,
        monitoring=monitoring_settings.model_copy(update={"warmup_delay_seconds": 30}),
        notifications=NotificationSettings(email_to="", email_from="", user=""),
        api=ApiSettings(enabled=False),
    )


@pytest.mark.asyncio
async def test_startup_and_shutdown(app_settings) -> None:
    app = UptimeWatchApplication(app_settings)

    assert await app.startup()
    assert app.scheduler.is_running
    assert app.api_server is None
    assert app.scheduler.get_status().next_sweep_at is not None

    app.request_stop()
    await app.run()
    await app.shutdown()

    assert not app.scheduler.is_running
    assert not app.db_manager.is_connected


@pytest.mark.asyncio
async def test_startup_fails_on_bad_database(app_settings, tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    app_settings.database.sqlite_path = blocker / "monitor.db"

    app = UptimeWatchApplication(app_settings)
    try:
        assert await app.startup() is False
        assert app.scheduler is None
    finally:
        await app.shutdown()


# ── Configuration ────────────────────────────────────────────────────────────


@pytest.fixture
def bad_sweep_minute(monkeypatch):
    monkeypatch.setenv("MONITOR_SWEEP_MINUTE", "99")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_invalid_settings_raise_configuration_error(bad_sweep_minute) -> None:
    with pytest.raises(ConfigurationError) as info:
        load_settings()

    assert info.value.details["config_key"].endswith("sweep_minute")
    assert "sweep_minute" in info.value.message


@pytest.mark.asyncio
async def test_main_exits_on_invalid_settings(bad_sweep_minute) -> None:
    assert await main() == 1
