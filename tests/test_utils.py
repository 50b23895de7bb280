"""Tests for settings, validators and time helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from config.constants import CheckStatus, ProbeErrors
from config.settings import LoggingSettings, LogLevel, MonitoringSettings, NotificationSettings, Settings
from exceptions import InvalidTargetIdError, InvalidURLError, MissingFieldError
from utils.helpers import StringHelper, TimeHelper
from utils.logger import get_logger, setup_logging
from utils.validators import DataValidator, URLValidator


# ── Settings ─────────────────────────────────────────────────────────────────


class TestSettings:
    def test_monitoring_defaults(self) -> None:
        settings = MonitoringSettings()
        assert settings.request_timeout_ms == 10_000
        assert settings.pacing_delay == 1.0
        assert settings.warmup_delay_seconds == 30
        assert settings.sweep_minute == 0
        assert settings.default_check_interval == 60
        assert settings.history_limit == 50

    def test_monitoring_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("MONITOR_PACING_DELAY_MS", "250")
        assert MonitoringSettings().pacing_delay == 0.25

    def test_rejects_out_of_range_minute(self) -> None:
        with pytest.raises(ValidationError):
            MonitoringSettings(sweep_minute=60)

    def test_sender_falls_back_to_user(self) -> None:
        settings = NotificationSettings(user="bot@example.com", email_to="ops@example.com", email_from="")
        assert settings.email_from == "bot@example.com"
        assert settings.is_configured

    def test_smtp_pass_env_alias(self, monkeypatch) -> None:
        monkeypatch.setenv("SMTP_PASS", "s3cret")
        assert NotificationSettings().password.get_secret_value() == "s3cret"

    def test_debug_lowers_log_level(self) -> None:
        settings = Settings(debug=True)
        assert settings.logging.level == LogLevel.DEBUG
        assert "password" not in settings.to_dict()["database"]


# ── Validators ───────────────────────────────────────────────────────────────


class TestURLValidator:
    @pytest.mark.parametrize(
        "url",
        ["https://example.com", "http://localhost:3000/health", "https://api.example.com/v1?x=1"],
    )
    def test_valid(self, url) -> None:
        assert URLValidator.is_valid_url(url)
        assert URLValidator.validate(f"  {url} ") == url

    @pytest.mark.parametrize("url", ["example.com", "ftp://example.com", "mailto:a@b.c", 42])
    def test_missing_scheme(self, url) -> None:
        with pytest.raises(InvalidURLError) as info:
            URLValidator.validate(url)
        assert info.value.details["reason"] == "no_scheme"

    def test_blank_is_missing(self) -> None:
        with pytest.raises(MissingFieldError):
            URLValidator.validate("   ")


class TestDataValidator:
    @pytest.mark.parametrize("value, expected", [(1, True), (1440, True), (0, False), (1441, False), (True, False), ("5", False)])
    def test_interval_range(self, value, expected) -> None:
        assert DataValidator.is_valid_interval(value) is expected

    @pytest.mark.parametrize("value, expected", [(3, 3), ("17", 17), (" 8 ", 8)])
    def test_parse_target_id(self, value, expected) -> None:
        assert DataValidator.parse_target_id(value) == expected

    @pytest.mark.parametrize("value", ["abc", "", "-1", 0, None, False, 2.0])
    def test_parse_target_id_rejects(self, value) -> None:
        with pytest.raises(InvalidTargetIdError):
            DataValidator.parse_target_id(value)


# ── Helpers and constants ────────────────────────────────────────────────────


class TestTimeHelper:
    def test_next_hourly_run_top_of_hour(self) -> None:
        now = datetime(2026, 3, 1, 10, 15, 30, tzinfo=timezone.utc)
        assert TimeHelper.next_hourly_run(now) == datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)

    def test_next_hourly_run_is_strictly_after(self) -> None:
        now = datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)
        assert TimeHelper.next_hourly_run(now) == datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)

    def test_next_hourly_run_custom_minute(self) -> None:
        now = datetime(2026, 3, 1, 10, 15, tzinfo=timezone.utc)
        assert TimeHelper.next_hourly_run(now, minute=30) == datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)

    def test_next_hourly_run_crosses_midnight(self) -> None:
        now = datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc)
        assert TimeHelper.next_hourly_run(now) == datetime(2027, 1, 1, 0, 0, tzinfo=timezone.utc)

    def test_seconds_until_never_negative(self) -> None:
        now = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        past = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert TimeHelper.seconds_until(past, now) == 0.0

    def test_naive_treated_as_utc(self) -> None:
        assert TimeHelper.to_iso(datetime(2026, 3, 1, 10, 0)) == "2026-03-01T10:00:00+00:00"


def test_truncate() -> None:
    assert StringHelper.truncate("abcdef", 5) == "ab..."
    assert StringHelper.truncate("abc", 5) == "abc"


def test_status_parse() -> None:
    assert CheckStatus.parse("UP") is CheckStatus.UP
    assert CheckStatus.parse(None) is None


def test_error_strings() -> None:
    assert ProbeErrors.http_error(500, "Internal Server Error") == "HTTP 500: Internal Server Error"
    assert ProbeErrors.check_failed("db down") == "Check failed: db down"


def test_setup_logging_writes_component(tmp_path) -> None:
    log_file = tmp_path / "logs" / "uptime.log"
    setup_logging(LoggingSettings(console_enabled=False, file_enabled=True, file_path=log_file))
    try:
        get_logger("Prober").warning("probe slow")
        assert "Prober" in log_file.read_text()
        assert "probe slow" in log_file.read_text()
    finally:
        setup_logging(LoggingSettings(file_enabled=False))
