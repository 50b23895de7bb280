"""Tests for the CheckOrchestrator: sweeps, pacing, failure isolation and notifications."""

from __future__ import annotations

from unittest.mock import AsyncMock, call, patch

import pytest

from config.constants import CheckStatus, ProbeErrors, TransitionType
from config.settings import MonitoringSettings
from database.models import CheckRecord, Target
from database.repositories import RecordedCheck
from exceptions import DatabaseQueryError
from monitoring.orchestrator import CheckOrchestrator
from monitoring.prober import ProbeResult
from utils.helpers import TimeHelper


class FakeStore:
    """In-memory stand-in for TargetRepository with injectable write failures."""

    def __init__(self, targets, fail_writes=None):
        self.targets = list(targets)
        self.statuses = {}
        self.writes = []
        # target id -> number of record_check calls that should fail
        self.fail_writes = dict(fail_writes or {})

    async def list_active(self):
        return [target for target in self.targets if target.is_active]

    async def record_check(self, target_id, status, latency_ms=None, error=None):
        if self.fail_writes.get(target_id, 0) > 0:
            self.fail_writes[target_id] -= 1
            raise DatabaseQueryError("database is locked")

        prior = self.statuses.get(target_id)
        self.statuses[target_id] = status
        record = CheckRecord(
            target_id=target_id,
            status=status,
            response_time_ms=latency_ms,
            error_message=error,
            checked_at=TimeHelper.get_utc_now(),
        )
        self.writes.append(record)
        return RecordedCheck(record=record, prior_status=prior)


def make_targets(count):
    return [
        Target(id=i, name=f"app-{i}", url=f"https://app{i}.example.com", is_active=True)
        for i in range(1, count + 1)
    ]


def make_prober(*results):
    prober = AsyncMock()
    prober.probe = AsyncMock(side_effect=list(results))
    return prober


@pytest.fixture
def settings():
    return MonitoringSettings(pacing_delay_ms=0)


# ============================================================================
# SWEEPS
# ============================================================================

class TestSweep:
    @pytest.mark.asyncio
    async def test_checks_every_active_target_in_order(self, settings) -> None:
        targets = make_targets(3)
        targets[1].is_active = False
        store = FakeStore(targets)
        prober = make_prober(ProbeResult.up(10, 200), ProbeResult.up(12, 200))

        outcomes = await CheckOrchestrator(store, prober, settings=settings).run_sweep()

        assert [outcome.target_id for outcome in outcomes] == [1, 3]
        assert prober.probe.await_args_list == [
            call("https://app1.example.com"),
            call("https://app3.example.com"),
        ]

    @pytest.mark.asyncio
    async def test_paces_between_consecutive_checks(self) -> None:
        store = FakeStore(make_targets(3))
        prober = make_prober(*[ProbeResult.up(5, 200)] * 3)
        orchestrator = CheckOrchestrator(store, prober, settings=MonitoringSettings(pacing_delay_ms=1_000))

        with patch("monitoring.orchestrator.asyncio.sleep", new=AsyncMock()) as sleep:
            await orchestrator.run_sweep()

        # n targets, n - 1 pauses, none after the last
        assert sleep.await_args_list == [call(1.0), call(1.0)]

    @pytest.mark.asyncio
    async def test_no_pause_for_single_target(self) -> None:
        store = FakeStore(make_targets(1))
        orchestrator = CheckOrchestrator(store, make_prober(ProbeResult.up(5, 200)))
        orchestrator._pace = AsyncMock()

        await orchestrator.run_sweep()

        orchestrator._pace.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_store(self, settings) -> None:
        prober = make_prober()
        outcomes = await CheckOrchestrator(FakeStore([]), prober, settings=settings).run_sweep()

        assert outcomes == []
        prober.probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreachable_store_abandons_sweep(self, settings) -> None:
        store = FakeStore(make_targets(2))
        store.list_active = AsyncMock(side_effect=DatabaseQueryError("no such table"))
        prober = make_prober()

        outcomes = await CheckOrchestrator(store, prober, settings=settings).run_sweep()

        assert outcomes == []
        prober.probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_on_one_target_does_not_stop_sweep(self, settings) -> None:
        store = FakeStore(make_targets(3), fail_writes={2: 1})
        prober = make_prober(*[ProbeResult.up(5, 200)] * 3)

        outcomes = await CheckOrchestrator(store, prober, settings=settings).run_sweep()

        assert len(outcomes) == 3
        assert prober.probe.await_count == 3
        assert [outcome.synthetic for outcome in outcomes] == [False, True, False]

        failed = outcomes[1]
        assert failed.status == CheckStatus.DOWN
        assert failed.error == "Check failed: database is locked"
        assert failed.recorded

        synthetic_write = [record for record in store.writes if record.target_id == 2]
        assert len(synthetic_write) == 1
        assert synthetic_write[0].status == CheckStatus.DOWN
        assert synthetic_write[0].response_time_ms is None


# ============================================================================
# SINGLE CHECKS
# ============================================================================

class TestRunSingle:
    @pytest.mark.asyncio
    async def test_prober_exception_becomes_synthetic_down(self, settings, mock_notifier) -> None:
        target = make_targets(1)[0]
        store = FakeStore([target])
        store.statuses[1] = CheckStatus.UP
        prober = AsyncMock()
        prober.probe = AsyncMock(side_effect=RuntimeError("boom"))

        outcome = await CheckOrchestrator(store, prober, mock_notifier, settings).run_single(target)

        assert outcome.synthetic
        assert outcome.error == "Check failed: boom"
        assert outcome.transition == TransitionType.DOWN
        mock_notifier.notify_down.assert_awaited_once_with(target, "Check failed: boom")

    @pytest.mark.asyncio
    async def test_unrecordable_failure_is_reported_not_raised(self, settings, mock_notifier) -> None:
        target = make_targets(1)[0]
        store = FakeStore([target], fail_writes={1: 2})

        outcome = await CheckOrchestrator(
            store, make_prober(ProbeResult.up(5, 200)), mock_notifier, settings
        ).run_single(target)

        assert outcome.synthetic
        assert not outcome.recorded
        assert store.writes == []
        mock_notifier.notify_down.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_notifier_transition_is_only_logged(self, settings) -> None:
        target = make_targets(1)[0]
        store = FakeStore([target])
        store.statuses[1] = CheckStatus.UP

        outcome = await CheckOrchestrator(
            store, make_prober(ProbeResult.down(ProbeErrors.TIMEOUT)), None, settings
        ).run_single(target)

        assert outcome.transition == TransitionType.DOWN
        assert not outcome.notified


# ============================================================================
# NOTIFICATIONS AGAINST THE REAL STORE
# ============================================================================

class TestNotificationsWithRepository:
    @pytest.mark.asyncio
    async def test_first_observation_sends_nothing(self, repository, settings, mock_notifier) -> None:
        target = await repository.create_target("API", "https://api.example.com")
        prober = make_prober(ProbeResult.down("HTTP 500: Internal Server Error", 20, 500))

        outcome = await CheckOrchestrator(repository, prober, mock_notifier, settings).run_single(target)

        assert outcome.prior_status is None
        assert outcome.transition is None
        mock_notifier.notify_down.assert_not_awaited()
        mock_notifier.notify_up.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_after_up_sends_one_down_alert(self, repository, settings, mock_notifier) -> None:
        target = await repository.create_target("API", "https://api.example.com")
        await repository.record_check(target.id, CheckStatus.UP, 35)
        prober = make_prober(ProbeResult.down(ProbeErrors.TIMEOUT))

        outcome = await CheckOrchestrator(repository, prober, mock_notifier, settings).run_single(target)

        assert outcome.notified
        mock_notifier.notify_down.assert_awaited_once_with(target, "Request timed out")
        mock_notifier.notify_up.assert_not_awaited()

        latest = (await repository.get_check_records(target.id, 1))[0]
        assert latest.status == CheckStatus.DOWN
        assert latest.response_time_ms is None
        assert latest.error_message == "Request timed out"

        stored = await repository.get_by_id(target.id)
        assert stored.last_status == CheckStatus.DOWN

    @pytest.mark.asyncio
    async def test_repeated_down_alerts_once(self, repository, settings, mock_notifier) -> None:
        target = await repository.create_target("API", "https://api.example.com")
        await repository.record_check(target.id, CheckStatus.UP, 35)
        prober = make_prober(
            ProbeResult.down(ProbeErrors.CONNECTION_REFUSED),
            ProbeResult.down(ProbeErrors.CONNECTION_REFUSED),
        )
        orchestrator = CheckOrchestrator(repository, prober, mock_notifier, settings)

        await orchestrator.run_single(target)
        await orchestrator.run_single(target)

        assert mock_notifier.notify_down.await_count == 1

    @pytest.mark.asyncio
    async def test_recovery_sends_up_notice(self, repository, settings, mock_notifier) -> None:
        target = await repository.create_target("API", "https://api.example.com")
        await repository.record_check(target.id, CheckStatus.DOWN, None, "HTTP 502: Bad Gateway")

        outcome = await CheckOrchestrator(
            repository, make_prober(ProbeResult.up(80, 200)), mock_notifier, settings
        ).run_single(target)

        assert outcome.transition == TransitionType.RECOVERY
        mock_notifier.notify_up.assert_awaited_once_with(target)
        mock_notifier.notify_down.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notifier_failure_is_swallowed(self, repository, settings, mock_notifier) -> None:
        target = await repository.create_target("API", "https://api.example.com")
        await repository.record_check(target.id, CheckStatus.UP, 35)
        mock_notifier.notify_down.side_effect = ConnectionError("smtp unreachable")

        outcome = await CheckOrchestrator(
            repository, make_prober(ProbeResult.down(ProbeErrors.TIMEOUT)), mock_notifier, settings
        ).run_single(target)

        assert not outcome.notified
        assert outcome.recorded
        records = await repository.get_check_records(target.id)
        assert len(records) == 2
