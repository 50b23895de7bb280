"""
============================================================================
UPTIME WATCH - MONITORING SCHEDULER
============================================================================
Decides when full sweeps run. asyncio-native: no APScheduler, no broker,
every timer is a coroutine in the application's event loop.

Triggers
--------
1.  warm-up        one sweep MONITOR_WARMUP_DELAY_SECONDS (30 s) after start
2.  hourly         one sweep at minute MONITOR_SWEEP_MINUTE (0) of every UTC hour
3.  manual         run_manual_check() with or without a target id

In-flight guard
---------------
At most one full sweep runs at a time. A full-sweep trigger that arrives
while one is executing is skipped with an info log; it is not queued and
not retried. Manual single-target checks are not guarded and may overlap
a sweep.

Nothing starts on import: the entry point constructs the scheduler and
calls ``start()`` / ``stop()``.
============================================================================
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Dict, List, Optional, Set

from config.settings import MonitoringSettings
from database.repositories import TargetRepository
from exceptions import TargetNotFoundError
from monitoring.orchestrator import CheckOrchestrator, CheckOutcome
from utils.helpers import TimeHelper
from utils.logger import get_logger
from utils.validators import DataValidator


logger = get_logger("Scheduler")


# ============================================================================
# STATUS SNAPSHOT
# ============================================================================

@dataclass
class MonitoringStatus:
    """
    Process-wide monitoring state, not persisted.

    Attributes
    ----------
    in_flight : bool
        A full sweep is executing right now.
    next_sweep_at : datetime | None
        When the next scheduled full sweep fires; None while stopped.
    """
    in_flight: bool
    next_sweep_at: Optional[datetime]
    running: bool = False
    last_sweep_at: Optional[datetime] = None
    sweep_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isRunning": self.in_flight,
            "nextCheck": TimeHelper.to_iso(self.next_sweep_at),
            "schedulerRunning": self.running,
            "lastSweep": TimeHelper.to_iso(self.last_sweep_at),
            "sweepCount": self.sweep_count,
        }


# ============================================================================
# SCHEDULER
# ============================================================================

class MonitoringScheduler:
    """
    Usage
    -----
        scheduler = MonitoringScheduler(orchestrator, repository, settings.monitoring)
        await scheduler.start()
        # ... later ...
        await scheduler.stop()
    """

    def __init__(
        self,
        orchestrator: CheckOrchestrator,
        store: TargetRepository,
        settings: Optional[MonitoringSettings] = None,
    ):
        self.orchestrator = orchestrator
        self.store = store
        self.settings = settings or MonitoringSettings()

        self._running = False
        self._in_flight = False
        self._warmup_task: Optional[asyncio.Task] = None
        self._hourly_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

        self._warmup_at: Optional[datetime] = None
        self._next_hourly_at: Optional[datetime] = None
        self._last_sweep_at: Optional[datetime] = None
        self._sweep_count = 0

        logger.info(
            f"Scheduler created: warm-up={self.settings.warmup_delay_seconds}s, "
            f"hourly at minute {self.settings.sweep_minute:02d} UTC"
        )

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Arm the warm-up sweep and the hourly timer."""
        if self._running:
            logger.warning("Scheduler is already running")
            return

        self._running = True
        now = TimeHelper.get_utc_now()
        self._warmup_at = now + timedelta(seconds=self.settings.warmup_delay_seconds)
        self._next_hourly_at = TimeHelper.next_hourly_run(now, self.settings.sweep_minute)

        self._warmup_task = asyncio.create_task(self._warmup())
        self._hourly_task = asyncio.create_task(self._hourly_loop())

        logger.info(
            f"✓ Scheduler started: first sweep at {TimeHelper.format_datetime(self._warmup_at)}, "
            f"next hourly sweep at {TimeHelper.format_datetime(self._next_hourly_at)}"
        )

    async def stop(self) -> None:
        """Cancel the timers and any background checks."""
        self._running = False

        tasks = [task for task in (self._warmup_task, self._hourly_task) if task]
        tasks.extend(self._background)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._warmup_task = None
        self._hourly_task = None
        self._background.clear()
        self._warmup_at = None
        self._next_hourly_at = None
        # A sweep cancelled before its first step never reaches its finally block
        self._in_flight = False

        logger.info("✓ Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ------------------------------------------------------------------
    # TIMERS
    # ------------------------------------------------------------------

    async def _warmup(self) -> None:
        await asyncio.sleep(self.settings.warmup_delay_seconds)
        self._warmup_at = None
        await self.run_full_sweep("warm-up")

    async def _hourly_loop(self) -> None:
        """Sleep until the next hourly slot, fire, repeat."""
        logger.info("[Scheduler] Hourly loop started")
        while self._running:
            await asyncio.sleep(TimeHelper.seconds_until(self._next_hourly_at))

            fired_at = self._next_hourly_at
            # max() keeps an early wake-up from firing the same slot twice
            self._next_hourly_at = TimeHelper.next_hourly_run(
                max(TimeHelper.get_utc_now(), fired_at), self.settings.sweep_minute
            )
            self._spawn_full_sweep("hourly")

    # ------------------------------------------------------------------
    # SWEEPS
    # ------------------------------------------------------------------

    def _claim_sweep(self, trigger: str) -> bool:
        """Take the in-flight guard, or log the skip. No await in between."""
        if self._in_flight:
            logger.info(f"[Scheduler] {trigger} sweep skipped: a sweep is already in flight")
            return False
        self._in_flight = True
        return True

    async def _run_claimed_sweep(self, trigger: str) -> Optional[List[CheckOutcome]]:
        started = time.monotonic()
        try:
            logger.info(f"[Scheduler] Running {trigger} sweep…")
            outcomes = await self.orchestrator.run_sweep()
        except Exception as e:
            logger.opt(exception=e).error(
                f"[Scheduler] {trigger} sweep FAILED after {time.monotonic() - started:.2f}s: {e}"
            )
            return None
        finally:
            self._in_flight = False

        self._sweep_count += 1
        self._last_sweep_at = TimeHelper.get_utc_now()
        logger.info(
            f"[Scheduler] {trigger} sweep completed in {time.monotonic() - started:.2f}s "
            f"({len(outcomes)} target(s), sweep #{self._sweep_count})"
        )
        return outcomes

    async def run_full_sweep(self, trigger: str = "manual") -> Optional[List[CheckOutcome]]:
        """
        Run a guarded full sweep and wait for it.

        Returns the outcomes, or None when the sweep was skipped because
        another one is in flight.
        """
        if not self._claim_sweep(trigger):
            return None
        return await self._run_claimed_sweep(trigger)

    def _spawn_full_sweep(self, trigger: str) -> Optional[asyncio.Task]:
        if not self._claim_sweep(trigger):
            return None
        return self._spawn(self._run_claimed_sweep(trigger))

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # ------------------------------------------------------------------
    # PUBLIC API
    # ------------------------------------------------------------------

    async def run_manual_check(self, target_id: Any = None) -> Optional[asyncio.Task]:
        """
        Start a check in the background and return immediately.

        With *target_id*, one target is checked (inactive targets too) and
        the in-flight guard does not apply. Without it, a guarded full
        sweep is started.

        Returns
        -------
        asyncio.Task | None
            The background task, or None when a full sweep was requested
            while another one is in flight.

        Raises
        ------
        InvalidTargetIdError
            *target_id* is not a positive integer.
        TargetNotFoundError
            No target has that id; nothing is written.
        """
        if target_id is None:
            logger.info("[Scheduler] Manual full sweep requested")
            return self._spawn_full_sweep("manual")

        target_id = DataValidator.parse_target_id(target_id)
        target = await self.store.get_by_id(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)

        logger.info(f"[Scheduler] Manual check requested for target {target.id} ({target.url})")
        return self._spawn(self.orchestrator.run_single(target))

    def get_status(self) -> MonitoringStatus:
        """Snapshot of the in-flight flag and the next scheduled sweep."""
        next_sweep_at = None
        if self._running:
            candidates = [moment for moment in (self._warmup_at, self._next_hourly_at) if moment]
            next_sweep_at = min(candidates) if candidates else None

        return MonitoringStatus(
            in_flight=self._in_flight,
            next_sweep_at=next_sweep_at,
            running=self._running,
            last_sweep_at=self._last_sweep_at,
            sweep_count=self._sweep_count,
        )
