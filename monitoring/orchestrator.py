"""
============================================================================
UPTIME WATCH - CHECK ORCHESTRATOR
============================================================================
Runs checks: probe a target, persist the result, decide whether the
status change owes a notification, and hand it to the sink.

Architecture
------------
CheckOrchestrator
├── run_sweep()     ← all active targets, sequential, paced
├── run_single()    ← one target, never raises
│   ├── _check()            ← probe → record_check → transition
│   └── _record_failure()   ← synthetic "Check failed: ..." down record
└── _notify()       ← DOWN / RECOVERY via the notifier (or just logged)

Checks inside a sweep are strictly sequential with a fixed pacing delay
between consecutive targets, which bounds load on the store and on the
monitored servers.
============================================================================
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from config.constants import CheckStatus, ProbeErrors, TransitionType
from config.settings import MonitoringSettings
from database.models import Target
from database.repositories import TargetRepository
from monitoring.notifier import EmailNotifier
from monitoring.prober import HealthProber
from monitoring.transitions import resolve_transition
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("CheckOrchestrator")


# ============================================================================
# CHECK OUTCOME
# ============================================================================

@dataclass
class CheckOutcome:
    """What happened when one target was checked."""
    target_id: int
    target_name: str
    url: str
    status: CheckStatus
    latency_ms: Optional[int] = None
    error: Optional[str] = None
    prior_status: Optional[CheckStatus] = None
    transition: Optional[TransitionType] = None
    notified: bool = False
    synthetic: bool = False
    recorded: bool = True
    checked_at: datetime = field(default_factory=TimeHelper.get_utc_now)

    @property
    def is_up(self) -> bool:
        return self.status == CheckStatus.UP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_id": self.target_id,
            "name": self.target_name,
            "url": self.url,
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "error": self.error,
            "prior_status": self.prior_status.value if self.prior_status else None,
            "transition": self.transition.value if self.transition else None,
            "notified": self.notified,
            "synthetic": self.synthetic,
            "recorded": self.recorded,
            "checked_at": TimeHelper.to_iso(self.checked_at),
        }


# ============================================================================
# CHECK ORCHESTRATOR
# ============================================================================

class CheckOrchestrator:
    """
    Parameters
    ----------
    store : TargetRepository
        Source of active targets and sink for check records.
    prober : HealthProber
        Executes the HTTP probe.
    notifier : EmailNotifier | None
        If supplied, transitions are mailed. If None, they are only logged.
    settings : MonitoringSettings
        Pacing delay between checks within a sweep.
    """

    def __init__(
        self,
        store: TargetRepository,
        prober: HealthProber,
        notifier: Optional[EmailNotifier] = None,
        settings: Optional[MonitoringSettings] = None,
    ):
        self.store = store
        self.prober = prober
        self.notifier = notifier
        self.settings = settings or MonitoringSettings()
        self.pacing_delay = self.settings.pacing_delay

    # ------------------------------------------------------------------
    # SWEEP
    # ------------------------------------------------------------------

    async def run_sweep(self, targets: Optional[Sequence[Target]] = None) -> List[CheckOutcome]:
        """
        Check every target in turn.

        When *targets* is None the active targets are fetched from the
        store; if that fetch fails the sweep is abandoned with no outcomes.
        A failure on one target never stops the others.
        """
        if targets is None:
            try:
                targets = await self.store.list_active()
            except Exception as e:
                logger.error(f"[Sweep] Could not load active targets: {e}")
                return []

        if not targets:
            logger.info("[Sweep] No active targets to check")
            return []

        logger.info(f"[Sweep] Checking {len(targets)} target(s)")
        outcomes: List[CheckOutcome] = []

        for index, target in enumerate(targets):
            if index > 0:
                await self._pace()
            outcomes.append(await self.run_single(target))

        down = sum(1 for outcome in outcomes if not outcome.is_up)
        logger.info(
            f"[Sweep] ✓ Completed: {len(outcomes) - down} up, {down} down, "
            f"{sum(1 for outcome in outcomes if outcome.notified)} notification(s) sent"
        )
        return outcomes

    async def _pace(self) -> None:
        if self.pacing_delay > 0:
            await asyncio.sleep(self.pacing_delay)

    # ------------------------------------------------------------------
    # SINGLE CHECK
    # ------------------------------------------------------------------

    async def run_single(self, target: Target) -> CheckOutcome:
        """
        Probe *target*, persist the result and notify on a transition.

        Any failure along the way (prober raising, store unavailable) is
        turned into a synthetic ``down`` record; this method does not raise.
        """
        try:
            return await self._check(target)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.opt(exception=e).error(
                f"[Check] Exception checking target {target.id} ({target.url}): {e}"
            )
            return await self._record_failure(target, e)

    async def _check(self, target: Target) -> CheckOutcome:
        result = await self.prober.probe(target.url)

        recorded = await self.store.record_check(
            target.id, result.status, result.latency_ms, result.error
        )
        transition = resolve_transition(recorded.prior_status, result.status)

        logger.info(
            f"[Check] {target.name} ({target.url}) → {result.status.value}"
            + (f" in {result.latency_ms}ms" if result.latency_ms is not None else "")
            + (f": {result.error}" if result.error else "")
        )

        notified = await self._notify(target, transition, result.error)

        return CheckOutcome(
            target_id=target.id,
            target_name=target.name,
            url=target.url,
            status=result.status,
            latency_ms=result.latency_ms,
            error=result.error,
            prior_status=recorded.prior_status,
            transition=transition,
            notified=notified,
            checked_at=recorded.record.checked_at,
        )

    async def _record_failure(self, target: Target, exc: BaseException) -> CheckOutcome:
        """
        Write a synthetic down record describing *exc*. If even that write
        fails, the failure is logged and the outcome is reported unrecorded.
        """
        cause = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        error = ProbeErrors.check_failed(cause)

        outcome = CheckOutcome(
            target_id=target.id,
            target_name=target.name,
            url=target.url,
            status=CheckStatus.DOWN,
            error=error,
            synthetic=True,
        )

        try:
            recorded = await self.store.record_check(target.id, CheckStatus.DOWN, None, error)
        except Exception as inner_e:
            logger.error(
                f"[Check] Failed to record fallback for target {target.id}: {inner_e}"
            )
            outcome.recorded = False
            return outcome

        outcome.prior_status = recorded.prior_status
        outcome.checked_at = recorded.record.checked_at
        outcome.transition = resolve_transition(recorded.prior_status, CheckStatus.DOWN)
        outcome.notified = await self._notify(target, outcome.transition, error)
        return outcome

    # ------------------------------------------------------------------
    # NOTIFICATION
    # ------------------------------------------------------------------

    async def _notify(
        self,
        target: Target,
        transition: Optional[TransitionType],
        error: Optional[str],
    ) -> bool:
        """Deliver the notification owed for *transition*, if any."""
        if transition is None:
            return False

        if transition == TransitionType.DOWN:
            logger.warning(f"[Check] 🔴 DOWNTIME DETECTED: target {target.id} ({target.url})")
        else:
            logger.info(f"[Check] 🟢 RECOVERY DETECTED: target {target.id} ({target.url})")

        if self.notifier is None:
            logger.info(f"[ALERT] type={transition.value} target={target.id} url={target.url}")
            return False

        try:
            if transition == TransitionType.DOWN:
                return bool(await self.notifier.notify_down(target, error))
            return bool(await self.notifier.notify_up(target))
        except Exception as e:
            logger.error(f"[Check] Failed to send {transition.value} notification for target {target.id}: {e}")
            return False
