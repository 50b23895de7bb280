"""
============================================================================
UPTIME WATCH - MONITORING PACKAGE
============================================================================
Runtime monitoring infrastructure:
    • HealthProber      : one bounded-time HTTP GET, up/down classification
    • CheckOrchestrator : probe → record → transition → notify, paced sweeps
    • MonitoringScheduler: warm-up + hourly UTC sweeps, in-flight guard
    • EmailNotifier     : SMTP down / recovery notifications

File layout
-----------
monitoring/
├── __init__.py          ← this file
├── prober.py            ← HealthProber + ProbeResult
├── transitions.py       ← prior/new status → notification table
├── orchestrator.py      ← CheckOrchestrator + CheckOutcome
├── scheduler.py         ← MonitoringScheduler + MonitoringStatus
└── notifier.py          ← EmailNotifier
============================================================================
"""

from monitoring.prober import HealthProber, ProbeResult
from monitoring.transitions import resolve_transition
from monitoring.notifier import EmailNotifier
from monitoring.orchestrator import CheckOrchestrator, CheckOutcome
from monitoring.scheduler import MonitoringScheduler, MonitoringStatus

__all__ = [
    # Probing
    "HealthProber",
    "ProbeResult",

    # Checks
    "resolve_transition",
    "CheckOrchestrator",
    "CheckOutcome",

    # Scheduling
    "MonitoringScheduler",
    "MonitoringStatus",

    # Notifications
    "EmailNotifier",
]
