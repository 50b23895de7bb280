"""
============================================================================
UPTIME WATCH - MAIN APPLICATION
============================================================================
Entry point that wires every layer together and owns the lifecycle.

    Layer 1: Core & Database
        • Settings (Pydantic), logging (loguru)
        • SQLAlchemy async engine + TargetRepository

    Layer 2: Monitoring
        • HealthProber      : bounded-time HTTP probe
        • EmailNotifier     : SMTP down / recovery mails
        • CheckOrchestrator : probe → record → notify, paced sweeps
        • MonitoringScheduler: warm-up + hourly UTC sweeps

    Layer 3: API
        • ApiServer         : aiohttp JSON API

Startup Order
-------------
1.  Load settings & configure logging
2.  Initialize DatabaseManager (create tables if needed)
3.  Wire prober, notifier, orchestrator and scheduler
4.  Start ApiServer (if enabled)
5.  Start MonitoringScheduler
6.  Wait for SIGINT / SIGTERM

Shutdown Order (reverse)
------------------------
    stop scheduler → stop API server → close DB → exit
============================================================================
"""

import asyncio
import signal
import sys
from typing import Optional

from pydantic import ValidationError

from config.settings import Settings, get_settings
from database.connection import DatabaseManager
from database.repositories import TargetRepository
from exceptions import ConfigurationError
from monitoring.notifier import EmailNotifier
from monitoring.orchestrator import CheckOrchestrator
from monitoring.prober import HealthProber
from monitoring.scheduler import MonitoringScheduler
from api.server import ApiServer
from utils.logger import get_logger, setup_logging


logger = get_logger("Main")


# ============================================================================
# APPLICATION CLASS
# ============================================================================

class UptimeWatchApplication:
    """
    Top-level application orchestrator.

    Owns every subsystem and is the single place that knows the startup /
    shutdown order. Subsystems receive their collaborators through their
    constructors; there are no module-level singletons apart from the
    cached settings.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        # --- subsystems (populated during startup) ---
        self.db_manager: Optional[DatabaseManager] = None
        self.repository: Optional[TargetRepository] = None
        self.notifier: Optional[EmailNotifier] = None
        self.orchestrator: Optional[CheckOrchestrator] = None
        self.scheduler: Optional[MonitoringScheduler] = None
        self.api_server: Optional[ApiServer] = None

        # --- lifecycle ---
        self._is_running = False
        self._stop_event = asyncio.Event()

    # ==================================================================
    # PHASE 1: DATABASE
    # ==================================================================

    async def _init_database(self) -> bool:
        """Initialize the database manager and verify connectivity."""
        logger.info("── Phase 1: Database ─────────────────────────────")
        try:
            self.db_manager = DatabaseManager(self.settings.database)
            await self.db_manager.initialize()

            if not await self.db_manager.check_connection():
                logger.error("  ✗ Database connection check failed")
                return False

            self.repository = TargetRepository(self.db_manager, self.settings.monitoring)
            summary = await self.repository.get_summary()
            logger.info(
                f"  ✓ Connected to {self.settings.database.type.value}: "
                f"targets={summary['total']}, up={summary['up']}, down={summary['down']}"
            )
            return True

        except Exception as e:
            logger.opt(exception=e).error(f"  ✗ Database init failed: {e}")
            return False

    # ==================================================================
    # PHASE 2: MONITORING
    # ==================================================================

    async def _init_monitoring(self) -> bool:
        """Wire up prober, notifier, orchestrator and scheduler."""
        logger.info("── Phase 2: Monitoring ───────────────────────────")
        try:
            prober = HealthProber(self.settings.monitoring)
            self.notifier = EmailNotifier(self.settings.notifications)

            if self.notifier.settings.is_configured:
                if not await self.notifier.verify_connection():
                    logger.warning("  ⚠ SMTP verification failed, notifications may not be delivered")

            self.orchestrator = CheckOrchestrator(
                store=self.repository,
                prober=prober,
                notifier=self.notifier,
                settings=self.settings.monitoring,
            )
            self.scheduler = MonitoringScheduler(
                orchestrator=self.orchestrator,
                store=self.repository,
                settings=self.settings.monitoring,
            )

            logger.info("  ✓ Prober, EmailNotifier, CheckOrchestrator, Scheduler created")
            return True

        except Exception as e:
            logger.opt(exception=e).error(f"  ✗ Monitoring init failed: {e}")
            return False

    # ==================================================================
    # PHASE 3: API
    # ==================================================================

    async def _init_api(self) -> bool:
        """Create the aiohttp API server."""
        logger.info("── Phase 3: API ──────────────────────────────────")
        if not self.settings.api.enabled:
            logger.info("  API disabled (API_ENABLED=false)")
            return True

        try:
            self.api_server = ApiServer(
                settings=self.settings.api,
                repository=self.repository,
                scheduler=self.scheduler,
                monitoring=self.settings.monitoring,
                app_name=self.settings.app_name,
                app_version=self.settings.app_version,
            )
            logger.info("  ✓ ApiServer created")
            return True

        except Exception as e:
            logger.opt(exception=e).error(f"  ✗ API init failed: {e}")
            return False

    # ==================================================================
    # FULL STARTUP SEQUENCE
    # ==================================================================

    async def startup(self) -> bool:
        """
        Execute the complete startup sequence.
        Returns False (and logs errors) if any critical phase fails.
        """
        logger.info("=" * 74)
        logger.info(f"  STARTING {self.settings.app_name} v{self.settings.app_version} …")
        logger.info("=" * 74)

        if not await self._init_database():
            return False

        if not await self._init_monitoring():
            return False

        if not await self._init_api():
            return False

        logger.info("── Starting background services ───────────────────")

        if self.api_server:
            await self.api_server.start()

        await self.scheduler.start()

        self._is_running = True

        logger.info("=" * 74)
        logger.info("  ✓ ALL SYSTEMS OPERATIONAL")
        logger.info("=" * 74)
        if self.api_server:
            logger.info(
                f"  API: http://{self.settings.api.host}:{self.settings.api.port}/health"
            )
        logger.info(
            f"  Monitoring: timeout {self.settings.monitoring.request_timeout_ms}ms, "
            f"pacing {self.settings.monitoring.pacing_delay_ms}ms"
        )
        logger.info("=" * 74)

        return True

    # ==================================================================
    # SHUTDOWN SEQUENCE
    # ==================================================================

    async def shutdown(self) -> None:
        """
        Graceful shutdown in reverse order.
        Each step is wrapped in try/except so a failure in one subsystem
        doesn't prevent the others from cleaning up.
        """
        logger.info("=" * 74)
        logger.info("  SHUTTING DOWN …")
        logger.info("=" * 74)

        self._is_running = False

        # 1. Stop scheduler (cancels timers and background checks)
        if self.scheduler:
            try:
                await self.scheduler.stop()
            except Exception as e:
                logger.error(f"  ✗ Scheduler stop error: {e}")

        # 2. Stop API server
        if self.api_server:
            try:
                await self.api_server.stop()
            except Exception as e:
                logger.error(f"  ✗ ApiServer stop error: {e}")

        # 3. Close database connections
        if self.db_manager:
            try:
                await self.db_manager.close()
            except Exception as e:
                logger.error(f"  ✗ Database close error: {e}")

        logger.info("=" * 74)
        logger.info("  ✓ SHUTDOWN COMPLETE")
        logger.info("=" * 74)

    # ==================================================================
    # RUN
    # ==================================================================

    def request_stop(self) -> None:
        """Ask run() to return; safe to call from a signal handler."""
        logger.info("  ⚡ Stop requested, initiating graceful shutdown…")
        self._stop_event.set()

    async def run(self) -> None:
        """Block until request_stop() is called."""
        await self._stop_event.wait()


# ============================================================================
# SIGNAL HANDLER SETUP
# ============================================================================

def _install_signal_handlers(app: UptimeWatchApplication) -> None:
    """
    Install SIGTERM / SIGINT handlers so the service shuts down gracefully
    even when stopped by the OS or a process supervisor.
    """
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, app.request_stop)
        except (NotImplementedError, OSError):
            # Not supported on Windows; KeyboardInterrupt still works there
            pass


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def load_settings() -> Settings:
    """
    Load settings from the environment.

    Raises:
        ConfigurationError: a setting is missing or out of range
    """
    try:
        return get_settings()
    except ValidationError as e:
        errors = e.errors()
        config_key = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
        raise ConfigurationError(
            f"Invalid configuration: {config_key or e.title}",
            config_key=config_key,
            cause=e,
        ) from e


async def main() -> int:
    """
    Async main: configure logging, create the app, run until signalled.
    """
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error(f"  ✗ {e.message}")
        return 1
    setup_logging(settings.logging)

    app = UptimeWatchApplication(settings)
    _install_signal_handlers(app)

    try:
        if not await app.startup():
            logger.error("  ✗ Startup failed, exiting")
            return 1
        await app.run()
        return 0
    finally:
        await app.shutdown()


# ============================================================================
# SCRIPT ENTRY POINT
# ============================================================================

def cli() -> None:
    """Console-script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
