"""
============================================================================
UPTIME WATCH - LOGGING UTILITY
============================================================================
Loguru-based logging with console, rotating file and error-file sinks.
Standard-library ``logging`` records (SQLAlchemy, aiohttp, httpx) are
intercepted and routed through loguru so every line shares one format.

Logging is configured explicitly by the process entry point via
``setup_logging()``; importing this module has no side effects.
============================================================================
"""

import inspect
import logging
import sys
from typing import Optional

from loguru import logger

from config.settings import LoggingSettings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{extra[component]}:{function}:{line} - {message}"
)

# Every record carries a component, even when logged through the bare logger
logger.configure(extra={"component": "app"})


# ============================================================================
# STDLIB INTERCEPTION
# ============================================================================

class InterceptHandler(logging.Handler):
    """
    Forward standard ``logging`` records to loguru, preserving the level
    and the original caller location.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.bind(component=record.name).opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure loguru sinks from settings and take over stdlib logging.

    Args:
        settings: Logging section of the application settings
    """
    settings = settings or LoggingSettings()
    log_level = settings.level.value

    # Remove default loguru handler
    logger.remove()

    if settings.console_enabled:
        logger.add(
            sys.stdout,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=settings.colorize,
            backtrace=True,
            diagnose=False,
        )

    if settings.file_enabled:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=settings.file_rotation,
            retention=settings.file_retention,
            compression="zip",
            serialize=settings.json_format,
            backtrace=True,
            diagnose=False,
        )

    if settings.error_file_enabled:
        error_log_path = settings.file_path.parent / "errors.log"
        error_log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            error_log_path,
            format=FILE_FORMAT,
            level="ERROR",
            rotation="1 day",
            retention="7 days",
            compression="zip",
            backtrace=True,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("httpx", "httpcore", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging system initialized")
    logger.info(f"Log level: {log_level}")
    logger.info(f"Console logging: {settings.console_enabled}")
    logger.info(f"File logging: {settings.file_enabled}")


def get_logger(name: Optional[str] = None):
    """
    Get logger instance bound to a component name.

    Args:
        name: Component name (usually the class or module)

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(component=name)
    return logger
