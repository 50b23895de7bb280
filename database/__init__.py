"""
Database Package for Uptime Watch

Provides database connectivity, models, and the repository used as the
monitoring store, on SQLAlchemy with async support.
"""

from database.connection import DatabaseManager

from database.models import (
    Base,
    Target,
    CheckRecord,
)

from database.repositories import (
    BaseRepository,
    TargetRepository,
    RecordedCheck,
)

__all__ = [
    # Connection
    "DatabaseManager",

    # Models
    "Base",
    "Target",
    "CheckRecord",

    # Repositories
    "BaseRepository",
    "TargetRepository",
    "RecordedCheck",
]
