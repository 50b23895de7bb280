"""
============================================================================
UPTIME WATCH - REPOSITORIES
============================================================================
Store adapter over the targets and check_records tables. Every method
opens its own ``db_manager.session()`` scope, so a session is committed
or rolled back and always released before the method returns.
============================================================================
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from config.constants import CheckStatus, Defaults, Limits
from config.settings import MonitoringSettings
from database.connection import DatabaseManager
from database.models import CheckRecord, Target
from exceptions import (
    DatabaseQueryError,
    DuplicateTargetError,
    TargetNotFoundError,
    ValidationException,
)
from utils.helpers import StringHelper, TimeHelper
from utils.logger import get_logger
from utils.validators import DataValidator, URLValidator


@dataclass
class RecordedCheck:
    """Outcome of an atomic check write."""
    record: CheckRecord
    prior_status: Optional[CheckStatus]


# ============================================================================
# DATABASE REPOSITORY BASE CLASS
# ============================================================================

class BaseRepository:
    """
    Base repository class for database operations.
    Provides common lookups shared by concrete repositories.
    """

    model = None

    def __init__(self, db_manager: DatabaseManager):
        """
        Initialize repository.

        Args:
            db_manager: DatabaseManager instance
        """
        self.db = db_manager
        self.logger = get_logger(self.__class__.__name__)

    async def get_by_id(self, record_id: int):
        """
        Get record by ID.

        Args:
            record_id: Record ID

        Returns:
            Model instance or None
        """
        async with self.db.session() as session:
            return await session.get(self.model, record_id)

    async def count(self) -> int:
        """
        Count total records.

        Returns:
            Total count
        """
        async with self.db.session() as session:
            result = await session.execute(select(func.count(self.model.id)))
            return result.scalar() or 0


# ============================================================================
# TARGET REPOSITORY
# ============================================================================

class TargetRepository(BaseRepository):
    """Repository for targets and their check history."""

    model = Target

    UPDATABLE_FIELDS = frozenset({
        "name", "url", "is_active", "check_interval", "last_status", "last_check",
    })

    def __init__(self, db_manager: DatabaseManager, settings: Optional[MonitoringSettings] = None):
        super().__init__(db_manager)
        self.settings = settings or MonitoringSettings()

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    async def list_active(self) -> List[Target]:
        """Get all targets with monitoring enabled."""
        async with self.db.session() as session:
            result = await session.execute(
                select(Target)
                .where(Target.is_active.is_(True))
                .order_by(Target.id.asc())
            )
            return list(result.scalars().all())

    async def list_all(self) -> List[Target]:
        """Get every target, newest first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(Target).order_by(Target.created_at.desc(), Target.id.desc())
            )
            return list(result.scalars().all())

    async def _url_taken(self, session, url: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Target.id).where(Target.url == url)
        if exclude_id is not None:
            query = query.where(Target.id != exclude_id)
        result = await session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def create_target(
        self,
        name: Any,
        url: Any,
        check_interval: Optional[int] = None,
        is_active: bool = True,
    ) -> Target:
        """
        Register a new target.

        Raises:
            ValidationException: name or url missing or malformed
            DuplicateTargetError: url already registered
        """
        name = DataValidator.validate_name(name)
        url = URLValidator.validate(url)
        interval = DataValidator.validate_interval(
            self.settings.default_check_interval if check_interval is None else check_interval
        )

        try:
            async with self.db.session() as session:
                if await self._url_taken(session, url):
                    raise DuplicateTargetError(url=url)

                target = Target(
                    name=name,
                    url=url,
                    check_interval=interval,
                    is_active=bool(is_active),
                    created_at=TimeHelper.get_utc_now(),
                )
                session.add(target)
                await session.flush()
                await session.refresh(target)
        except DatabaseQueryError as e:
            # Lost a race against a concurrent insert of the same URL
            if isinstance(e.cause, IntegrityError):
                raise DuplicateTargetError(url=url, cause=e.cause)
            raise

        self.logger.info(f"✓ Target created: {target.name} ({target.url}) id={target.id}")
        return target

    async def update_target(self, target_id: int, **fields: Any) -> bool:
        """
        Partially update a target.

        Returns:
            True if the target exists and was updated, False if absent

        Raises:
            ValidationException: unknown field or invalid value
            DuplicateTargetError: new url belongs to another target
        """
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValidationException(
                f"Unknown field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0]
            )

        values = dict(fields)
        if "name" in values:
            values["name"] = DataValidator.validate_name(values["name"])
        if "url" in values:
            values["url"] = URLValidator.validate(values["url"])
        if "check_interval" in values:
            values["check_interval"] = DataValidator.validate_interval(values["check_interval"])
        if "is_active" in values:
            values["is_active"] = bool(values["is_active"])
        if "last_status" in values:
            values["last_status"] = CheckStatus.parse(values["last_status"])

        try:
            async with self.db.session() as session:
                target = await session.get(Target, target_id)
                if target is None:
                    return False

                if "url" in values and await self._url_taken(session, values["url"], target_id):
                    raise DuplicateTargetError(url=values["url"])

                for key, value in values.items():
                    setattr(target, key, value)
        except DatabaseQueryError as e:
            if isinstance(e.cause, IntegrityError) and "url" in values:
                raise DuplicateTargetError(url=values["url"], cause=e.cause)
            raise

        self.logger.debug(f"Target {target_id} updated: {sorted(values)}")
        return True

    async def delete_target(self, target_id: int) -> bool:
        """Delete a target; its check records go with it."""
        async with self.db.session() as session:
            target = await session.get(Target, target_id)
            if target is None:
                return False
            await session.delete(target)

        self.logger.info(f"✓ Target deleted: id={target_id}")
        return True

    # ------------------------------------------------------------------
    # Check history
    # ------------------------------------------------------------------

    @staticmethod
    def _build_record(
        target_id: int,
        status: Any,
        latency_ms: Optional[int],
        error: Optional[str],
    ) -> CheckRecord:
        status = CheckStatus.parse(status)
        if status is None:
            raise ValidationException("Check status is required", field="status")

        if error is not None:
            error = StringHelper.truncate(str(error), Limits.MAX_ERROR_LENGTH)

        return CheckRecord(
            target_id=target_id,
            status=status,
            response_time_ms=None if latency_ms is None else int(latency_ms),
            error_message=error,
            checked_at=TimeHelper.get_utc_now(),
        )

    async def append_check_record(
        self,
        target_id: int,
        status: Any,
        latency_ms: Optional[int] = None,
        error: Optional[str] = None,
    ) -> CheckRecord:
        """
        Append a check record without touching the target's cached status.

        Raises:
            TargetNotFoundError: no such target
        """
        record = self._build_record(target_id, status, latency_ms, error)

        async with self.db.session() as session:
            if await session.get(Target, target_id) is None:
                raise TargetNotFoundError(target_id)
            session.add(record)
            await session.flush()

        return record

    async def record_check(
        self,
        target_id: int,
        status: Any,
        latency_ms: Optional[int] = None,
        error: Optional[str] = None,
    ) -> RecordedCheck:
        """
        Append a check record and update ``last_status``/``last_check`` in
        one transaction, returning the status the target had before.

        The target row is locked (``SELECT ... FOR UPDATE``) on backends
        that support it, so the prior status read and the new status
        write cannot interleave with another writer.

        Raises:
            TargetNotFoundError: no such target
        """
        record = self._build_record(target_id, status, latency_ms, error)

        async with self.db.session() as session:
            target = await session.get(Target, target_id, with_for_update=True)
            if target is None:
                raise TargetNotFoundError(target_id)

            prior_status = CheckStatus.parse(target.last_status)

            session.add(record)
            target.last_status = record.status
            target.last_check = record.checked_at
            await session.flush()

        return RecordedCheck(record=record, prior_status=prior_status)

    async def get_check_records(
        self,
        target_id: int,
        limit: Optional[int] = None,
    ) -> List[CheckRecord]:
        """Most recent check records of a target, newest first."""
        if limit is None:
            limit = self.settings.history_limit
        limit = max(1, min(int(limit), Limits.MAX_HISTORY_LIMIT))

        async with self.db.session() as session:
            result = await session.execute(
                select(CheckRecord)
                .where(CheckRecord.target_id == target_id)
                .order_by(CheckRecord.checked_at.desc(), CheckRecord.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_recent_down_targets(
        self,
        hours: int = Defaults.RECENT_DOWN_HOURS,
    ) -> List[Target]:
        """
        Active targets with at least one ``down`` check in the last
        ``hours`` hours, most recently failing first.
        """
        cutoff = TimeHelper.get_utc_now() - timedelta(hours=hours)
        last_down = func.max(CheckRecord.checked_at).label("last_down")

        async with self.db.session() as session:
            result = await session.execute(
                select(Target, last_down)
                .join(CheckRecord, CheckRecord.target_id == Target.id)
                .where(
                    CheckRecord.status == CheckStatus.DOWN,
                    CheckRecord.checked_at > cutoff,
                    Target.is_active.is_(True),
                )
                .group_by(Target.id)
                .order_by(last_down.desc())
            )
            return [row[0] for row in result.all()]

    async def get_summary(self) -> Dict[str, int]:
        """Counts of targets by cached status."""
        async with self.db.session() as session:
            result = await session.execute(
                select(Target.last_status, func.count(Target.id)).group_by(Target.last_status)
            )
            counts = {"up": 0, "down": 0, "unknown": 0}
            for status, amount in result.all():
                status = CheckStatus.parse(status)
                counts[status.value if status else "unknown"] += amount
            counts["total"] = sum(counts.values())
            return counts
