"""
============================================================================
UPTIME WATCH - DATABASE MODELS
============================================================================
SQLAlchemy ORM models for the monitoring store: the registered targets
and their append-only check history.
============================================================================
"""

from typing import Any, Dict

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, DateTime, Enum,
    ForeignKey, Index, Integer, String, Text,
)
from sqlalchemy.orm import declarative_base, relationship

from config.constants import CheckStatus, Defaults, Limits
from utils.helpers import TimeHelper


# ============================================================================
# BASE MODEL CONFIGURATION
# ============================================================================

Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer, "sqlite")


def _status_column_type() -> Enum:
    """Status stored as its lowercase value ("up" / "down") in a VARCHAR."""
    return Enum(
        CheckStatus,
        name="check_status",
        native_enum=False,
        length=8,
        values_callable=lambda enum_cls: [member.value for member in enum_cls],
    )


# ============================================================================
# TARGET MODEL
# ============================================================================

class Target(Base):
    """
    A monitored HTTP endpoint.

    ``last_status`` caches the status of the most recent check record;
    ``None`` means the target has never been checked.
    """
    __tablename__ = "targets"

    id = Column(IdType, primary_key=True, autoincrement=True)
    name = Column(String(Limits.MAX_NAME_LENGTH), nullable=False)
    url = Column(Text, nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    check_interval = Column(Integer, nullable=False, default=Defaults.CHECK_INTERVAL)
    last_status = Column(_status_column_type(), nullable=True)
    last_check = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=TimeHelper.get_utc_now,
        index=True
    )

    # Relationships
    checks = relationship(
        "CheckRecord",
        back_populates="target",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise"
    )

    __table_args__ = (
        CheckConstraint(
            f"check_interval >= {Limits.MIN_CHECK_INTERVAL} "
            f"AND check_interval <= {Limits.MAX_CHECK_INTERVAL}",
            name="ck_targets_check_interval"
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert target to dictionary"""
        status = CheckStatus.parse(self.last_status)
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "is_active": bool(self.is_active),
            "check_interval": self.check_interval,
            "last_status": status.value if status else None,
            "last_check": TimeHelper.to_iso(self.last_check),
            "created_at": TimeHelper.to_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Target(id={self.id}, url={self.url!r}, last_status={self.last_status})>"


# ============================================================================
# CHECK RECORD MODEL
# ============================================================================

class CheckRecord(Base):
    """
    Result of one probe of one target. Rows are written once and never
    updated; they are removed only together with their target.
    """
    __tablename__ = "check_records"

    id = Column(IdType, primary_key=True, autoincrement=True)
    target_id = Column(
        IdType,
        ForeignKey("targets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    status = Column(_status_column_type(), nullable=False)
    response_time_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    checked_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=TimeHelper.get_utc_now,
        index=True
    )

    target = relationship("Target", back_populates="checks")

    __table_args__ = (
        Index("idx_check_records_target_time", "target_id", "checked_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert check record to dictionary"""
        status = CheckStatus.parse(self.status)
        return {
            "id": self.id,
            "target_id": self.target_id,
            "status": status.value if status else None,
            "response_time_ms": self.response_time_ms,
            "error_message": self.error_message,
            "checked_at": TimeHelper.to_iso(self.checked_at),
        }

    def __repr__(self) -> str:
        return (
            f"<CheckRecord(id={self.id}, target_id={self.target_id}, "
            f"status={self.status})>"
        )
