"""Sync log model"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from incident_sync.models.base import Base


class SyncStatus(str, enum.Enum):
    """Sync status enumeration.

    A pass ends as SUCCESS, WARNING (some records failed) or ERROR.
    Individual records are logged as SUCCESS, FAILED or SKIPPED.
    """
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    FAILED = "failed"
    SKIPPED = "skipped"


class SyncDirection(str, enum.Enum):
    """Sync direction enumeration"""
    LOCAL_TO_REMOTE = "local_to_remote"
    REMOTE_TO_LOCAL = "remote_to_local"


class SyncLog(Base):
    """Log of record-level sync operations"""

    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    run_id = Column(Integer, ForeignKey("sync_runs.id"), nullable=True, index=True)

    # Local project the record belongs to
    project_id = Column(Integer, nullable=True, index=True)

    # Record identity on each side
    internal_id = Column(Integer, nullable=True)
    external_key = Column(String(64), nullable=True)

    # Sync details
    status = Column(Enum(SyncStatus), nullable=False)
    direction = Column(Enum(SyncDirection), nullable=True)
    message = Column(Text, nullable=True)

    # Timestamp
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    run = relationship("SyncRun", back_populates="logs")

    def __repr__(self):
        return f"<SyncLog(status={self.status}, direction={self.direction})>"
