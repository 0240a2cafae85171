"""Sync run model"""
from sqlalchemy import Column, Integer, DateTime, Text, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from incident_sync.models.base import Base
from incident_sync.models.sync_log import SyncStatus


class SyncRun(Base):
    """One sync pass over all mapped projects"""

    __tablename__ = "sync_runs"

    id = Column(Integer, primary_key=True, index=True)
    sync_system_id = Column(Integer, nullable=False, index=True)

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    finished_at = Column(DateTime, nullable=True)

    # Watermark the pass ran with (None on the first run)
    last_sync_date = Column(DateTime, nullable=True)

    # Null while the pass is running
    status = Column(Enum(SyncStatus), nullable=True)
    message = Column(Text, nullable=True)

    logs = relationship("SyncLog", back_populates="run", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SyncRun(id={self.id}, status={self.status})>"
