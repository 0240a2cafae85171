"""Database models"""

from incident_sync.models.base import Base
from incident_sync.models.sync_log import SyncLog
from incident_sync.models.sync_run import SyncRun

__all__ = [
    "Base",
    "SyncRun",
    "SyncLog",
]
