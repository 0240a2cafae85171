"""Services"""

from incident_sync.services.fogbugz_client import FogBugzClient
from incident_sync.services.mapping_store import MappingStore
from incident_sync.services.spira_client import SpiraClient
from incident_sync.services.sync_service import SyncService

__all__ = ["FogBugzClient", "MappingStore", "SpiraClient", "SyncService"]
