"""API routes"""

from incident_sync.api import sync

__all__ = ["sync"]
