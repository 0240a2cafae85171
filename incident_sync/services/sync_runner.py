"""Runs sync passes and keeps their history"""

import logging
import threading
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from incident_sync.config import Settings, settings as default_settings
from incident_sync.models import SyncRun
from incident_sync.models.sync_log import SyncStatus
from incident_sync.services.fogbugz_client import FogBugzClient
from incident_sync.services.mapping_store import MappingStore
from incident_sync.services.spira_client import SpiraClient
from incident_sync.services.sync_service import SyncService

logger = logging.getLogger(__name__)

# Passes share the mapping repository, so only one may run at a time
_pass_lock = threading.Lock()


def build_clients(config: Settings = default_settings) -> Tuple[SpiraClient, FogBugzClient, MappingStore]:
    """Create the two system clients and the mapping store from settings"""
    transport = dict(
        enable_keep_alives=config.enable_keep_alives,
        verify_certificate=config.verify_certificate,
        timeout=config.request_timeout_seconds,
        trace_logging=config.trace_logging,
    )
    local = SpiraClient(config.local_base_url, **transport)
    remote = FogBugzClient(config.remote_url, **transport)
    store = MappingStore(local, config.sync_system_id)
    return local, remote, store


def get_last_sync_date(db: Session, sync_system_id: int) -> Optional[datetime]:
    """Start time of the latest pass that didn't fail, or None before the first one"""
    run = (
        db.query(SyncRun)
        .filter(SyncRun.sync_system_id == sync_system_id)
        .filter(SyncRun.status.in_([SyncStatus.SUCCESS, SyncStatus.WARNING]))
        .order_by(SyncRun.started_at.desc())
        .first()
    )
    return run.started_at if run else None


def run_sync_pass(db: Session, config: Settings = default_settings, clients=None) -> Optional[SyncRun]:
    """Run one pass and record it. Returns None if another pass is still running."""
    if not _pass_lock.acquire(blocking=False):
        logger.warning("A sync pass is already running, skipping")
        return None

    try:
        last_sync_date = get_last_sync_date(db, config.sync_system_id)
        # Watermarks are compared with the local system's dates, so use its clock (local time)
        started_at = datetime.now()

        run = SyncRun(
            sync_system_id=config.sync_system_id,
            started_at=started_at,
            last_sync_date=last_sync_date,
        )
        db.add(run)
        db.commit()
        db.refresh(run)

        try:
            local, remote, store = clients or build_clients(config)
            service = SyncService(local, remote, store, settings=config, db=db, run_id=run.id)
            status = service.execute(last_sync_date, started_at)
        except Exception as e:
            logger.error(f"Sync run {run.id} failed: {e}")
            db.rollback()
            run.status = SyncStatus.ERROR
            run.finished_at = datetime.now()
            run.message = f"Sync error: {e}"
            db.commit()
            raise

        run.status = status
        run.finished_at = datetime.now()
        run.message = f"Sync {status.value}: {service.stats}"
        db.commit()

        logger.info(f"Sync run {run.id} finished with status {status.value}")
        return run
    finally:
        _pass_lock.release()
