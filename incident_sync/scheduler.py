"""Background scheduler for periodic sync"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from incident_sync.config import settings
from incident_sync.models.base import SessionLocal
from incident_sync.services.sync_runner import run_sync_pass

logger = logging.getLogger(__name__)

JOB_ID = "sync_pass"


class SyncScheduler:
    """Scheduler for periodic sync passes"""

    def __init__(self):
        self.scheduler = BackgroundScheduler()

    def start(self):
        """Start the scheduler"""
        self.scheduler.start()
        logger.info("Sync scheduler started")
        self.schedule(settings.sync_interval_minutes)

    def stop(self):
        """Stop the scheduler"""
        self.scheduler.shutdown()
        logger.info("Sync scheduler stopped")

    def schedule(self, interval_minutes: int):
        """(Re)schedule the sync job"""
        existing = self.scheduler.get_job(JOB_ID)
        if existing is not None:
            self.scheduler.remove_job(JOB_ID)

        # One pass at a time: a pass that overruns the interval delays the next one
        self.scheduler.add_job(
            func=self._sync_job,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(f"Scheduled sync every {interval_minutes} minutes")

    def _sync_job(self):
        """Job function to run a sync pass"""
        db = SessionLocal()
        try:
            logger.info("Running scheduled sync")
            run = run_sync_pass(db)
            if run is not None:
                logger.info(f"Scheduled sync completed: {run.status.value}")
        except Exception as e:
            logger.error(f"Scheduled sync failed: {e}")
        finally:
            db.close()


# Global scheduler instance
scheduler = SyncScheduler()
