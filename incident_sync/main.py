"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from incident_sync.api import sync
from incident_sync.config import settings
from incident_sync.models.base import init_db
from incident_sync.scheduler import scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting Incident Sync Service")
    init_db()
    if settings.scheduler_enabled:
        scheduler.start()
    yield
    # Shutdown
    logger.info("Stopping Incident Sync Service")
    if settings.scheduler_enabled:
        scheduler.stop()


app = FastAPI(
    title="Incident Sync Service",
    description="Synchronize incidents with FogBugz cases",
    version="1.0.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(sync.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Incident Sync"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "incident_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
