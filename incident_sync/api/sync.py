"""Sync management endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime

from incident_sync.models.base import get_db
from incident_sync.models import SyncLog, SyncRun
from incident_sync.services.sync_runner import run_sync_pass

router = APIRouter(prefix="/api/sync", tags=["sync"])


class SyncRunResponse(BaseModel):
    id: int
    sync_system_id: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    last_sync_date: Optional[datetime] = None
    status: Optional[str] = None
    message: Optional[str] = None

    class Config:
        from_attributes = True


class SyncLogResponse(BaseModel):
    id: int
    run_id: Optional[int] = None
    project_id: Optional[int] = None
    internal_id: Optional[int] = None
    external_key: Optional[str] = None
    status: str
    direction: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("/trigger", response_model=SyncRunResponse)
def trigger_sync(db: Session = Depends(get_db)):
    """Manually run a sync pass"""
    try:
        run = run_sync_pass(db)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    if run is None:
        raise HTTPException(status_code=409, detail="A sync pass is already running")
    return run


@router.get("/runs", response_model=List[SyncRunResponse])
def list_sync_runs(limit: int = 20, db: Session = Depends(get_db)):
    """List sync runs, latest first"""
    return db.query(SyncRun).order_by(SyncRun.started_at.desc()).limit(limit).all()


@router.get("/logs", response_model=List[SyncLogResponse])
def list_sync_logs(
    limit: int = 100,
    run_id: int = None,
    project_id: int = None,
    db: Session = Depends(get_db)
):
    """List sync logs"""
    query = db.query(SyncLog).order_by(SyncLog.created_at.desc())
    if run_id:
        query = query.filter(SyncLog.run_id == run_id)
    if project_id:
        query = query.filter(SyncLog.project_id == project_id)
    logs = query.limit(limit).all()
    return logs
