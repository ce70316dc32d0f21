"""Schemas for replication reports."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from gateway_admin.services.replication_engine import SyncReport, SyncStatus


class SyncReportResponse(BaseModel):
    """Outcome of one sync run."""
    status: SyncStatus
    trigger: str
    total: int
    replicated: int
    failed_route_ids: List[int] = []
    phase: Optional[str] = None
    table: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    coalesced: bool = False

    model_config = {"from_attributes": True}

    @classmethod
    def from_report(cls, report: Optional[SyncReport]) -> Optional["SyncReportResponse"]:
        if report is None:
            return None
        return cls.model_validate(report)


class SyncStatusResponse(BaseModel):
    """Scheduler state plus the last run's report."""
    running: bool
    interval_seconds: float
    run_count: int
    coalesced_count: int
    last_report: Optional[SyncReportResponse] = None


class DeleteResponse(BaseModel):
    """Response for delete operations."""
    message: str
    id: int
    sync: Optional[SyncReportResponse] = None
