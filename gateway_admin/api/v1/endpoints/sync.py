"""
On-demand replication endpoints.
"""
import logging

from fastapi import APIRouter, Depends

from gateway_admin.core.auth import require_api_key
from gateway_admin.dependencies import get_sync_scheduler
from gateway_admin.schemas.sync import SyncReportResponse, SyncStatusResponse
from gateway_admin.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=SyncReportResponse)
def trigger_sync(
    _: str = Depends(require_api_key),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """
    Replicate the administrative configuration to the live store now.

    Idempotent: with no admin changes in between, repeated calls leave the
    live store with identical content. The response reports success or
    failure and how many routes were replicated.
    """
    report = scheduler.trigger("manual")
    logger.info(f"Manual sync finished: {report.status.value} ({report.replicated}/{report.total})")
    return SyncReportResponse.from_report(report)


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(scheduler: SyncScheduler = Depends(get_sync_scheduler)):
    """Scheduler state and the most recent run's report."""
    return SyncStatusResponse(
        running=scheduler.running,
        interval_seconds=scheduler.interval,
        run_count=scheduler.run_count,
        coalesced_count=scheduler.coalesced_count,
        last_report=SyncReportResponse.from_report(scheduler.last_report),
    )
