"""
Helpers shared by the v1 endpoints.
"""
import logging

from fastapi import HTTPException, status

from gateway_admin.core.exceptions import (
    AllowedIpNotFound,
    DuplicateAllowedIp,
    DuplicateRoute,
    GatewayAdminError,
    RouteNotFound,
)
from gateway_admin.schemas.sync import SyncReportResponse
from gateway_admin.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def to_http_exception(exc: GatewayAdminError) -> HTTPException:
    """Map a domain error to the HTTP status the admin UI expects."""
    if isinstance(exc, (RouteNotFound, AllowedIpNotFound)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (DuplicateRoute, DuplicateAllowedIp)):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=str(exc))


def sync_after_mutation(scheduler: SyncScheduler) -> SyncReportResponse:
    """
    Replicate a committed admin change before the response is sent.

    A failed sync does not undo the mutation; it is reported alongside it.
    """
    report = scheduler.trigger("api")
    if not report.ok:
        logger.warning(
            f"Admin change committed but sync {report.status.value}: "
            f"phase={report.phase}, table={report.table}, failed routes={report.failed_route_ids}"
        )
    return SyncReportResponse.from_report(report)
