"""
Replication of the administrative configuration into the live store.

Each run reads a full snapshot, clears the live tables children-first, then
re-inserts every route parent-first with ids copied verbatim. The engine keeps
no state between runs; the live store is a disposable projection of the last
successful run.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gateway_admin.core.exceptions import ClearFailed, RowInsertFailed, SourceUnavailable, SyncError
from gateway_admin.models.live import (
    LIVE_TABLES_CLEAR_ORDER,
    LiveAllowedIp,
    LiveGatewayRoute,
    LiveRateLimit,
)
from gateway_admin.services.config_repository import ConfigurationRepository, RouteAggregate

logger = logging.getLogger(__name__)


class SyncStatus(str, enum.Enum):
    """Outcome of one replication run."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class SyncReport:
    """Per-run outcome summary."""
    trigger: str
    started_at: datetime
    status: SyncStatus = SyncStatus.SUCCESS
    total: int = 0
    replicated: int = 0
    failed_route_ids: List[int] = field(default_factory=list)
    phase: Optional[str] = None  # read / clear, set when the run aborted
    table: Optional[str] = None
    error: Optional[str] = None
    finished_at: Optional[datetime] = None
    coalesced: bool = False

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.SUCCESS

    @property
    def duration_ms(self) -> Optional[int]:
        if self.finished_at is None:
            return None
        return int((self.finished_at - self.started_at).total_seconds() * 1000)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReplicationEngine:
    """Converges the live store to the administrative store."""

    def __init__(
        self,
        repository: ConfigurationRepository,
        live_session_factory: Callable[[], Session],
    ):
        """
        Args:
            repository: Source of configuration snapshots
            live_session_factory: Callable returning a new live store session
        """
        self.repository = repository
        self.live_session_factory = live_session_factory

    def run(self, trigger: str = "manual") -> SyncReport:
        """
        Run one full sync.

        Never raises for store failures; the returned report says what
        happened. A read failure leaves the live store untouched, a clear
        failure leaves it partially cleared until the next run, and a failed
        route is skipped while the others are still written.
        """
        report = SyncReport(trigger=trigger, started_at=_utcnow())
        logger.info(f"Starting route synchronization to live store (trigger={trigger})")

        try:
            snapshot = self.repository.snapshot()
        except SourceUnavailable as e:
            return self._abort(report, e)

        report.total = len(snapshot)

        db = self.live_session_factory()
        try:
            try:
                self._clear(db)
            except ClearFailed as e:
                return self._abort(report, e)

            for aggregate in snapshot:
                try:
                    self._replicate_route(db, aggregate)
                except RowInsertFailed as e:
                    logger.warning(f"Skipping route {e.route_id}: {e.cause}")
                    report.failed_route_ids.append(e.route_id)
                else:
                    report.replicated += 1
        finally:
            db.close()

        report.status = SyncStatus.SUCCESS if not report.failed_route_ids else SyncStatus.PARTIAL
        report.finished_at = _utcnow()

        if report.ok:
            logger.info(
                f"Successfully synchronized {report.replicated} routes to live store "
                f"({report.duration_ms}ms)"
            )
        else:
            logger.warning(
                f"Synchronized {report.replicated} of {report.total} routes to live store; "
                f"failed route ids: {report.failed_route_ids}"
            )
        return report

    def _abort(self, report: SyncReport, error: SyncError) -> SyncReport:
        report.status = SyncStatus.FAILED
        report.phase = error.phase
        report.table = getattr(error, "table", None)
        report.error = str(error)
        report.finished_at = _utcnow()
        logger.error(
            f"Route synchronization aborted in {error.phase} phase"
            + (f" (table={report.table})" if report.table else "")
            + f": {error}"
        )
        return report

    def _clear(self, db: Session) -> None:
        """Delete every live row, children before parents, one commit per table."""
        for model in LIVE_TABLES_CLEAR_ORDER:
            table = model.__tablename__
            try:
                result = db.execute(delete(model))
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error clearing {table}: {e}", exc_info=True)
                raise ClearFailed(table, e) from e
            logger.info(f"Cleared {result.rowcount} rows from {table}")

    def _replicate_route(self, db: Session, aggregate: RouteAggregate) -> None:
        """
        Write one route and its children in a single transaction.

        Raises:
            RowInsertFailed: If any row of the aggregate fails; nothing of
                this route is left behind.
        """
        route = aggregate.route
        try:
            db.add(
                LiveGatewayRoute(
                    id=route.id,
                    uri=route.uri,
                    route_id=route.route_id,
                    predicates=route.predicates,
                    with_ip_filter=route.with_ip_filter,
                    with_token=route.with_token,
                    with_rate_limit=route.with_rate_limit,
                )
            )
            db.flush()

            if aggregate.rate_limit is not None:
                db.add(
                    LiveRateLimit(
                        id=aggregate.rate_limit.id,
                        route_id=route.id,
                        max_requests=aggregate.rate_limit.max_requests,
                        time_window_ms=aggregate.rate_limit.time_window_ms,
                    )
                )
                db.flush()

            for allowed_ip in aggregate.allowed_ips:
                db.add(LiveAllowedIp(id=allowed_ip.id, gateway_route_id=route.id, ip=allowed_ip.ip))

            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error inserting route {route.id}: {e}")
            raise RowInsertFailed(route.id, e) from e

        logger.debug(
            f"Synchronized route {route.id} - {route.predicates} "
            f"({len(aggregate.allowed_ips)} IPs, rate limit: {aggregate.rate_limit is not None})"
        )
