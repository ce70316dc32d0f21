"""
Periodic and on-demand triggering of the replication run.

The scheduler owns one daemon thread that fires a sync every interval, and
exposes ``trigger()`` for admin mutations that need the live store updated
before they respond. Runs are serialised by a lock, so a timer tick and an API
trigger never interleave their clear/repopulate phases.
"""
import logging
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from gateway_admin.services.replication_engine import SyncReport, SyncStatus

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Runs ``run_fn`` on a fixed period and on demand, one run at a time."""

    def __init__(self, run_fn: Callable[[str], SyncReport], interval_seconds: float = 30.0):
        """
        Args:
            run_fn: Performs one sync; receives the trigger source name
            interval_seconds: Period of the scheduled sync
        """
        self.run_fn = run_fn
        self.interval = interval_seconds
        self.run_count = 0
        self.coalesced_count = 0

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_report: Optional[SyncReport] = None
        self._last_run_started: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def last_report(self) -> Optional[SyncReport]:
        return self._last_report

    def start(self) -> None:
        """Start the periodic timer thread (no-op if already running)."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="sync-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the timer; an in-flight run is allowed to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        logger.info(f"Starting sync scheduler (interval={self.interval}s)")
        while not self._stop_event.wait(self.interval):
            self.trigger("schedule")
        logger.info("Sync scheduler stopped")

    def trigger(self, source: str = "manual") -> SyncReport:
        """
        Run a sync now and return its report.

        Blocks while another run is in progress. If a run that started after
        this call was made has already finished by the time the lock is
        acquired, its snapshot already covers the caller's committed changes
        and its report is returned instead of running again.
        """
        requested_at = time.monotonic()
        with self._lock:
            if (
                self._last_report is not None
                and self._last_run_started is not None
                and self._last_run_started > requested_at
            ):
                self.coalesced_count += 1
                logger.debug(f"Sync trigger from {source} coalesced into the run that just finished")
                return replace(
                    self._last_report,
                    coalesced=True,
                    failed_route_ids=list(self._last_report.failed_route_ids),
                )

            self._last_run_started = time.monotonic()
            try:
                report = self.run_fn(source)
            except Exception as e:
                logger.error(f"Unexpected error during sync (trigger={source}): {e}", exc_info=True)
                now = datetime.now(timezone.utc)
                report = SyncReport(
                    trigger=source,
                    started_at=now,
                    finished_at=now,
                    status=SyncStatus.FAILED,
                    phase="unexpected",
                    error=str(e),
                )

            self._last_report = report
            self.run_count += 1
            return report
