"""
Tests for scheduled and on-demand sync triggering.
"""
import threading
import time
from datetime import datetime, timezone

from gateway_admin.models.live import LiveGatewayRoute
from gateway_admin.services.replication_engine import SyncReport, SyncStatus
from gateway_admin.services.sync_scheduler import SyncScheduler


def make_report(source, status=SyncStatus.SUCCESS):
    now = datetime.now(timezone.utc)
    return SyncReport(trigger=source, started_at=now, finished_at=now, status=status)


class RecordingRun:
    """Stand-in for ReplicationEngine.run that records calls and overlap."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self.started = threading.Event()
        self._guard = threading.Lock()

    def __call__(self, source):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append(source)
        self.started.set()
        time.sleep(self.delay)
        with self._guard:
            self.active -= 1
        return make_report(source)


def test_trigger_runs_with_source():
    run = RecordingRun()
    scheduler = SyncScheduler(run, interval_seconds=30)

    report = scheduler.trigger("api")

    assert run.calls == ["api"]
    assert report.trigger == "api"
    assert report.coalesced is False
    assert scheduler.last_report is report
    assert scheduler.run_count == 1


def test_unexpected_exception_becomes_failed_report():
    def explode(source):
        raise RuntimeError("boom")

    scheduler = SyncScheduler(explode, interval_seconds=30)

    report = scheduler.trigger("manual")

    assert report.status == SyncStatus.FAILED
    assert report.phase == "unexpected"
    assert "boom" in report.error
    assert scheduler.last_report is report


def test_runs_never_overlap():
    run = RecordingRun(delay=0.05)
    scheduler = SyncScheduler(run, interval_seconds=30)

    threads = [threading.Thread(target=scheduler.trigger, args=("api",)) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert run.max_active == 1
    assert scheduler.run_count + scheduler.coalesced_count == 5


def test_trigger_waiting_behind_an_older_run_is_not_coalesced():
    run = RecordingRun(delay=0.2)
    scheduler = SyncScheduler(run, interval_seconds=30)

    first = threading.Thread(target=scheduler.trigger, args=("schedule",))
    first.start()
    assert run.started.wait(2)

    # Requested while the first run is in flight, so that run may predate the change
    report = scheduler.trigger("api")
    first.join()

    assert report.coalesced is False
    assert run.calls == ["schedule", "api"]


def test_waiting_triggers_coalesce_into_a_newer_run():
    run = RecordingRun(delay=0.2)
    scheduler = SyncScheduler(run, interval_seconds=30)
    results = {}

    def fire(name):
        results[name] = scheduler.trigger(name)

    a = threading.Thread(target=fire, args=("a",))
    a.start()
    assert run.started.wait(2)

    b = threading.Thread(target=fire, args=("b",))
    c = threading.Thread(target=fire, args=("c",))
    b.start()
    c.start()
    for t in (a, b, c):
        t.join()

    # One of b/c runs after a; the other requested before that run started and reuses it
    assert len(run.calls) == 2
    assert run.calls[0] == "a"
    assert sorted(r.coalesced for r in (results["b"], results["c"])) == [False, True]
    assert scheduler.coalesced_count == 1


def test_sequential_triggers_each_run():
    run = RecordingRun()
    scheduler = SyncScheduler(run, interval_seconds=30)

    scheduler.trigger("api")
    scheduler.trigger("api")

    assert run.calls == ["api", "api"]
    assert scheduler.coalesced_count == 0


def test_timer_fires_scheduled_runs():
    run = RecordingRun()
    scheduler = SyncScheduler(run, interval_seconds=0.05)

    scheduler.start()
    try:
        assert scheduler.running
        deadline = time.monotonic() + 2
        while len(run.calls) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        scheduler.stop(timeout=2)

    assert not scheduler.running
    assert len(run.calls) >= 2
    assert set(run.calls) == {"schedule"}


def test_stop_before_first_tick_runs_nothing():
    run = RecordingRun()
    scheduler = SyncScheduler(run, interval_seconds=30)

    scheduler.start()
    scheduler.stop(timeout=2)

    assert run.calls == []
    assert not scheduler.running


def test_scheduler_drives_real_engine(scheduler, make_route, live_session):
    make_route(id=1)

    report = scheduler.trigger("api")

    assert report.ok
    assert live_session.query(LiveGatewayRoute).count() == 1


def test_coalesced_report_does_not_share_failed_ids():
    def partial_run(source):
        time.sleep(0.2)
        report = make_report(source, status=SyncStatus.PARTIAL)
        report.failed_route_ids.append(7)
        return report

    scheduler = SyncScheduler(partial_run, interval_seconds=30)
    results = {}

    def fire(name):
        results[name] = scheduler.trigger(name)

    threads = [threading.Thread(target=fire, args=(name,)) for name in ("a", "b", "c")]
    threads[0].start()
    time.sleep(0.05)
    threads[1].start()
    threads[2].start()
    for t in threads:
        t.join()

    coalesced = [r for r in results.values() if r.coalesced]
    assert len(coalesced) == 1
    assert coalesced[0].failed_route_ids == [7]

    coalesced[0].failed_route_ids.append(99)
    assert scheduler.last_report.failed_route_ids == [7]
