"""
Wiring for the replication components.
"""
import logging
from typing import Callable

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from gateway_admin.services.config_repository import ConfigurationRepository
from gateway_admin.services.replication_engine import ReplicationEngine
from gateway_admin.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def build_sync_scheduler(
    admin_session_factory: Callable[[], Session],
    live_session_factory: Callable[[], Session],
    interval_seconds: float = 30.0,
) -> SyncScheduler:
    """Assemble repository -> engine -> scheduler for the given stores."""
    repository = ConfigurationRepository(admin_session_factory)
    engine = ReplicationEngine(repository, live_session_factory)
    return SyncScheduler(engine.run, interval_seconds=interval_seconds)


def get_sync_scheduler(request: Request) -> SyncScheduler:
    """Dependency returning the scheduler created at startup."""
    scheduler = getattr(request.app.state, "sync_scheduler", None)
    if scheduler is None:
        logger.error("Sync scheduler requested before application startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync scheduler is not initialised",
        )
    return scheduler
