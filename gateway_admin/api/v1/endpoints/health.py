"""
Health check endpoint for monitoring and diagnostics.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gateway_admin.core.config import settings
from gateway_admin.core.database import LiveSessionLocal, get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def get_live_db():
    """Dependency for a live store session (health checks only)."""
    db = LiveSessionLocal()
    try:
        yield db
    finally:
        db.close()


def _ping(db: Session, name: str) -> bool:
    try:
        db.execute(text("SELECT 1")).fetchone()
        return True
    except SQLAlchemyError as e:
        logger.error(f"{name} health check failed: {e}", exc_info=True)
        return False


@router.get("/health")
def health_check(db: Session = Depends(get_db), live_db: Session = Depends(get_live_db)):
    """
    Health check endpoint that verifies:
    - API is running
    - Administrative store answers SELECT 1
    - Live store answers SELECT 1

    Returns 503 if either store is down.
    """
    admin_ok = _ping(db, "Administrative store")
    live_ok = _ping(live_db, "Live store")

    if not (admin_ok and live_ok):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"db": admin_ok, "live_db": live_ok},
        )

    return {
        "ok": True,
        "db": True,
        "live_db": True,
        "environment": settings.APP_ENV,
    }
