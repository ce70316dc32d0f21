"""
Main FastAPI application entry point.
"""
import logging
import os
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from gateway_admin.api.v1.router import api_router
from gateway_admin.core.config import settings
from gateway_admin.core.database import (
    Base,
    LiveBase,
    LiveSessionLocal,
    SessionLocal,
    engine,
    live_engine,
)
from gateway_admin.core.logging_config import setup_logging
from gateway_admin.dependencies import build_sync_scheduler
from gateway_admin.middleware.request_logging import RequestLoggingMiddleware

# Import all models to ensure they register with their metadata
from gateway_admin.models import (  # noqa: F401
    AllowedIp,
    GatewayRoute,
    LiveAllowedIp,
    LiveGatewayRoute,
    LiveRateLimit,
    RateLimit,
)

setup_logging()
logger = logging.getLogger(__name__)


def _run_migrations() -> None:
    """Apply Alembic migrations to the administrative store when DATABASE_URL is set."""
    if not os.getenv("DATABASE_URL"):
        logger.info("[MIGRATION] DATABASE_URL not set, skipping migrations (local dev mode)")
        return

    from alembic import command
    from alembic.config import Config

    try:
        logger.info("[MIGRATION] DATABASE_URL detected, running Alembic migrations...")
        command.upgrade(Config("alembic.ini"), "head")
        logger.info("[MIGRATION] Alembic migrations completed (or already up-to-date)")
    except Exception as e:
        trace_id = str(uuid.uuid4())
        logger.warning(f"[MIGRATION] [{trace_id}] Alembic migration failed: {e}")
        logger.debug(f"[MIGRATION] [{trace_id}] Migration error details:", exc_info=True)


def _create_tables() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Administrative store tables created/verified")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create administrative store tables: {e}", exc_info=True)

    try:
        LiveBase.metadata.create_all(bind=live_engine)
        logger.info("Live store tables created/verified")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create live store tables: {e}", exc_info=True)


def _seed_sample_data() -> None:
    from gateway_admin.services.seed_data import seed_sample_routes

    db = SessionLocal()
    try:
        seed_sample_routes(db)
    except Exception as e:
        db.rollback()
        logger.warning(f"Failed to seed sample routes: {e}. Continuing without seed data.")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting up {settings.APP_NAME} API...")

    _run_migrations()
    _create_tables()

    if settings.SEED_SAMPLE_DATA:
        _seed_sample_data()

    scheduler = build_sync_scheduler(
        SessionLocal,
        LiveSessionLocal,
        interval_seconds=settings.SYNC_INTERVAL_SECONDS,
    )
    app.state.sync_scheduler = scheduler

    if settings.SYNC_ON_STARTUP:
        report = await run_in_threadpool(scheduler.trigger, "startup")
        logger.info(f"Startup sync: {report.status.value} ({report.replicated}/{report.total} routes)")

    if settings.SYNC_ENABLED:
        scheduler.start()
    else:
        logger.info("Periodic sync disabled (SYNC_ENABLED=false)")

    yield

    logger.info(f"Shutting down {settings.APP_NAME} API...")
    scheduler.stop(timeout=settings.SYNC_INTERVAL_SECONDS)


app = FastAPI(
    title="Gateway Admin API",
    description="Administer gateway routes, IP allowlists and rate limits, and replicate them to the live gateway store",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# Request logging middleware (must be added before other middleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors with trace_id."""
    trace_id = getattr(request.state, "trace_id", str(uuid.uuid4()))

    logger.error(
        f"[{trace_id}] Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
    )

    if isinstance(exc, SQLAlchemyError):
        error_detail = "Database error: check DATABASE_URL / migrations"
        error_type = "DatabaseError"
    elif isinstance(exc, HTTPException):
        raise exc
    else:
        error_detail = str(exc) if settings.DEBUG else "Internal Server Error"
        error_type = type(exc).__name__

    return JSONResponse(
        status_code=500,
        content={
            "detail": error_detail,
            "trace_id": trace_id,
            "error": error_type,
        },
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Gateway Admin API",
        "version": "1.0.0",
        "docs": "/docs",
    }
