"""
Pytest configuration and fixtures.
"""
import uuid

import pytest
from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from unittest.mock import patch

from gateway_admin.core.database import Base, LiveBase, build_engine, get_db
from gateway_admin.api.v1.endpoints.health import get_live_db
from gateway_admin.dependencies import build_sync_scheduler, get_sync_scheduler
from gateway_admin.main import app

# Import all models to ensure they register with their metadata
from gateway_admin.models import (
    GatewayRoute,
    AllowedIp,
    RateLimit,
    LiveGatewayRoute,
    LiveRateLimit,
    LiveAllowedIp,
)

# File-based SQLite for both stores (more reliable than in-memory across threads)
TEST_DATABASE_URL = "sqlite:///./test_gateway_admin.db"
TEST_LIVE_DATABASE_URL = "sqlite:///./test_gateway_live.db"

test_engine = build_engine(TEST_DATABASE_URL)
test_live_engine = build_engine(TEST_LIVE_DATABASE_URL)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
TestingLiveSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_live_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create both stores' tables once per session and drop them afterwards."""
    Base.metadata.drop_all(bind=test_engine)
    LiveBase.metadata.drop_all(bind=test_live_engine)
    Base.metadata.create_all(bind=test_engine)
    LiveBase.metadata.create_all(bind=test_live_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)
    LiveBase.metadata.drop_all(bind=test_live_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_tables():
    """Start every test with empty stores."""
    with TestingLiveSessionLocal() as live:
        for model in (LiveAllowedIp, LiveRateLimit, LiveGatewayRoute):
            live.execute(delete(model))
        live.commit()
    with TestingSessionLocal() as db:
        for model in (AllowedIp, RateLimit, GatewayRoute):
            db.execute(delete(model))
        db.commit()
    yield


@pytest.fixture(scope="function", autouse=True)
def disable_api_key():
    """Disable API key authentication for all tests."""
    with patch("gateway_admin.core.config.settings.API_KEY", None):
        yield


@pytest.fixture(scope="function")
def db_session():
    """Administrative store session for direct DB access."""
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture(scope="function")
def live_session():
    """Live store session for asserting on replicated rows."""
    db = TestingLiveSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def admin_session_factory():
    return TestingSessionLocal


@pytest.fixture(scope="function")
def live_session_factory():
    return TestingLiveSessionLocal


@pytest.fixture(scope="function")
def scheduler():
    """Scheduler wired to the test stores; the timer is never started here."""
    return build_sync_scheduler(TestingSessionLocal, TestingLiveSessionLocal, interval_seconds=30)


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def _override_get_live_db():
    db = TestingLiveSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(scheduler):
    """
    Test client with both stores and the scheduler overridden.

    The lifespan is not run (no context manager), so no timer thread starts.
    """
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_live_db] = _override_get_live_db
    app.dependency_overrides[get_sync_scheduler] = lambda: scheduler

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_with_auth(scheduler):
    """Test client with API_KEY="test-key" enabled."""
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_live_db] = _override_get_live_db
    app.dependency_overrides[get_sync_scheduler] = lambda: scheduler

    with patch("gateway_admin.core.config.settings.API_KEY", "test-key"):
        yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def make_route(db_session):
    """Factory inserting routes straight into the admin store."""
    def _make(**kwargs):
        return add_route(db_session, **kwargs)
    return _make


def add_route(db, id=None, route_id=None, uri="http://localhost:8050", predicates=None,
              ips=(), rate_limit=None, with_token=False, with_rate_limit=False):
    """Insert a route directly into the admin store, keeping with_ip_filter consistent."""
    suffix = id if id is not None else uuid.uuid4().hex[:8]
    route = GatewayRoute(
        id=id,
        route_id=route_id or f"route-{suffix}",
        uri=uri,
        predicates=predicates or f"/service-{suffix}/**",
        with_ip_filter=bool(ips),
        with_token=with_token,
        with_rate_limit=with_rate_limit,
    )
    route.allowed_ips = [AllowedIp(ip=ip) for ip in ips]
    if rate_limit is not None:
        route.rate_limit = RateLimit(max_requests=rate_limit[0], time_window_ms=rate_limit[1])
    db.add(route)
    db.commit()
    db.refresh(route)
    return route
