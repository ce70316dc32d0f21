"""
Database configuration and session management.

Two stores are configured here: the administrative store (source of truth,
mutated by the admin API) and the live store (read by the traffic router,
written only by the replication engine). Each gets its own engine, session
factory and declarative base so their metadata never mixes.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from gateway_admin.core.config import get_settings

settings = get_settings()


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on FK enforcement for every new SQLite connection of ``engine``."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str) -> Engine:
    """Create an engine with the connection args appropriate for the backend."""
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    engine = create_engine(
        database_url,
        pool_pre_ping=not is_sqlite,
        echo=settings.DEBUG,
        connect_args=connect_args,
    )
    if is_sqlite:
        enable_sqlite_foreign_keys(engine)
    return engine


# Administrative store
SQLALCHEMY_DATABASE_URL = settings.sqlalchemy_database_uri
engine = build_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Live store
LIVE_DATABASE_URL = settings.live_database_uri
live_engine = build_engine(LIVE_DATABASE_URL)
LiveSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=live_engine)


class Base(DeclarativeBase):
    """Base class for administrative store models."""
    pass


class LiveBase(DeclarativeBase):
    """Base class for live store models."""
    pass


def get_db():
    """Dependency for getting an administrative store session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
