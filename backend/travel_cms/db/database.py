"""
Database connection and session management.
Pooled engine for PostgreSQL, WAL-mode SQLite for local development.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from typing import Callable, Generator
import logging
import os

from fastapi import Depends

from travel_cms.core.config import settings
from travel_cms.db.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str):
    """Create an engine tuned for the configured backend."""
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory: one shared connection or every session sees an empty db
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
        event.listen(engine, "connect", _enable_sqlite_pragmas)
        return engine

    engine = create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=settings.database_pool_pre_ping,
        pool_timeout=30,
        connect_args={"connect_timeout": 10},
    )

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("SET application_name = 'travel-cms'")
        cursor.close()

    return engine


def _resolve_url(url: str) -> str:
    # Relative SQLite paths are resolved against the backend directory
    if url.startswith("sqlite:///./"):
        backend_dir = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
        return f"sqlite:///{os.path.join(backend_dir, url[len('sqlite:///./'):])}"
    return url


engine = build_engine(_resolve_url(settings.database_url))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def get_session_factory() -> Callable[[], Session]:
    """
    Dependency returning the session factory.
    Fan-out handlers open one session per concurrent sub-query from it.
    """
    return SessionLocal


def get_db(factory: Callable[[], Session] = Depends(get_session_factory)) -> Generator[Session, None, None]:
    """Request-scoped session; closed after the response is produced."""
    db = factory()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create tables at startup."""
    logger.info("Initializing database schema...")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema initialized")
