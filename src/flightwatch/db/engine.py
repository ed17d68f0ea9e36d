"""Engine and session factory for the flightwatch database."""

from __future__ import annotations

import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from flightwatch.db.models import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
SessionLocal: sessionmaker[Session] = sessionmaker()


def database_url() -> str:
    """Where the snapshot, schedule, subscription and user tables live.

    Production reads ``DATABASE_URL``; anything else gets a SQLite file
    ``flightwatch.db`` under ``DATA_DIR`` (default ``data``).
    """
    if os.environ.get("ENVIRONMENT", "development") == "production":
        url = os.environ.get("DATABASE_URL")
        if not url:
            raise ValueError("DATABASE_URL must be set when ENVIRONMENT=production")
        return url
    data_dir = os.environ.get("DATA_DIR", "data")
    os.makedirs(data_dir, exist_ok=True)
    return f"sqlite:///{data_dir}/flightwatch.db"


def get_engine(db_url: str | None = None) -> Engine:
    """Process-wide engine, created on first use and bound to ``SessionLocal``."""
    global _engine
    if _engine is not None:
        return _engine

    db_url = db_url or database_url()
    is_sqlite = db_url.startswith("sqlite")
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

    _engine = create_engine(db_url, connect_args=connect_args)
    SessionLocal.configure(bind=_engine)

    if is_sqlite:
        # ticks write while the API reads
        @event.listens_for(_engine, "connect")
        def _wal_mode(dbapi_conn, _connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    logger.info("Using database %s", db_url.split("@")[-1])
    return _engine


def init_db(engine: Engine | None = None) -> None:
    """Create missing tables. Development only; deployed databases are migrated with Alembic."""
    Base.metadata.create_all(engine or get_engine())
    logger.info("Database tables ensured")
