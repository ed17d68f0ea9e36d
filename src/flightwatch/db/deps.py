"""Request-scoped database session for the API."""

from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy.orm import Session

from flightwatch.db.engine import SessionLocal


def get_db() -> Iterator[Session]:
    """One session per request. Commits when the handler returns, rolls back if it raises."""
    with SessionLocal() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        session.commit()
