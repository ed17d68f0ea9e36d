"""Database package: SQLAlchemy models, engine and FastAPI dependencies."""

from flightwatch.db.engine import SessionLocal, get_engine, init_db
from flightwatch.db.models import Base

__all__ = ["Base", "SessionLocal", "get_engine", "init_db"]
