"""Traveler profiles: database-backed persistence."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from flightwatch.db.models import UserRow
from flightwatch.models import User


def _row_to_user(row: UserRow) -> User:
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return User(id=row.id, name=row.name, phone=row.phone, created_at=created_at)


def _get_row(session: Session, phone: str) -> UserRow | None:
    return session.execute(select(UserRow).where(UserRow.phone == phone)).scalars().first()


def new_user(name: str, phone: str) -> User:
    return User(
        id=uuid.uuid4().hex,
        name=name,
        phone=phone,
        created_at=datetime.now(timezone.utc),
    )


def save_user(session: Session, user: User) -> None:
    """Insert a user, or rename the one already registered for the phone."""
    existing = _get_row(session, user.phone)
    if existing:
        existing.name = user.name
    else:
        session.add(UserRow(
            id=user.id,
            name=user.name,
            phone=user.phone,
            created_at=user.created_at,
        ))
    session.flush()


def get_user(session: Session, phone: str) -> User:
    """Raises KeyError if no user has this phone number."""
    row = _get_row(session, phone)
    if row is None:
        raise KeyError(f"User not found: {phone}")
    return _row_to_user(row)
