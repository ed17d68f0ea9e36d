"""Traveler subscriptions: database-backed persistence."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from flightwatch.db.models import SubscriptionRow
from flightwatch.models import Subscription, SubscriptionStatus


def _row_to_subscription(row: SubscriptionRow) -> Subscription:
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return Subscription(
        phone=row.phone,
        flight_number=row.flight_number,
        date=row.date,
        fa_flight_id=row.fa_flight_id,
        departure_airport=row.departure_airport,
        arrival_airport=row.arrival_airport,
        status=SubscriptionStatus(row.status),
        created_at=created_at,
    )


def _get_row(session: Session, phone: str, flight_id: str) -> SubscriptionRow | None:
    stmt = select(SubscriptionRow).where(
        SubscriptionRow.phone == phone, SubscriptionRow.flight_id == flight_id
    )
    return session.execute(stmt).scalars().first()


def save_subscription(session: Session, sub: Subscription) -> None:
    """Insert or update a subscription (unique per phone and flight)."""
    existing = _get_row(session, sub.phone, sub.flight_id)
    if existing:
        existing.fa_flight_id = sub.fa_flight_id
        existing.departure_airport = sub.departure_airport
        existing.arrival_airport = sub.arrival_airport
        existing.status = sub.status.value
    else:
        session.add(SubscriptionRow(
            phone=sub.phone,
            flight_id=sub.flight_id,
            flight_number=sub.flight_number,
            date=sub.date,
            fa_flight_id=sub.fa_flight_id,
            departure_airport=sub.departure_airport,
            arrival_airport=sub.arrival_airport,
            status=sub.status.value,
            created_at=sub.created_at,
        ))
    session.flush()


def get_subscription(session: Session, phone: str, flight_id: str) -> Subscription:
    """Raises KeyError if not found."""
    row = _get_row(session, phone, flight_id)
    if row is None:
        raise KeyError(f"Subscription not found: {phone} {flight_id}")
    return _row_to_subscription(row)


def list_subscriptions(session: Session, phone: str) -> list[Subscription]:
    """All subscriptions of one traveler, by flight date."""
    stmt = (
        select(SubscriptionRow)
        .where(SubscriptionRow.phone == phone)
        .order_by(SubscriptionRow.date.asc(), SubscriptionRow.id.asc())
    )
    return [_row_to_subscription(r) for r in session.execute(stmt).scalars().all()]


def list_subscribers(session: Session, flight_number: str, date: str) -> list[Subscription]:
    """Non-expired subscriptions to one flight."""
    stmt = select(SubscriptionRow).where(
        SubscriptionRow.flight_id == f"{flight_number}#{date}",
        SubscriptionRow.status != SubscriptionStatus.EXPIRED.value,
    )
    return [_row_to_subscription(r) for r in session.execute(stmt).scalars().all()]


def list_pending(session: Session) -> list[Subscription]:
    stmt = (
        select(SubscriptionRow)
        .where(SubscriptionRow.status == SubscriptionStatus.PENDING.value)
        .order_by(SubscriptionRow.date.asc())
    )
    return [_row_to_subscription(r) for r in session.execute(stmt).scalars().all()]


def set_status(
    session: Session,
    phone: str,
    flight_id: str,
    status: SubscriptionStatus,
    fa_flight_id: str | None = None,
) -> None:
    """Raises KeyError if not found."""
    row = _get_row(session, phone, flight_id)
    if row is None:
        raise KeyError(f"Subscription not found: {phone} {flight_id}")
    row.status = status.value
    if fa_flight_id:
        row.fa_flight_id = fa_flight_id
    session.flush()


def delete_subscription(session: Session, phone: str, flight_id: str) -> None:
    """Delete a subscription. Raises KeyError if not found."""
    row = _get_row(session, phone, flight_id)
    if row is None:
        raise KeyError(f"Subscription not found: {phone} {flight_id}")
    session.delete(row)
    session.flush()


def new_subscription(phone: str, flight_number: str, date: str) -> Subscription:
    return Subscription(
        phone=phone,
        flight_number=flight_number,
        date=date,
        created_at=datetime.now(timezone.utc),
    )
