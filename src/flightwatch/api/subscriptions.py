"""API endpoints for traveler subscriptions."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from flightwatch.api.deps import get_provider, normalize_phone
from flightwatch.db.deps import get_db
from flightwatch.fetch.airlines import normalize_flight_number, split_flight_number
from flightwatch.models import Subscription
from flightwatch.storage.schedules import SqlScheduleStore
from flightwatch.storage.subscriptions import delete_subscription, list_subscriptions
from flightwatch.tracking import subscribe

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


class CreateSubscriptionRequest(BaseModel):
    """Request body for subscribing a phone number to a flight."""

    phone: str  # E.164, "+" optional
    flight_number: str  # e.g. "KL880" or "KLM880"
    date: str  # YYYY-MM-DD

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("flight_number")
    @classmethod
    def validate_flight_number(cls, v: str) -> str:
        if split_flight_number(v) is None:
            raise ValueError(f"Invalid flight number '{v}'")
        return normalize_flight_number(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError("date must be YYYY-MM-DD format")
        return v


class SubscriptionResponse(BaseModel):
    """Subscription data in API responses."""

    phone: str
    flight_number: str
    date: str
    status: str
    fa_flight_id: str | None = None
    departure_airport: str | None = None
    arrival_airport: str | None = None
    created_at: str


def _to_response(sub: Subscription) -> SubscriptionResponse:
    return SubscriptionResponse(
        phone=sub.phone,
        flight_number=sub.flight_number,
        date=sub.date,
        status=sub.status.value,
        fa_flight_id=sub.fa_flight_id,
        departure_airport=sub.departure_airport,
        arrival_airport=sub.arrival_airport,
        created_at=sub.created_at.isoformat(),
    )


@router.post("", response_model=SubscriptionResponse, status_code=201)
def create_subscription(
    req: CreateSubscriptionRequest,
    db: Session = Depends(get_db),
    provider=Depends(get_provider),
):
    """Subscribe to a flight. Tracking starts now if the provider lists it, else it stays pending."""
    sub = subscribe(
        db, provider, SqlScheduleStore(db), req.phone, req.flight_number, req.date
    )
    return _to_response(sub)


@router.get("/{phone}", response_model=list[SubscriptionResponse])
def get_subscriptions(phone: str, db: Session = Depends(get_db)):
    """List a traveler's subscriptions."""
    return [_to_response(s) for s in list_subscriptions(db, phone)]


@router.delete("/{phone}/{flight_number}/{flight_date}", status_code=204)
def remove_subscription(
    phone: str,
    flight_number: str,
    flight_date: str,
    db: Session = Depends(get_db),
):
    """Unsubscribe from a flight."""
    flight_id = f"{normalize_flight_number(flight_number)}#{flight_date}"
    try:
        delete_subscription(db, phone, flight_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Subscription '{flight_id}' not found")
