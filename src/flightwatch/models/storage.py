"""Pydantic v2 models for persisted history and subscriptions (storage layer)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from flightwatch.models.flight import FlightSnapshot, InboundAlertState, MilestoneState


class StoredSnapshot(BaseModel):
    """One row of a flight's append-only history."""

    id: int | None = None  # DB primary key (auto-generated)
    flight_id: str  # "{flight_number}#{date}"
    created_at: datetime
    snapshot: FlightSnapshot
    milestones: MilestoneState = Field(default_factory=MilestoneState)
    inbound: InboundAlertState = Field(default_factory=InboundAlertState)


class SubscriptionStatus(str, Enum):
    PENDING = "pending"  # provider does not list the flight yet
    ACTIVE = "active"
    EXPIRED = "expired"


class Subscription(BaseModel):
    """A traveler's interest in one flight on one date."""

    phone: str  # E.164, e.g. "+15551234567"
    flight_number: str
    date: str  # YYYY-MM-DD
    fa_flight_id: str | None = None
    departure_airport: str | None = None
    arrival_airport: str | None = None
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    created_at: datetime

    @property
    def flight_id(self) -> str:
        return f"{self.flight_number}#{self.date}"


class User(BaseModel):
    """A traveler profile, keyed by phone number."""

    id: str  # uuid4 hex
    name: str
    phone: str  # E.164
    created_at: datetime
