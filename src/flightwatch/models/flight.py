"""Pydantic v2 models for flight snapshots and everything derived from them.

A snapshot is one normalized fetch from the flight-data provider. Milestones,
inbound-leg info and connections are all computed from snapshots and never
carry state of their own beyond what is listed here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MONITORED_FIELDS: tuple[str, ...] = (
    "status",
    "scheduled_departure",
    "estimated_departure",
    "actual_departure",
    "scheduled_arrival",
    "estimated_arrival",
    "actual_arrival",
    "departure_airport",
    "arrival_airport",
    "gate_origin",
    "gate_destination",
    "baggage_claim",
)

TIMESTAMP_FIELDS: tuple[str, ...] = (
    "scheduled_departure",
    "estimated_departure",
    "actual_departure",
    "scheduled_arrival",
    "estimated_arrival",
    "actual_arrival",
)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class FlightSnapshot(BaseModel):
    """Immutable record of one provider fetch for a flight on a date."""

    model_config = ConfigDict(frozen=True)

    flight_number: str  # as entered by the traveler, e.g. "KL880"
    date: str  # YYYY-MM-DD, departure date
    fa_flight_id: str | None = None  # provider's unique tracking id
    fetched_at: datetime | None = None

    departure_airport: str | None = None  # IATA, else ICAO, else generic code
    arrival_airport: str | None = None
    departure_city: str | None = None
    arrival_city: str | None = None
    departure_timezone: str | None = None  # IANA name
    arrival_timezone: str | None = None

    scheduled_departure: datetime | None = None
    estimated_departure: datetime | None = None
    actual_departure: datetime | None = None
    scheduled_arrival: datetime | None = None
    estimated_arrival: datetime | None = None
    actual_arrival: datetime | None = None

    status: str | None = None
    gate_origin: str | None = None
    gate_destination: str | None = None
    terminal_origin: str | None = None
    terminal_destination: str | None = None
    baggage_claim: str | None = None
    cancelled: bool = False
    inbound_fa_flight_id: str | None = None  # tail number's previous leg

    @field_validator(*TIMESTAMP_FIELDS, "fetched_at")
    @classmethod
    def _normalize_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @property
    def flight_id(self) -> str:
        """Partition key for history and schedules: ``"{flight_number}#{date}"``."""
        return f"{self.flight_number}#{self.date}"

    @property
    def best_departure(self) -> datetime | None:
        """Actual, else estimated, else scheduled departure."""
        return self.actual_departure or self.estimated_departure or self.scheduled_departure

    @property
    def best_arrival(self) -> datetime | None:
        """Actual, else estimated, else scheduled arrival."""
        return self.actual_arrival or self.estimated_arrival or self.scheduled_arrival

    @property
    def planned_departure(self) -> datetime | None:
        """Estimated, else scheduled departure (ignores actuals)."""
        return self.estimated_departure or self.scheduled_departure

    @property
    def planned_arrival(self) -> datetime | None:
        return self.estimated_arrival or self.scheduled_arrival


class FieldChange(BaseModel):
    """Old and new value of one monitored field."""

    model_config = ConfigDict(frozen=True)

    old: Any = None
    new: Any = None


ChangeSet = dict[str, FieldChange]


class MilestoneTag(str, Enum):
    """One-time lifecycle notifications, in no particular order."""

    CHECKIN = "checkin"
    H24 = "24h"
    H12 = "12h"
    H4 = "4h"
    BOARDING = "boarding"
    PRE_LANDING = "pre-landing"

    @property
    def rank(self) -> int:
        """Priority rank; 0 is the most urgent."""
        return _MILESTONE_RANK[self]


_MILESTONE_RANK: dict[MilestoneTag, int] = {
    MilestoneTag.BOARDING: 0,
    MilestoneTag.PRE_LANDING: 1,
    MilestoneTag.H4: 2,
    MilestoneTag.H12: 3,
    MilestoneTag.H24: 4,
    MilestoneTag.CHECKIN: 5,
}


class Milestone(BaseModel):
    """A milestone that became due on this tick."""

    tag: MilestoneTag
    hours_remaining: float  # to departure, or to arrival for pre-landing


class MilestoneState(BaseModel):
    """Milestones already fired for a flight+date. Only ever grows."""

    model_config = ConfigDict(frozen=True)

    fired: list[MilestoneTag] = Field(default_factory=list)

    def with_fired(self, tags) -> MilestoneState:
        """Return a new state containing every tag here plus ``tags``."""
        fired = list(self.fired)
        for tag in tags:
            tag = MilestoneTag(tag)
            if tag not in fired:
                fired.append(tag)
        return MilestoneState(fired=fired)


class InboundStatus(str, Enum):
    """Normalized lifecycle of the inbound aircraft's previous leg."""

    SCHEDULED = "Scheduled"
    IN_FLIGHT = "In Flight"
    LANDED = "Landed"
    UNKNOWN = "Unknown"


class InboundLegInfo(BaseModel):
    """The aircraft's prior leg, arriving at the traveler's departure airport."""

    flight_number: str
    fa_flight_id: str | None = None
    origin: str | None = None
    origin_city: str | None = None
    status: InboundStatus = InboundStatus.UNKNOWN
    raw_status: str | None = None
    scheduled_arrival: datetime | None = None
    estimated_arrival: datetime | None = None
    actual_arrival: datetime | None = None
    delay_minutes: int = Field(default=0, ge=0)  # early arrivals clamp to 0


class InboundAlertState(BaseModel):
    """What the traveler was last told about the inbound leg."""

    model_config = ConfigDict(frozen=True)

    last_alerted_delay_minutes: int | None = None
    last_status: InboundStatus | None = None


class SchedulePhase(BaseModel):
    """A contiguous polling window with a fixed interval."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    interval: str  # "12h", "2h", "1h", "30m", "15m"
    window: str  # human label, e.g. "12-24h to departure"


class RiskTier(str, Enum):
    """How tight a layover is."""

    SAFE = "safe"
    MODERATE = "moderate"
    TIGHT = "tight"
    CRITICAL = "critical"


class Connection(BaseModel):
    """A same-traveler layover between two consecutive flights. Never stored."""

    from_flight: str
    to_flight: str
    layover_airport: str
    connection_minutes: int
    terminal_change: bool = False
    from_terminal: str | None = None  # arrival terminal of the first leg
    to_terminal: str | None = None  # departure terminal of the second leg
    from_gate: str | None = None
    to_gate: str | None = None
    risk_tier: RiskTier
    risk_message: str = ""
