"""Starting to track a flight, and the subscription lifecycle around it.

Providers only list flights a few days ahead, so a subscription for a later
flight is stored as pending and activated by ``activate_pending`` once the
provider can see it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date as date_cls
from datetime import datetime

from sqlalchemy.orm import Session

from flightwatch.errors import FlightNotTrackableError, ProviderError
from flightwatch.fetch.airlines import normalize_flight_number
from flightwatch.models import FlightSnapshot, SchedulePhase, Subscription, SubscriptionStatus
from flightwatch.monitor import FlightProvider
from flightwatch.schedule.planner import plan_phases
from flightwatch.schedule.reconciler import ScheduleStore, replace_plan
from flightwatch.storage.subscriptions import (
    list_pending,
    new_subscription,
    save_subscription,
    set_status,
)
from flightwatch.timestamps import utcnow

logger = logging.getLogger(__name__)


@dataclass
class TrackingPlan:
    """The snapshot tracking started from and the polling plan it produced."""

    snapshot: FlightSnapshot
    phases: list[SchedulePhase] = field(default_factory=list)


@dataclass
class ActivationResult:
    phone: str
    flight_number: str
    date: str
    activated: bool
    fa_flight_id: str | None = None
    reason: str | None = None


def start_tracking(
    flight_number: str,
    date: str,
    provider: FlightProvider,
    schedules: ScheduleStore,
    now: datetime | None = None,
) -> TrackingPlan:
    """Look the flight up and replace its polling plan.

    Raises:
        FlightNotTrackableError: If the provider has no usable record.
    """
    now = now or utcnow()
    try:
        snapshot = provider.get_snapshot(flight_number, date)
    except ProviderError as exc:
        raise FlightNotTrackableError(flight_number, date, str(exc)) from exc
    if snapshot is None:
        raise FlightNotTrackableError(flight_number, date)
    departure = snapshot.planned_departure
    if departure is None:
        raise FlightNotTrackableError(flight_number, date, "no departure time")

    phases = plan_phases(departure, snapshot.planned_arrival, now)
    replace_plan(schedules, snapshot.flight_id, phases)
    logger.info("Tracking %s with %d phases", snapshot.flight_id, len(phases))
    return TrackingPlan(snapshot=snapshot, phases=phases)


def subscribe(
    session: Session,
    provider: FlightProvider,
    schedules: ScheduleStore,
    phone: str,
    flight_number: str,
    date: str,
    now: datetime | None = None,
) -> Subscription:
    """Record a traveler's interest and start tracking if possible."""
    flight_number = normalize_flight_number(flight_number)
    sub = new_subscription(phone, flight_number, date)
    try:
        plan = start_tracking(flight_number, date, provider, schedules, now)
    except FlightNotTrackableError as exc:
        logger.info("Subscription %s %s pending: %s", phone, sub.flight_id, exc.reason)
    else:
        sub = sub.model_copy(update={
            "status": SubscriptionStatus.ACTIVE,
            "fa_flight_id": plan.snapshot.fa_flight_id,
            "departure_airport": plan.snapshot.departure_airport,
            "arrival_airport": plan.snapshot.arrival_airport,
        })
    save_subscription(session, sub)
    return sub


def activate_pending(
    session: Session,
    provider: FlightProvider,
    schedules: ScheduleStore,
    now: datetime | None = None,
) -> list[ActivationResult]:
    """Retry every pending subscription; expire those whose date has passed."""
    now = now or utcnow()
    today = now.date()
    results: list[ActivationResult] = []

    for sub in list_pending(session):
        if date_cls.fromisoformat(sub.date) < today:
            set_status(session, sub.phone, sub.flight_id, SubscriptionStatus.EXPIRED)
            results.append(ActivationResult(
                sub.phone, sub.flight_number, sub.date, False, reason="flight date passed"
            ))
            continue
        try:
            plan = start_tracking(sub.flight_number, sub.date, provider, schedules, now)
        except FlightNotTrackableError as exc:
            results.append(ActivationResult(
                sub.phone, sub.flight_number, sub.date, False, reason=exc.reason
            ))
            continue
        set_status(
            session, sub.phone, sub.flight_id, SubscriptionStatus.ACTIVE,
            fa_flight_id=plan.snapshot.fa_flight_id,
        )
        results.append(ActivationResult(
            sub.phone, sub.flight_number, sub.date, True,
            fa_flight_id=plan.snapshot.fa_flight_id,
        ))

    logger.info(
        "Pending activation: %d checked, %d activated",
        len(results), sum(r.activated for r in results),
    )
    return results
