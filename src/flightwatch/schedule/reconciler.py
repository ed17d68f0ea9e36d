"""Replace a flight's polling plan when its departure time moves."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Protocol

from flightwatch.models import FlightSnapshot, SchedulePhase
from flightwatch.schedule.planner import plan_phases

logger = logging.getLogger(__name__)

REPLAN_THRESHOLD = timedelta(minutes=30)


class ScheduleStore(Protocol):
    """Persistence for polling plans, keyed by ``"{flight_number}#{date}"``."""

    def create_phases(self, flight_id: str, phases: list[SchedulePhase]) -> None: ...

    def delete_phases(self, flight_id: str) -> None: ...

    def list_phases(self, flight_id: str) -> list[SchedulePhase]: ...


def departure_shift(previous: FlightSnapshot, current: FlightSnapshot) -> timedelta | None:
    """Signed move of the estimated (else scheduled) departure, or None if unknown."""
    old = previous.planned_departure
    new = current.planned_departure
    if old is None or new is None:
        return None
    return new - old


def needs_replan(previous: FlightSnapshot | None, current: FlightSnapshot) -> bool:
    if previous is None:
        return False
    shift = departure_shift(previous, current)
    return shift is not None and abs(shift) >= REPLAN_THRESHOLD


def replace_plan(store: ScheduleStore, flight_id: str, phases: list[SchedulePhase]) -> None:
    """Discard the existing plan and store ``phases`` in its place."""
    store.delete_phases(flight_id)
    if phases:
        store.create_phases(flight_id, phases)


def reconcile_schedule(
    store: ScheduleStore,
    previous: FlightSnapshot | None,
    current: FlightSnapshot,
    now: datetime,
) -> list[SchedulePhase] | None:
    """Re-plan if the departure shifted by 30 minutes or more.

    Returns the new plan, or None when the existing plan was kept.
    """
    if not needs_replan(previous, current):
        return None
    departure = current.planned_departure
    phases = plan_phases(departure, current.planned_arrival, now)
    logger.info(
        "Departure of %s moved by %s; replacing plan with %d phases",
        current.flight_id, departure_shift(previous, current), len(phases),
    )
    replace_plan(store, current.flight_id, phases)
    return phases
