"""Per-tick flight monitoring, shared by CLI, API and scheduler.

One tick: fetch → diff → milestones → inbound leg → publish events →
persist snapshot and dedup state → reconcile the polling plan.
Each tick is independent; the only state carried between ticks is what the
snapshot store holds. Returns structured results and never raises for an
untrackable flight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from flightwatch.analysis.diff import diff_snapshots
from flightwatch.analysis.inbound import build_inbound_info, evaluate_inbound, should_poll_inbound
from flightwatch.analysis.milestones import detect_milestones
from flightwatch.errors import ProviderError
from flightwatch.events import EventPublisher
from flightwatch.models import (
    ChangeEvent,
    ChangeSet,
    CombinedEvent,
    FlightSnapshot,
    InboundAlertState,
    InboundDelayEvent,
    InboundLandedEvent,
    InboundLegInfo,
    Milestone,
    MilestoneEvent,
    MilestoneState,
    SchedulePhase,
    StoredSnapshot,
    UpdateEvent,
)
from flightwatch.schedule.reconciler import ScheduleStore, reconcile_schedule
from flightwatch.timestamps import utcnow

logger = logging.getLogger(__name__)


class FlightProvider(Protocol):
    def get_snapshot(
        self, flight_number: str, date: str, fa_flight_id: str | None = None
    ) -> FlightSnapshot | None: ...

    def get_snapshot_by_id(self, fa_flight_id: str) -> FlightSnapshot | None: ...


class SnapshotStore(Protocol):
    def get_latest(self, flight_id: str) -> StoredSnapshot | None: ...

    def append(
        self,
        flight_id: str,
        snapshot: FlightSnapshot,
        milestones: MilestoneState,
        inbound: InboundAlertState | None = None,
    ) -> StoredSnapshot: ...


@dataclass
class MonitorDeps:
    """External collaborators for a tick, built once by the caller."""

    provider: FlightProvider
    snapshots: SnapshotStore
    publisher: EventPublisher
    schedules: ScheduleStore | None = None


@dataclass
class TickResult:
    """Structured result from one monitoring tick."""

    flight_id: str
    trackable: bool = True
    provider_failed: bool = False
    snapshot: FlightSnapshot | None = None
    changes: ChangeSet = field(default_factory=dict)
    milestones: list[Milestone] = field(default_factory=list)
    inbound: InboundLegInfo | None = None
    events: list[UpdateEvent] = field(default_factory=list)
    undelivered: list[UpdateEvent] = field(default_factory=list)
    replanned: list[SchedulePhase] | None = None
    errors: list[str] = field(default_factory=list)


def build_events(
    current: FlightSnapshot,
    changes: ChangeSet,
    milestones: list[Milestone],
    inbound_kind: str | None = None,
    inbound: InboundLegInfo | None = None,
) -> list[UpdateEvent]:
    """Classify a tick's findings into events, most urgent first.

    The top milestone absorbs the change set into one combined event; any
    other milestones due on the same tick are sent on their own.
    """
    base = {"flight_number": current.flight_number, "date": current.date, "current": current}
    events: list[UpdateEvent] = []
    ordered = sorted(milestones, key=lambda m: m.tag.rank)

    if ordered and changes:
        top, rest = ordered[0], ordered[1:]
        events.append(CombinedEvent(
            milestone=top.tag, hours_remaining=top.hours_remaining, changes=changes, **base
        ))
    else:
        rest = ordered
        if changes:
            events.append(ChangeEvent(changes=changes, **base))
    for milestone in rest:
        events.append(MilestoneEvent(
            milestone=milestone.tag, hours_remaining=milestone.hours_remaining, **base
        ))

    if inbound is not None and inbound_kind == "inbound-landed":
        events.append(InboundLandedEvent(inbound=inbound, **base))
    elif inbound is not None and inbound_kind == "inbound-delay":
        events.append(InboundDelayEvent(inbound=inbound, **base))
    return events


def _merge_inbound(stored: InboundAlertState, new: InboundAlertState) -> InboundAlertState:
    alerted = [v for v in (stored.last_alerted_delay_minutes, new.last_alerted_delay_minutes) if v is not None]
    return InboundAlertState(
        last_alerted_delay_minutes=max(alerted) if alerted else None,
        last_status=new.last_status or stored.last_status,
    )


def run_tick(
    flight_number: str,
    date: str,
    deps: MonitorDeps,
    now: datetime | None = None,
) -> TickResult:
    """Run one monitoring tick for a flight on a date."""
    now = now or utcnow()
    flight_id = f"{flight_number}#{date}"
    result = TickResult(flight_id=flight_id)

    latest = deps.snapshots.get_latest(flight_id)
    previous = latest.snapshot if latest else None
    fired = latest.milestones if latest else MilestoneState()
    inbound_state = latest.inbound if latest else InboundAlertState()

    # --- Fetch ---
    try:
        current = deps.provider.get_snapshot(
            flight_number, date, previous.fa_flight_id if previous else None
        )
    except ProviderError as exc:
        logger.warning("Fetch failed for %s: %s", flight_id, exc)
        result.trackable = False
        result.provider_failed = True
        result.errors.append(f"Provider error: {exc}")
        return result
    if current is None:
        logger.warning("Flight %s not trackable", flight_id)
        result.trackable = False
        result.errors.append(f"Flight {flight_number} on {date} not found")
        return result
    result.snapshot = current

    # --- Diff and milestones ---
    result.changes = diff_snapshots(previous, current)
    if not current.cancelled:
        result.milestones = detect_milestones(
            current.best_departure, current.best_arrival, fired.fired, now
        )
    logger.info(
        "%s: %d changes, milestones %s",
        flight_id, len(result.changes), [m.tag.value for m in result.milestones],
    )

    # --- Inbound leg ---
    inbound_kind = None
    stored_inbound = inbound_state
    if current.inbound_fa_flight_id and should_poll_inbound(current.best_departure, now):
        try:
            leg = deps.provider.get_snapshot_by_id(current.inbound_fa_flight_id)
        except ProviderError as exc:
            logger.warning("Inbound fetch failed for %s", flight_id, exc_info=True)
            result.errors.append(f"Inbound fetch failed: {exc}")
        else:
            if leg is not None:
                result.inbound = build_inbound_info(leg)
                inbound_kind, inbound_state = evaluate_inbound(result.inbound, inbound_state)

    # --- Publish ---
    result.events = build_events(
        current, result.changes, result.milestones, inbound_kind, result.inbound
    )
    undelivered_tags = set()
    changes_undelivered = False
    for event in result.events:
        try:
            deps.publisher.publish(event)
        except Exception as exc:
            logger.warning("Publish failed for %s event on %s", event.kind, flight_id, exc_info=True)
            result.errors.append(f"Publish failed for {event.kind}: {exc}")
            result.undelivered.append(event)
            if isinstance(event, (ChangeEvent, CombinedEvent)):
                changes_undelivered = True
            if isinstance(event, (MilestoneEvent, CombinedEvent)):
                undelivered_tags.add(event.milestone)
            elif isinstance(event, (InboundDelayEvent, InboundLandedEvent)):
                # leave the alert due so the next tick sends it again
                inbound_state = stored_inbound

    # --- Persist; re-read so a concurrent tick's fired milestones are kept ---
    # undelivered milestones stay unfired, and undelivered changes keep the
    # previous snapshot as the baseline, so the next tick sends them again
    stored_now = deps.snapshots.get_latest(flight_id)
    base_state = stored_now.milestones if stored_now else MilestoneState()
    merged = base_state.with_fired(fired.fired).with_fired(
        m.tag for m in result.milestones if m.tag not in undelivered_tags
    )
    if stored_now is not None:
        inbound_state = _merge_inbound(stored_now.inbound, inbound_state)
    baseline = previous if changes_undelivered and previous is not None else current
    deps.snapshots.append(flight_id, baseline, merged, inbound_state)

    # --- Schedule ---
    if deps.schedules is not None:
        try:
            result.replanned = reconcile_schedule(deps.schedules, previous, current, now)
        except Exception as exc:
            logger.warning("Schedule reconcile failed for %s", flight_id, exc_info=True)
            result.errors.append(f"Schedule reconcile failed: {exc}")

    return result
