"""Turn update events into traveler-facing chat messages.

Messages use light chat markup: ``*bold*`` and blank lines between blocks.
Every time is shown in the local zone of the airport it refers to.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from flightwatch.models import (
    ChangeEvent,
    ChangeSet,
    CombinedEvent,
    Connection,
    FlightSnapshot,
    InboundDelayEvent,
    InboundLandedEvent,
    MilestoneEvent,
    MilestoneTag,
    RiskTier,
    UpdateEvent,
)
from flightwatch.notify.format import (
    TBD,
    format_datetime,
    format_delay,
    format_duration,
    format_time,
    format_time_diff,
)

logger = logging.getLogger(__name__)

# fields that make a change worth a dedicated line on their own
HEADLINE_FIELDS: frozenset[str] = frozenset({
    "status",
    "estimated_departure",
    "estimated_arrival",
    "gate_origin",
    "gate_destination",
    "baggage_claim",
})

CHANGE_ORDER: tuple[str, ...] = (
    "status",
    "estimated_departure",
    "scheduled_departure",
    "actual_departure",
    "estimated_arrival",
    "scheduled_arrival",
    "actual_arrival",
    "gate_origin",
    "gate_destination",
    "baggage_claim",
    "departure_airport",
    "arrival_airport",
)


# --- Shared pieces ---


def milestone_header(flight_number: str, tag: MilestoneTag | str) -> str:
    tag = MilestoneTag(tag)
    return {
        MilestoneTag.CHECKIN: f"*Check-in Open: {flight_number}*",
        MilestoneTag.H24: f"*{flight_number} - 24 Hours to Departure*",
        MilestoneTag.H12: f"*{flight_number} - 12 Hours to Go*",
        MilestoneTag.H4: f"*{flight_number} - 4 Hours to Departure*",
        MilestoneTag.BOARDING: f"*{flight_number} - Boarding Soon*",
        MilestoneTag.PRE_LANDING: f"*{flight_number} - Landing Soon*",
    }[tag]


def _place(city: str | None, code: str | None) -> str:
    if city and code:
        return f"{city} ({code})"
    return city or code or TBD


def _route(status: FlightSnapshot) -> str:
    return (
        f"{_place(status.departure_city, status.departure_airport)} → "
        f"{_place(status.arrival_city, status.arrival_airport)}"
    )


def _departure_line(status: FlightSnapshot) -> str:
    return f"Departure: {format_datetime(status.best_departure, status.departure_timezone)}"


def _arrival_line(status: FlightSnapshot) -> str:
    return f"Arrival: {format_datetime(status.best_arrival, status.arrival_timezone)}"


def _origin_location(status: FlightSnapshot) -> list[str]:
    lines = []
    if status.terminal_origin:
        lines.append(f"Terminal: {status.terminal_origin}")
    lines.append(f"Gate: {status.gate_origin or TBD}")
    return lines


def status_summary(status: FlightSnapshot) -> list[str]:
    """Full current-status block used as a footer and as the fallback body."""
    lines = [_route(status)]
    if status.status:
        lines.append(f"Status: {status.status}")
    lines.append(_departure_line(status))
    lines.append(_arrival_line(status))
    lines.extend(_origin_location(status))
    return lines


# --- Milestones ---


def _milestone_body(tag: MilestoneTag, status: FlightSnapshot) -> list[str]:
    if tag == MilestoneTag.CHECKIN:
        return [
            "Online check-in is now open for your flight.",
            _route(status),
            _departure_line(status),
        ]
    if tag == MilestoneTag.H24:
        return [
            "Your flight departs in about 24 hours.",
            _route(status),
            _departure_line(status),
            f"Status: {status.status or TBD}",
        ]
    if tag == MilestoneTag.H12:
        return [
            "Your flight departs in about 12 hours.",
            _route(status),
            _departure_line(status),
            f"Status: {status.status or TBD}",
        ]
    if tag == MilestoneTag.H4:
        return [
            "Time to start heading to the airport.",
            _departure_line(status),
            *_origin_location(status),
            f"Status: {status.status or TBD}",
        ]
    if tag == MilestoneTag.BOARDING:
        return [
            "Boarding begins shortly. Please make your way to the gate.",
            *_origin_location(status),
            f"Departure: {format_time(status.best_departure, status.departure_timezone)}",
        ]
    lines = [
        "Landing in ~1 Hour",
        f"Arriving at {_place(status.arrival_city, status.arrival_airport)} at "
        f"{format_time(status.best_arrival, status.arrival_timezone)}",
    ]
    if status.terminal_destination:
        lines.append(f"Arrival terminal: {status.terminal_destination}")
    if status.gate_destination:
        lines.append(f"Arrival gate: {status.gate_destination}")
    if status.baggage_claim:
        lines.append(f"Baggage claim: {status.baggage_claim}")
    return lines


def compose_milestone(event: MilestoneEvent) -> str:
    lines = [milestone_header(event.flight_number, event.milestone), ""]
    lines.extend(_milestone_body(event.milestone, event.current))
    return "\n".join(lines)


# --- Changes ---


def _change_line(field: str, old, new, status: FlightSnapshot) -> str | None:
    dep_tz = status.departure_timezone
    arr_tz = status.arrival_timezone

    if field == "status":
        return f"Status: {old or 'Unknown'} → *{new or 'Unknown'}*"
    if field in ("estimated_departure", "scheduled_departure"):
        label = "Departure" if field == "estimated_departure" else "Scheduled departure"
        # a first estimate is measured against the timetable
        if old is None and field == "estimated_departure":
            old = status.scheduled_departure
        diff = format_time_diff(old, new)
        suffix = f" ({diff})" if diff else ""
        return f"{label}: *{format_time(new, dep_tz)}*{suffix}"
    if field in ("estimated_arrival", "scheduled_arrival"):
        label = "Arrival" if field == "estimated_arrival" else "Scheduled arrival"
        if old is None and field == "estimated_arrival":
            old = status.scheduled_arrival
        diff = format_time_diff(old, new)
        suffix = f" ({diff})" if diff else ""
        return f"{label}: *{format_time(new, arr_tz)}*{suffix}"
    if field == "actual_departure":
        return f"Departed at *{format_time(new, dep_tz)}*" if new else None
    if field == "actual_arrival":
        return f"Landed at *{format_time(new, arr_tz)}*" if new else None
    if field == "gate_origin":
        return f"Gate changed: {old or TBD} → *{new or TBD}*"
    if field == "gate_destination":
        if old is None:
            return f"Arrival gate: *{new}*"
        return f"Arrival gate changed: {old} → *{new or TBD}*"
    if field == "baggage_claim":
        if old is None:
            line = f"Baggage claim: *{new}*"
            if status.terminal_destination:
                line += f"\nTerminal: {status.terminal_destination}"
            return line
        return f"Baggage claim changed: {old} → *{new or TBD}*"
    if field == "departure_airport":
        return f"Departure airport changed: {old or TBD} → *{new or TBD}*"
    if field == "arrival_airport":
        return f"Arrival airport changed: {old or TBD} → *{new or TBD}*"
    return None


def change_lines(changes: ChangeSet, status: FlightSnapshot) -> list[str]:
    """One line per changed field, in a fixed order."""
    lines = []
    for field in CHANGE_ORDER:
        change = changes.get(field)
        if change is None:
            continue
        line = _change_line(field, change.old, change.new, status)
        if line:
            lines.append(line)
    return lines


def compose_change(event: ChangeEvent) -> str:
    lines = [f"*Flight Update: {event.flight_number}*", ""]
    if not HEADLINE_FIELDS.intersection(event.changes):
        lines.append("Your flight details:")
        lines.extend(status_summary(event.current))
        return "\n".join(lines)
    lines.extend(change_lines(event.changes, event.current))
    return "\n".join(lines)


def compose_combined(event: CombinedEvent) -> str:
    lines = [milestone_header(event.flight_number, event.milestone), ""]
    updates = change_lines(event.changes, event.current)
    if updates:
        lines.append("Updates:")
        lines.extend(f"• {line}" for line in updates)
        lines.append("")
    lines.extend(status_summary(event.current))
    return "\n".join(lines)


# --- Inbound aircraft ---


def compose_inbound_delay(event: InboundDelayEvent) -> str:
    inbound = event.inbound
    status = event.current
    origin = _place(inbound.origin_city, inbound.origin)
    expected = inbound.estimated_arrival or inbound.scheduled_arrival
    return "\n".join([
        f"*{event.flight_number} - Inbound Aircraft Delayed*",
        "",
        f"The aircraft for your flight is arriving from {origin} on {inbound.flight_number} "
        f"and is running {format_delay(inbound.delay_minutes)} late.",
        f"Expected at {status.departure_airport or 'your airport'}: "
        f"{format_time(expected, status.departure_timezone)}",
        f"Your departure: {format_time(status.best_departure, status.departure_timezone)}",
        "This may delay your departure. We'll keep you posted.",
    ])


def compose_inbound_landed(event: InboundLandedEvent) -> str:
    inbound = event.inbound
    status = event.current
    landed_at = inbound.actual_arrival or inbound.estimated_arrival
    return "\n".join([
        f"*{event.flight_number} - Inbound Aircraft Arrived*",
        "",
        f"Good news! The aircraft for your flight ({inbound.flight_number} from "
        f"{_place(inbound.origin_city, inbound.origin)}) has landed at "
        f"{status.departure_airport or 'your airport'}.",
        f"Landed: {format_time(landed_at, status.departure_timezone)}",
        f"Your departure: {format_time(status.best_departure, status.departure_timezone)}",
    ])


# --- Connections ---


def format_connection_block(
    connection: Connection,
    flight_number: str | None = None,
    milestone: MilestoneTag | str | None = None,
) -> str:
    """Layover details relative to ``flight_number``.

    The next gate is only shown on the arriving leg's pre-landing message.
    """
    arriving = flight_number is None or flight_number == connection.from_flight
    if arriving:
        header = f"*Connection to {connection.to_flight}* at {connection.layover_airport}"
    else:
        header = f"*Connection from {connection.from_flight}* at {connection.layover_airport}"

    warning = "⚠️ " if connection.risk_tier in (RiskTier.CRITICAL, RiskTier.TIGHT) else ""
    lines = [
        header,
        f"{warning}Layover: {format_duration(connection.connection_minutes)} ({connection.risk_message})",
    ]
    if connection.terminal_change:
        lines.append(
            f"Terminal change: {connection.from_terminal or TBD} ➔ {connection.to_terminal or TBD}"
        )
    is_pre_landing = milestone is not None and MilestoneTag(milestone) == MilestoneTag.PRE_LANDING
    if arriving and is_pre_landing and connection.to_gate:
        lines.append(f"Next gate: {connection.to_gate}")
    return "\n".join(lines)


_COMPOSERS: dict[str, Callable[..., str]] = {
    "milestone": compose_milestone,
    "change": compose_change,
    "combined": compose_combined,
    "inbound-delay": compose_inbound_delay,
    "inbound-landed": compose_inbound_landed,
}


def compose(event: UpdateEvent, connection: Connection | None = None) -> str | None:
    """Message text for an event, with a connection block when one applies."""
    composer = _COMPOSERS.get(event.kind)
    if composer is None:
        logger.error("No composer for event kind %r", event.kind)
        return None
    text = composer(event)
    if connection is not None:
        milestone = getattr(event, "milestone", None)
        text += "\n\n" + format_connection_block(connection, event.flight_number, milestone)
    return text
