"""Connection detection and risk classification across a traveler's flights."""

from __future__ import annotations

from flightwatch.models import Connection, FlightSnapshot, RiskTier

MAX_CONNECTION_MINUTES = 24 * 60


def classify_risk(connection_minutes: int, terminal_change: bool) -> RiskTier:
    """Risk tier for a layover of ``connection_minutes``.

    Under 30 minutes is critical regardless of terminals. A terminal change
    makes 30-60 minutes tight and 60-90 minutes moderate.
    """
    if connection_minutes < 30:
        return RiskTier.CRITICAL
    if connection_minutes < 60:
        return RiskTier.TIGHT if terminal_change else RiskTier.MODERATE
    if connection_minutes < 90 and terminal_change:
        return RiskTier.MODERATE
    return RiskTier.SAFE


def risk_message(connection_minutes: int, terminal_change: bool, tier: RiskTier) -> str:
    m = connection_minutes
    if tier == RiskTier.CRITICAL:
        return f"{m} min - extremely tight, connection at risk"
    if tier == RiskTier.TIGHT:
        return f"{m} min with terminal change - very tight, head straight to your gate"
    if tier == RiskTier.MODERATE and terminal_change:
        return f"{m} min with terminal change - allow extra time"
    if tier == RiskTier.MODERATE:
        return f"{m} min - manageable"
    return f"{m} min - comfortable"


def _terminal_change(arriving: FlightSnapshot, departing: FlightSnapshot) -> bool:
    arr_terminal = arriving.terminal_destination
    dep_terminal = departing.terminal_origin
    return bool(arr_terminal and dep_terminal and arr_terminal != dep_terminal)


def build_connection(arriving: FlightSnapshot, departing: FlightSnapshot) -> Connection | None:
    """Connection between two legs, or None if they do not connect.

    Legs connect when the first arrives where the second departs and the
    gap is positive and at most 24 hours.
    """
    if not arriving.arrival_airport or arriving.arrival_airport != departing.departure_airport:
        return None
    arrival = arriving.best_arrival
    departure = departing.best_departure
    if arrival is None or departure is None:
        return None

    minutes = round((departure - arrival).total_seconds() / 60)
    if not 0 < minutes <= MAX_CONNECTION_MINUTES:
        return None

    terminal_change = _terminal_change(arriving, departing)
    tier = classify_risk(minutes, terminal_change)
    return Connection(
        from_flight=arriving.flight_number,
        to_flight=departing.flight_number,
        layover_airport=arriving.arrival_airport,
        connection_minutes=minutes,
        terminal_change=terminal_change,
        from_terminal=arriving.terminal_destination,
        to_terminal=departing.terminal_origin,
        from_gate=arriving.gate_destination,
        to_gate=departing.gate_origin,
        risk_tier=tier,
        risk_message=risk_message(minutes, terminal_change, tier),
    )


def _departure_key(flight: FlightSnapshot) -> tuple[int, float]:
    departure = flight.planned_departure
    return (0, departure.timestamp()) if departure is not None else (1, 0.0)


def analyze_connections(flights: list[FlightSnapshot]) -> list[Connection]:
    """Connections between consecutive flights, ordered by departure."""
    ordered = sorted(flights, key=_departure_key)
    connections: list[Connection] = []
    for arriving, departing in zip(ordered, ordered[1:]):
        connection = build_connection(arriving, departing)
        if connection is not None:
            connections.append(connection)
    return connections


def find_relevant_connection(
    connections: list[Connection], flight_number: str
) -> Connection | None:
    """The connection touching ``flight_number``, preferring the one it arrives into."""
    for connection in connections:
        if connection.from_flight == flight_number:
            return connection
    for connection in connections:
        if connection.to_flight == flight_number:
            return connection
    return None
