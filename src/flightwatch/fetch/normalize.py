"""Reduce raw provider flight records to canonical FlightSnapshot fields."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flightwatch.models import FlightSnapshot
from flightwatch.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

# canonical field -> provider record key
PROVIDER_TIME_FIELDS: dict[str, str] = {
    "scheduled_departure": "scheduled_out",
    "estimated_departure": "estimated_out",
    "actual_departure": "actual_out",
    "scheduled_arrival": "scheduled_in",
    "estimated_arrival": "estimated_in",
    "actual_arrival": "actual_in",
}

PROVIDER_TEXT_FIELDS: tuple[str, ...] = (
    "status",
    "gate_origin",
    "gate_destination",
    "terminal_origin",
    "terminal_destination",
    "baggage_claim",
)


def unwrap_record(data: Any) -> Mapping[str, Any] | None:
    """Return the primary flight record from a provider response.

    Accepts a bare record, a ``{"flights": [...]}`` envelope or a list.
    """
    if data is None:
        return None
    if isinstance(data, Mapping) and "flights" in data:
        data = data["flights"]
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, Mapping):
        return data
    return None


def airport_code(airport: Any) -> str | None:
    """Preferred code for a provider airport object: IATA, then ICAO, then generic."""
    if airport is None:
        return None
    if isinstance(airport, str):
        return airport or None
    if isinstance(airport, Mapping):
        for key in ("code_iata", "code_icao", "code"):
            value = airport.get(key)
            if value:
                return value
    return None


def _airport_attr(airport: Any, key: str) -> str | None:
    if isinstance(airport, Mapping):
        return airport.get(key) or None
    return None


def _clean(value: Any) -> Any:
    if value == "":
        return None
    return value


def local_date(value: datetime | None, tz_name: str | None) -> str | None:
    """Calendar date of ``value`` in the IANA zone ``tz_name`` (UTC when unknown)."""
    if value is None:
        return None
    if tz_name:
        try:
            value = value.astimezone(ZoneInfo(tz_name))
        except ZoneInfoNotFoundError:
            logger.debug("Unknown timezone %s, using UTC", tz_name)
    return value.date().isoformat()


def select_flight_for_date(flights: list[Mapping[str, Any]], date: str) -> Mapping[str, Any] | None:
    """Pick the record whose scheduled departure falls on ``date`` at the origin.

    Falls back to the first record when none matches.
    """
    if not flights:
        return None
    for record in flights:
        scheduled = parse_timestamp(record.get("scheduled_out"))
        tz_name = _airport_attr(record.get("origin"), "timezone")
        if local_date(scheduled, tz_name) == date:
            return record
    logger.debug("No record departs on %s; using first of %d", date, len(flights))
    return flights[0]


def to_snapshot(
    data: Any,
    flight_number: str,
    date: str,
    fetched_at: datetime | None = None,
) -> FlightSnapshot:
    """Build a canonical snapshot from a provider record (or envelope)."""
    record = unwrap_record(data) or {}
    origin = record.get("origin")
    destination = record.get("destination")

    fields: dict[str, Any] = {
        "flight_number": flight_number,
        "date": date,
        "fa_flight_id": record.get("fa_flight_id"),
        "fetched_at": fetched_at,
        "departure_airport": airport_code(origin),
        "arrival_airport": airport_code(destination),
        "departure_city": _airport_attr(origin, "city"),
        "arrival_city": _airport_attr(destination, "city"),
        "departure_timezone": _airport_attr(origin, "timezone"),
        "arrival_timezone": _airport_attr(destination, "timezone"),
        "cancelled": bool(record.get("cancelled", False)),
        "inbound_fa_flight_id": record.get("inbound_fa_flight_id") or None,
    }
    for canonical, key in PROVIDER_TIME_FIELDS.items():
        fields[canonical] = parse_timestamp(record.get(key))
    for key in PROVIDER_TEXT_FIELDS:
        fields[key] = _clean(record.get(key))
    return FlightSnapshot(**fields)


def provider_fields(data: Any) -> dict[str, Any]:
    """Map a raw record onto canonical field names without building a snapshot.

    Records already keyed by canonical names pass through unchanged.
    """
    record = unwrap_record(data) or {}
    if not any(key in record for key in PROVIDER_TIME_FIELDS.values()) and "origin" not in record:
        return dict(record)
    fields: dict[str, Any] = {
        "departure_airport": airport_code(record.get("origin")),
        "arrival_airport": airport_code(record.get("destination")),
    }
    for canonical, key in PROVIDER_TIME_FIELDS.items():
        fields[canonical] = record.get(key)
    for key in PROVIDER_TEXT_FIELDS:
        fields[key] = record.get(key)
    return fields
