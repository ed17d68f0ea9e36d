"""Field-level diff between two flight status snapshots."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from flightwatch.fetch.normalize import provider_fields
from flightwatch.models import MONITORED_FIELDS, TIMESTAMP_FIELDS, ChangeSet, FieldChange, FlightSnapshot
from flightwatch.timestamps import parse_timestamp, to_iso


def _canonical(field: str, value: Any) -> Any:
    """Comparable form of a field value; None means absent."""
    if value is None or value == "":
        return None
    if field in TIMESTAMP_FIELDS:
        # malformed timestamps compare as absent
        return to_iso(parse_timestamp(value))
    if isinstance(value, datetime):
        return to_iso(value)
    return value


def snapshot_fields(snapshot: FlightSnapshot) -> dict[str, Any]:
    """Monitored fields of a snapshot in canonical (JSON-friendly) form."""
    return {field: _canonical(field, getattr(snapshot, field)) for field in MONITORED_FIELDS}


def normalize_fields(raw: Any) -> dict[str, Any]:
    """Monitored fields of a raw provider response or an already-normalized mapping."""
    if isinstance(raw, FlightSnapshot):
        return snapshot_fields(raw)
    fields = provider_fields(raw)
    return {field: _canonical(field, fields.get(field)) for field in MONITORED_FIELDS}


def diff_fields(previous: Mapping[str, Any], current: Mapping[str, Any]) -> ChangeSet:
    """Compare two canonical field mappings.

    Both-absent is not a change; absent to present (and back) is.
    Equality is exact, with no tolerance on timestamps.
    """
    changes: ChangeSet = {}
    for field in MONITORED_FIELDS:
        old = _canonical(field, previous.get(field))
        new = _canonical(field, current.get(field))
        if old is None and new is None:
            continue
        if old != new:
            changes[field] = FieldChange(old=old, new=new)
    return changes


def diff(previous: Mapping[str, Any] | FlightSnapshot | None, raw_next: Any) -> ChangeSet:
    """Diff stored fields against a freshly fetched provider response.

    Returns an empty change set when there is no previous record.
    """
    if previous is None:
        return {}
    prev = normalize_fields(previous)
    return diff_fields(prev, normalize_fields(raw_next))


def diff_snapshots(previous: FlightSnapshot | None, current: FlightSnapshot) -> ChangeSet:
    if previous is None:
        return {}
    return diff_fields(snapshot_fields(previous), snapshot_fields(current))
