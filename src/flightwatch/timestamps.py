"""ISO-8601 timestamp helpers shared by the provider adapter, differ and formatters."""

from __future__ import annotations

from datetime import datetime, timezone

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO timestamp (``Z`` suffix allowed) into an aware UTC datetime.

    Returns None for None, empty strings, non-string values and unparseable input.
    """
    if isinstance(value, datetime):
        dt = value
    elif not isinstance(value, str) or not value.strip():
        return None
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Format as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(ISO_FORMAT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Signed hours from ``start`` to ``end``."""
    return (end - start).total_seconds() / 3600.0
