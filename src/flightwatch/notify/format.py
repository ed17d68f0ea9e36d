"""Timezone-aware time and duration formatting for traveler messages."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flightwatch.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

TBD = "TBD"


def _zone(tz_name: str | None) -> tzinfo:
    if not tz_name:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.debug("Unknown timezone %r, formatting in UTC", tz_name)
        return timezone.utc


def _local(value: str | datetime | None, tz_name: str | None) -> datetime | None:
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(_zone(tz_name))


def format_time(value: str | datetime | None, tz_name: str | None = None) -> str:
    """``"09:30 AM EST"``; UTC when no zone is given, ``"TBD"`` when missing."""
    local = _local(value, tz_name)
    if local is None:
        return TBD
    return local.strftime("%I:%M %p %Z")


def format_datetime(value: str | datetime | None, tz_name: str | None = None) -> str:
    """``"Wed, Jan 15 09:30 AM EST"``, or ``"TBD"``."""
    local = _local(value, tz_name)
    if local is None:
        return TBD
    return local.strftime("%a, %b %d %I:%M %p %Z")


def _hours_minutes(total_minutes: int) -> tuple[int, int]:
    return divmod(abs(total_minutes), 60)


def format_time_diff(old: str | datetime | None, new: str | datetime | None) -> str:
    """Signed difference: ``"+45m"``, ``"-1h 30m"``, ``"+2h"``, ``"no change"``.

    Empty string when either side is missing.
    """
    old_dt = parse_timestamp(old)
    new_dt = parse_timestamp(new)
    if old_dt is None or new_dt is None:
        return ""
    minutes = round((new_dt - old_dt).total_seconds() / 60)
    if minutes == 0:
        return "no change"
    sign = "+" if minutes > 0 else "-"
    hours, mins = _hours_minutes(minutes)
    if hours == 0:
        return f"{sign}{mins}m"
    if mins == 0:
        return f"{sign}{hours}h"
    return f"{sign}{hours}h {mins}m"


def format_duration(minutes: int) -> str:
    """Layover length: ``"2h 0m"``, or ``"45m"`` under an hour."""
    hours, mins = _hours_minutes(minutes)
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins}m"


def format_delay(minutes: int) -> str:
    """Delay length: ``"45 minutes"``, or ``"2h 30m"`` above an hour."""
    if minutes <= 60:
        return f"{minutes} minutes"
    hours, mins = _hours_minutes(minutes)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
