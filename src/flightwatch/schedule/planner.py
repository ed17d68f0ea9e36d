"""Adaptive polling plan for one flight.

Polling is coarse while departure is far away and tightens as it nears:

    >24h before departure    every 12h
    12-24h                   every 2h
    4-12h                    every 1h
    0-4h                     every 15m
    in flight                every 30m   (departure to arrival - 1h)
    pre-arrival              every 15m   (arrival - 1h to arrival)
    post-arrival             every 15m   (arrival to arrival + 30m)

The last three phases only exist when the arrival time is known.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date as date_cls
from datetime import datetime, timedelta

from flightwatch.models import SchedulePhase

POST_ARRIVAL_TAIL = timedelta(minutes=30)
MIN_LEAD = timedelta(seconds=60)
MAX_SCHEDULE_NAME = 64

RATE_EXPRESSIONS: dict[str, str] = {
    "12h": "rate(12 hours)",
    "2h": "rate(2 hours)",
    "1h": "rate(1 hour)",
    "30m": "rate(30 minutes)",
    "15m": "rate(15 minutes)",
}


def plan_phases(
    departure: datetime,
    arrival: datetime | None,
    now: datetime,
) -> list[SchedulePhase]:
    """Ordered, non-overlapping polling phases from ``now`` onwards.

    Nominal starts already in the past are clamped to ``now`` and phases
    that end up empty are dropped, so a landed flight gets no phases.
    """
    if arrival is None and departure - now < MIN_LEAD:
        return []

    nominal: list[tuple[datetime | None, datetime, str, str]] = [
        (None, departure - timedelta(hours=24), "12h", ">24h to departure"),
        (departure - timedelta(hours=24), departure - timedelta(hours=12), "2h", "12-24h to departure"),
        (departure - timedelta(hours=12), departure - timedelta(hours=4), "1h", "4-12h to departure"),
        (departure - timedelta(hours=4), departure, "15m", "0-4h to departure"),
    ]
    if arrival is not None:
        nominal += [
            (departure, arrival - timedelta(hours=1), "30m", "in-flight"),
            (arrival - timedelta(hours=1), arrival, "15m", "pre-arrival"),
            (arrival, arrival + POST_ARRIVAL_TAIL, "15m", "post-arrival"),
        ]

    phases: list[SchedulePhase] = []
    for index, (start, end, interval, window) in enumerate(nominal):
        start = now if start is None else max(start, now)
        if index >= 4:
            # short flights: arrival - 1h can fall before departure
            start = max(start, departure)
        if start >= end:
            continue
        phases.append(SchedulePhase(start=start, end=end, interval=interval, window=window))
    return phases


def interval_to_rate_expression(interval: str) -> str:
    """Scheduler rate expression for an interval label, e.g. ``"1h"`` -> ``"rate(1 hour)"``."""
    try:
        return RATE_EXPRESSIONS[interval]
    except KeyError:
        raise ValueError(f"Unknown interval: {interval}") from None


def schedule_name(flight_number: str, date: str, interval: str, window: str) -> str:
    """Stable, scheduler-safe name for one phase of one flight.

    >>> schedule_name("KL880", "2026-01-22", "2h", "12-24h to departure")
    'ft-kl880-2026-01-22-2h-12-24h-to-departure'
    """
    flight = re.sub(r"[^A-Za-z0-9]", "", flight_number)
    slug = re.sub(r"[^a-zA-Z0-9-]", "", re.sub(r"\s+", "-", window))
    name = f"ft-{flight}-{date}-{interval}-{slug}".lower()
    if len(name) <= MAX_SCHEDULE_NAME:
        return name
    digest = hashlib.sha1(name.encode()).hexdigest()[:8]
    return f"{name[:MAX_SCHEDULE_NAME - 9]}-{digest}"


def next_day(date: str) -> str:
    """The calendar day after ``date`` (YYYY-MM-DD)."""
    return (date_cls.fromisoformat(date) + timedelta(days=1)).isoformat()
