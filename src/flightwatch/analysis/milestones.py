"""Time-triggered lifecycle milestones.

Windows are wide enough that coarse polling far from departure cannot skip
one between two consecutive polls. Each window is evaluated independently,
so a long gap between polls can make several milestones due at once.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from flightwatch.models import Milestone, MilestoneTag
from flightwatch.timestamps import hours_between

# tag -> (lower, upper, lower_inclusive) in hours to departure; upper is inclusive
DEPARTURE_WINDOWS: dict[MilestoneTag, tuple[float, float, bool]] = {
    MilestoneTag.CHECKIN: (23.5, 24.5, True),
    MilestoneTag.H24: (12.0, 24.0, False),
    MilestoneTag.H12: (4.0, 12.0, False),
    MilestoneTag.H4: (0.6, 4.0, False),
    MilestoneTag.BOARDING: (0.0, 0.6, False),
}

PRE_LANDING_HOURS = 1.1


def _in_window(hours: float, lower: float, upper: float, lower_inclusive: bool) -> bool:
    if hours > upper:
        return False
    return hours >= lower if lower_inclusive else hours > lower


def detect_milestones(
    departure: datetime | None,
    arrival: datetime | None,
    already_fired: Iterable[MilestoneTag | str],
    now: datetime,
) -> list[Milestone]:
    """Milestones newly due at ``now``, most urgent first.

    No milestone fires without a departure time. Pre-landing is only
    considered once the flight is past departure and arrival is known.
    """
    if departure is None:
        return []
    fired = {MilestoneTag(tag) for tag in already_fired}
    hours_to_departure = hours_between(now, departure)

    due: list[Milestone] = []
    for tag, (lower, upper, lower_inclusive) in DEPARTURE_WINDOWS.items():
        if tag in fired:
            continue
        if _in_window(hours_to_departure, lower, upper, lower_inclusive):
            due.append(Milestone(tag=tag, hours_remaining=round(hours_to_departure, 2)))

    if hours_to_departure < 0 and arrival is not None and MilestoneTag.PRE_LANDING not in fired:
        hours_to_arrival = hours_between(now, arrival)
        if 0 < hours_to_arrival <= PRE_LANDING_HOURS:
            due.append(Milestone(tag=MilestoneTag.PRE_LANDING, hours_remaining=round(hours_to_arrival, 2)))

    return sorted(due, key=lambda m: m.tag.rank)
