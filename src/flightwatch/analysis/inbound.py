"""Inbound aircraft tracking: when to poll the previous leg and when to alert.

The aircraft operating a flight usually arrives on an earlier leg. A late
inbound is the earliest warning of a departure delay, so in the last hours
before departure the previous leg is checked on every tick.
"""

from __future__ import annotations

import logging
from datetime import datetime

from flightwatch.models import (
    FlightSnapshot,
    InboundAlertState,
    InboundLegInfo,
    InboundStatus,
)
from flightwatch.timestamps import hours_between

logger = logging.getLogger(__name__)

INBOUND_POLL_HOURS = 5.0
DELAY_ALERT_MINUTES = 30
DELAY_REALERT_STEP_MINUTES = 15


def should_poll_inbound(departure: datetime | None, now: datetime) -> bool:
    """True iff departure is in the future and at most five hours away."""
    if departure is None:
        return False
    hours = hours_between(now, departure)
    return 0 < hours <= INBOUND_POLL_HOURS


def should_alert_delay(current_delay_minutes: int, last_alerted_minutes: int | None) -> bool:
    """Alert on a delay of 30+ minutes, then again only once it worsens by 15+."""
    if current_delay_minutes < DELAY_ALERT_MINUTES:
        return False
    if last_alerted_minutes is None:
        return True
    return current_delay_minutes - last_alerted_minutes >= DELAY_REALERT_STEP_MINUTES


def should_alert_landed(
    current_status: InboundStatus | str,
    previous_status: InboundStatus | str | None,
) -> bool:
    """Edge-triggered: fires on the first tick that sees the leg landed."""
    landed = InboundStatus.LANDED.value
    current = current_status.value if isinstance(current_status, InboundStatus) else current_status
    previous = previous_status.value if isinstance(previous_status, InboundStatus) else previous_status
    return current == landed and previous != landed


def normalize_inbound_status(
    status: str | None,
    actual_departure: datetime | None = None,
    actual_arrival: datetime | None = None,
) -> InboundStatus:
    text = (status or "").lower()
    if "landed" in text or "arrived" in text or actual_arrival is not None:
        return InboundStatus.LANDED
    if "en route" in text or "in air" in text or actual_departure is not None:
        return InboundStatus.IN_FLIGHT
    if "scheduled" in text:
        return InboundStatus.SCHEDULED
    return InboundStatus.UNKNOWN


def compute_delay_minutes(
    scheduled_arrival: datetime | None,
    estimated_arrival: datetime | None,
    actual_arrival: datetime | None,
) -> int:
    """Minutes late versus schedule, clamped at zero."""
    best = actual_arrival or estimated_arrival
    if scheduled_arrival is None or best is None:
        return 0
    minutes = round((best - scheduled_arrival).total_seconds() / 60)
    return max(0, minutes)


def build_inbound_info(inbound: FlightSnapshot) -> InboundLegInfo:
    """Summarize the previous leg's snapshot."""
    return InboundLegInfo(
        flight_number=inbound.flight_number,
        fa_flight_id=inbound.fa_flight_id,
        origin=inbound.departure_airport,
        origin_city=inbound.departure_city,
        status=normalize_inbound_status(
            inbound.status, inbound.actual_departure, inbound.actual_arrival
        ),
        raw_status=inbound.status,
        scheduled_arrival=inbound.scheduled_arrival,
        estimated_arrival=inbound.estimated_arrival,
        actual_arrival=inbound.actual_arrival,
        delay_minutes=compute_delay_minutes(
            inbound.scheduled_arrival, inbound.estimated_arrival, inbound.actual_arrival
        ),
    )


def evaluate_inbound(
    info: InboundLegInfo, state: InboundAlertState
) -> tuple[str | None, InboundAlertState]:
    """Decide which inbound alert (if any) is due and the state to persist.

    Returns ``("inbound-landed" | "inbound-delay" | None, new_state)``. A
    landing suppresses the delay alert on the same tick.
    """
    if should_alert_landed(info.status, state.last_status):
        logger.info("Inbound %s landed", info.flight_number)
        return "inbound-landed", InboundAlertState(
            last_alerted_delay_minutes=state.last_alerted_delay_minutes,
            last_status=info.status,
        )

    # an Unknown reading must not erase a known Landed, or the alert would repeat
    status = state.last_status if info.status == InboundStatus.UNKNOWN else info.status

    if info.status != InboundStatus.LANDED and should_alert_delay(
        info.delay_minutes, state.last_alerted_delay_minutes
    ):
        logger.info("Inbound %s delayed %d min", info.flight_number, info.delay_minutes)
        return "inbound-delay", InboundAlertState(
            last_alerted_delay_minutes=info.delay_minutes,
            last_status=status,
        )

    return None, InboundAlertState(
        last_alerted_delay_minutes=state.last_alerted_delay_minutes,
        last_status=status,
    )
