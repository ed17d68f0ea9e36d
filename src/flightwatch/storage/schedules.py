"""Polling plan persistence, one row per schedule phase."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from flightwatch.db.models import SchedulePhaseRow
from flightwatch.models import SchedulePhase
from flightwatch.schedule.planner import schedule_name

logger = logging.getLogger(__name__)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_phase(row: SchedulePhaseRow) -> SchedulePhase:
    return SchedulePhase(
        start=_utc(row.start),
        end=_utc(row.end),
        interval=row.interval,
        window=row.window,
    )


class SqlScheduleStore:
    """Schedule phases in the ``schedule_phases`` table."""

    def __init__(self, session: Session):
        self.session = session

    def create_phases(self, flight_id: str, phases: list[SchedulePhase]) -> None:
        flight_number, _, date = flight_id.partition("#")
        for phase in phases:
            self.session.add(SchedulePhaseRow(
                flight_id=flight_id,
                name=schedule_name(flight_number, date, phase.interval, phase.window),
                start=phase.start,
                end=phase.end,
                interval=phase.interval,
                window=phase.window,
            ))
        self.session.flush()
        logger.debug("Created %d phases for %s", len(phases), flight_id)

    def delete_phases(self, flight_id: str) -> None:
        # bulk delete runs immediately, so re-created names do not collide
        self.session.execute(
            delete(SchedulePhaseRow).where(SchedulePhaseRow.flight_id == flight_id)
        )
        self.session.flush()

    def list_phases(self, flight_id: str) -> list[SchedulePhase]:
        stmt = (
            select(SchedulePhaseRow)
            .where(SchedulePhaseRow.flight_id == flight_id)
            .order_by(SchedulePhaseRow.start.asc())
        )
        return [_row_to_phase(r) for r in self.session.execute(stmt).scalars().all()]

    def active_phase(self, flight_id: str, now: datetime) -> SchedulePhase | None:
        """The phase covering ``now``, if any."""
        for phase in self.list_phases(flight_id):
            if phase.start <= now < phase.end:
                return phase
        return None
