"""Append-only flight snapshot history: database-backed persistence."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from flightwatch.db.models import FlightSnapshotRow
from flightwatch.models import (
    FlightSnapshot,
    InboundAlertState,
    MilestoneState,
    StoredSnapshot,
)


def _utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# --- Conversion helpers ---


def _row_to_stored(row: FlightSnapshotRow) -> StoredSnapshot:
    return StoredSnapshot(
        id=row.id,
        flight_id=row.flight_id,
        created_at=_utc(row.created_at),
        snapshot=FlightSnapshot.model_validate_json(row.snapshot_json),
        milestones=MilestoneState(fired=json.loads(row.milestones_json)),
        inbound=InboundAlertState.model_validate_json(row.inbound_json),
    )


class SqlSnapshotStore:
    """Snapshot history in the ``flight_snapshots`` table.

    The caller owns the session and its transaction boundaries.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_latest(self, flight_id: str) -> StoredSnapshot | None:
        """Most recently appended snapshot for a flight, or None."""
        stmt = (
            select(FlightSnapshotRow)
            .where(FlightSnapshotRow.flight_id == flight_id)
            .order_by(FlightSnapshotRow.created_at.desc(), FlightSnapshotRow.id.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalars().first()
        return _row_to_stored(row) if row is not None else None

    def append(
        self,
        flight_id: str,
        snapshot: FlightSnapshot,
        milestones: MilestoneState,
        inbound: InboundAlertState | None = None,
    ) -> StoredSnapshot:
        row = FlightSnapshotRow(
            flight_id=flight_id,
            flight_number=snapshot.flight_number,
            date=snapshot.date,
            created_at=snapshot.fetched_at or datetime.now(timezone.utc),
            status=snapshot.status,
            snapshot_json=snapshot.model_dump_json(),
            milestones_json=json.dumps([tag.value for tag in milestones.fired]),
            inbound_json=(inbound or InboundAlertState()).model_dump_json(),
        )
        self.session.add(row)
        self.session.flush()
        return _row_to_stored(row)

    def history(self, flight_id: str, limit: int | None = None) -> list[StoredSnapshot]:
        """Snapshots for a flight, oldest first."""
        stmt = (
            select(FlightSnapshotRow)
            .where(FlightSnapshotRow.flight_id == flight_id)
            .order_by(FlightSnapshotRow.created_at.asc(), FlightSnapshotRow.id.asc())
        )
        rows = self.session.execute(stmt).scalars().all()
        if limit is not None:
            rows = rows[-limit:]
        return [_row_to_stored(r) for r in rows]

    def latest_snapshots(self, flight_ids: list[str]) -> dict[str, FlightSnapshot]:
        """Latest snapshot per flight id; ids with no history are left out."""
        result = {}
        for flight_id in flight_ids:
            stored = self.get_latest(flight_id)
            if stored is not None:
                result[flight_id] = stored.snapshot
        return result
