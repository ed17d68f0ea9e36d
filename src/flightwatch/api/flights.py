"""API endpoints for flight status and monitoring ticks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from flightwatch.api.deps import get_provider, get_sender, get_settings
from flightwatch.db.deps import get_db
from flightwatch.fetch.airlines import normalize_flight_number
from flightwatch.monitor import run_tick
from flightwatch.runtime import build_monitor_deps
from flightwatch.schedule.planner import interval_to_rate_expression
from flightwatch.storage.schedules import SqlScheduleStore
from flightwatch.storage.snapshots import SqlSnapshotStore

router = APIRouter(prefix="/flights", tags=["flights"])


class PhaseResponse(BaseModel):
    start: str
    end: str
    interval: str
    rate: str
    window: str


class FlightStatusResponse(BaseModel):
    """Latest stored status for a flight."""

    flight_id: str
    snapshot: dict
    milestones_fired: list[str]
    fetched_at: str
    phases: list[PhaseResponse] = []


class TickResponse(BaseModel):
    flight_id: str
    status: str | None = None
    changes: dict[str, dict] = {}
    milestones: list[str] = []
    events: list[str] = []
    replanned: bool = False
    errors: list[str] = []


@router.get("/{flight_number}/{flight_date}", response_model=FlightStatusResponse)
def get_flight_status(
    flight_number: str,
    flight_date: str,
    db: Session = Depends(get_db),
):
    """Latest snapshot, fired milestones and polling plan."""
    flight_id = f"{normalize_flight_number(flight_number)}#{flight_date}"
    stored = SqlSnapshotStore(db).get_latest(flight_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"No status for '{flight_id}'")
    phases = SqlScheduleStore(db).list_phases(flight_id)
    return FlightStatusResponse(
        flight_id=flight_id,
        snapshot=stored.snapshot.model_dump(mode="json"),
        milestones_fired=[t.value for t in stored.milestones.fired],
        fetched_at=stored.created_at.isoformat(),
        phases=[
            PhaseResponse(
                start=p.start.isoformat(),
                end=p.end.isoformat(),
                interval=p.interval,
                rate=interval_to_rate_expression(p.interval),
                window=p.window,
            )
            for p in phases
        ],
    )


@router.post("/{flight_number}/{flight_date}/tick", response_model=TickResponse)
def tick_flight(
    flight_number: str,
    flight_date: str,
    db: Session = Depends(get_db),
    settings=Depends(get_settings),
    provider=Depends(get_provider),
    sender=Depends(get_sender),
):
    """Run one monitoring tick; called by the scheduler for each active phase."""
    flight_number = normalize_flight_number(flight_number)
    deps = build_monitor_deps(db, settings, provider=provider, sender=sender)
    result = run_tick(flight_number, flight_date, deps)
    if result.provider_failed:
        raise HTTPException(status_code=502, detail="; ".join(result.errors))
    if not result.trackable:
        raise HTTPException(status_code=404, detail="; ".join(result.errors))
    return TickResponse(
        flight_id=result.flight_id,
        status=result.snapshot.status if result.snapshot else None,
        changes={k: v.model_dump(mode="json") for k, v in result.changes.items()},
        milestones=[m.tag.value for m in result.milestones],
        events=[e.kind for e in result.events],
        replanned=result.replanned is not None,
        errors=result.errors,
    )
