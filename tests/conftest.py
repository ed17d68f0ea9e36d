"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from flightwatch.db.models import Base
from flightwatch.models import FlightSnapshot

DEPARTURE = datetime(2026, 1, 22, 10, 0, tzinfo=timezone.utc)
ARRIVAL = datetime(2026, 1, 22, 19, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine for tests."""
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Yield a SQLAlchemy session per test, rolled back after."""
    session = sessionmaker(bind=db_engine)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def make_snapshot():
    """Factory for KL880 AMS → BOM snapshots; keyword arguments override fields."""

    def _make(**overrides) -> FlightSnapshot:
        fields = dict(
            flight_number="KL880",
            date="2026-01-22",
            fa_flight_id="KLM880-1768900000-schedule-0001",
            fetched_at=datetime(2026, 1, 21, 12, 0, tzinfo=timezone.utc),
            departure_airport="AMS",
            arrival_airport="BOM",
            departure_city="Amsterdam",
            arrival_city="Mumbai",
            departure_timezone="Europe/Amsterdam",
            arrival_timezone="Asia/Kolkata",
            scheduled_departure=DEPARTURE,
            scheduled_arrival=ARRIVAL,
            status="Scheduled",
            gate_origin="D7",
            terminal_origin="2",
        )
        fields.update(overrides)
        return FlightSnapshot(**fields)

    return _make


@pytest.fixture
def sample_snapshot(make_snapshot):
    return make_snapshot()


@pytest.fixture
def aeroapi_record():
    """One AeroAPI ``/flights/{ident}`` record, trimmed to the fields we read."""
    return {
        "ident": "KLM880",
        "ident_iata": "KL880",
        "fa_flight_id": "KLM880-1768900000-schedule-0001",
        "inbound_fa_flight_id": "KLM1234-1768800000-schedule-0002",
        "status": "Scheduled",
        "cancelled": False,
        "origin": {
            "code": "EHAM",
            "code_icao": "EHAM",
            "code_iata": "AMS",
            "timezone": "Europe/Amsterdam",
            "name": "Amsterdam Schiphol",
            "city": "Amsterdam",
        },
        "destination": {
            "code": "VABB",
            "code_icao": "VABB",
            "code_iata": "BOM",
            "timezone": "Asia/Kolkata",
            "name": "Chhatrapati Shivaji Int'l",
            "city": "Mumbai",
        },
        "scheduled_out": "2026-01-22T10:00:00Z",
        "estimated_out": "2026-01-22T10:00:00Z",
        "actual_out": None,
        "scheduled_in": "2026-01-22T19:00:00Z",
        "estimated_in": "2026-01-22T19:00:00Z",
        "actual_in": None,
        "gate_origin": "D7",
        "gate_destination": None,
        "terminal_origin": "2",
        "terminal_destination": "2",
        "baggage_claim": None,
    }
