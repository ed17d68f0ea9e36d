"""Tests for the per-tick monitor, with in-memory collaborators."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from flightwatch.config import Settings
from flightwatch.errors import NotificationError, ProviderError
from flightwatch.events import InMemoryEventBus
from flightwatch.models import (
    FieldChange,
    InboundAlertState,
    InboundLegInfo,
    InboundStatus,
    Milestone,
    MilestoneState,
    MilestoneTag,
    StoredSnapshot,
)
from flightwatch.monitor import MonitorDeps, build_events, run_tick
from flightwatch.runtime import build_monitor_deps
from flightwatch.storage.snapshots import SqlSnapshotStore
from flightwatch.storage.subscriptions import new_subscription, save_subscription

DEPARTURE = datetime(2026, 1, 22, 10, 0, tzinfo=timezone.utc)
FLIGHT_ID = "KL880#2026-01-22"


class FakeProvider:
    def __init__(self, snapshot=None, inbound=None, error=None, inbound_error=None):
        self.snapshot = snapshot
        self.inbound = inbound
        self.error = error
        self.inbound_error = inbound_error
        self.calls: list[tuple] = []

    def get_snapshot(self, flight_number, date, fa_flight_id=None):
        self.calls.append((flight_number, date, fa_flight_id))
        if self.error:
            raise self.error
        return self.snapshot

    def get_snapshot_by_id(self, fa_flight_id):
        if self.inbound_error:
            raise self.inbound_error
        return self.inbound


class MemorySnapshotStore:
    def __init__(self):
        self.rows: list[StoredSnapshot] = []

    def get_latest(self, flight_id):
        rows = [r for r in self.rows if r.flight_id == flight_id]
        return rows[-1] if rows else None

    def append(self, flight_id, snapshot, milestones, inbound=None):
        stored = StoredSnapshot(
            flight_id=flight_id,
            created_at=snapshot.fetched_at or datetime.now(timezone.utc),
            snapshot=snapshot,
            milestones=milestones,
            inbound=inbound or InboundAlertState(),
        )
        self.rows.append(stored)
        return stored


class MemoryScheduleStore:
    def __init__(self, fail=False):
        self.phases = {}
        self.fail = fail

    def create_phases(self, flight_id, phases):
        self.phases[flight_id] = list(phases)

    def delete_phases(self, flight_id):
        if self.fail:
            raise RuntimeError("scheduler unavailable")
        self.phases.pop(flight_id, None)

    def list_phases(self, flight_id):
        return self.phases.get(flight_id, [])


@pytest.fixture
def store():
    return MemorySnapshotStore()


@pytest.fixture
def bus():
    return InMemoryEventBus()


def _deps(provider, store, bus, schedules=None):
    return MonitorDeps(provider=provider, snapshots=store, publisher=bus, schedules=schedules)


class TestRunTick:
    def test_first_tick_stores_without_events(self, sample_snapshot, store, bus):
        now = DEPARTURE - timedelta(hours=48)
        result = run_tick("KL880", "2026-01-22", _deps(FakeProvider(sample_snapshot), store, bus), now)
        assert result.trackable
        assert result.changes == {}
        assert result.events == []
        assert bus.published == []
        assert store.get_latest(FLIGHT_ID).snapshot == sample_snapshot

    def test_change_event(self, make_snapshot, store, bus):
        now = DEPARTURE - timedelta(hours=48)
        store.append(FLIGHT_ID, make_snapshot(gate_origin="D7"), MilestoneState())
        provider = FakeProvider(make_snapshot(gate_origin="E4"))

        result = run_tick("KL880", "2026-01-22", _deps(provider, store, bus), now)

        assert [e.kind for e in bus.published] == ["change"]
        assert result.changes["gate_origin"] == FieldChange(old="D7", new="E4")

    def test_uses_stored_tracking_id(self, sample_snapshot, store, bus):
        store.append(FLIGHT_ID, sample_snapshot, MilestoneState())
        provider = FakeProvider(sample_snapshot)
        run_tick("KL880", "2026-01-22", _deps(provider, store, bus), DEPARTURE - timedelta(hours=48))
        assert provider.calls == [("KL880", "2026-01-22", sample_snapshot.fa_flight_id)]

    def test_milestone_fires_once(self, sample_snapshot, store, bus):
        deps = _deps(FakeProvider(sample_snapshot), store, bus)
        now = DEPARTURE - timedelta(hours=3)

        first = run_tick("KL880", "2026-01-22", deps, now)
        second = run_tick("KL880", "2026-01-22", deps, now + timedelta(minutes=15))

        assert [m.tag for m in first.milestones] == [MilestoneTag.H4]
        assert second.milestones == []
        assert [e.kind for e in bus.published] == ["milestone"]
        assert store.get_latest(FLIGHT_ID).milestones.fired == [MilestoneTag.H4]

    def test_milestone_with_changes_combined(self, make_snapshot, store, bus):
        store.append(FLIGHT_ID, make_snapshot(gate_origin="D7"), MilestoneState())
        deps = _deps(FakeProvider(make_snapshot(gate_origin="E4")), store, bus)

        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))

        assert [e.kind for e in result.events] == ["combined"]
        assert result.events[0].milestone == MilestoneTag.H4

    def test_cancelled_flight_no_milestones(self, make_snapshot, store, bus):
        deps = _deps(FakeProvider(make_snapshot(cancelled=True)), store, bus)
        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))
        assert result.milestones == []

    def test_not_found(self, store, bus):
        result = run_tick("KL880", "2026-01-22", _deps(FakeProvider(None), store, bus))
        assert result.trackable is False
        assert "not found" in result.errors[0]
        assert store.rows == []

    def test_provider_error(self, store, bus):
        provider = FakeProvider(error=ProviderError("AeroAPI error: 503", status_code=503))
        result = run_tick("KL880", "2026-01-22", _deps(provider, store, bus))
        assert result.trackable is False
        assert "503" in result.errors[0]
        assert result.provider_failed

    def test_fired_milestones_survive_later_ticks(self, sample_snapshot, store, bus):
        store.append(FLIGHT_ID, sample_snapshot, MilestoneState(fired=[MilestoneTag.CHECKIN]))
        deps = _deps(FakeProvider(sample_snapshot), store, bus)
        run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))
        assert set(store.get_latest(FLIGHT_ID).milestones.fired) == {
            MilestoneTag.CHECKIN, MilestoneTag.H4,
        }


class FlakyBus(InMemoryEventBus):
    """Bus whose handler fails for the first ``failures`` events."""

    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures
        self.subscribe(self._handler)

    def _handler(self, event):
        if self.failures > 0:
            self.failures -= 1
            raise NotificationError("Twilio unavailable")


class FailingSender:
    def send(self, recipient, text):
        raise NotificationError(f"Delivery to {recipient} failed")


class TestDeliveryFailures:
    def test_undelivered_milestone_stays_due(self, sample_snapshot, store):
        bus = FlakyBus()
        deps = _deps(FakeProvider(sample_snapshot), store, bus)
        now = DEPARTURE - timedelta(hours=3)

        first = run_tick("KL880", "2026-01-22", deps, now)
        assert [e.kind for e in first.undelivered] == ["milestone"]
        assert any("Publish failed" in e for e in first.errors)
        assert store.get_latest(FLIGHT_ID).milestones.fired == []

        second = run_tick("KL880", "2026-01-22", deps, now + timedelta(minutes=15))
        assert [m.tag for m in second.milestones] == [MilestoneTag.H4]
        assert second.undelivered == []
        assert store.get_latest(FLIGHT_ID).milestones.fired == [MilestoneTag.H4]

    def test_undelivered_change_is_resent(self, make_snapshot, store):
        bus = FlakyBus()
        store.append(FLIGHT_ID, make_snapshot(gate_origin="D7"), MilestoneState())
        deps = _deps(FakeProvider(make_snapshot(gate_origin="E4")), store, bus)
        now = DEPARTURE - timedelta(hours=48)

        run_tick("KL880", "2026-01-22", deps, now)
        assert store.get_latest(FLIGHT_ID).snapshot.gate_origin == "D7"

        second = run_tick("KL880", "2026-01-22", deps, now + timedelta(hours=12))
        assert second.changes["gate_origin"] == FieldChange(old="D7", new="E4")
        assert second.undelivered == []
        assert store.get_latest(FLIGHT_ID).snapshot.gate_origin == "E4"

    def test_undelivered_inbound_alert_is_resent(self, make_snapshot, store):
        snapshot = make_snapshot(inbound_fa_flight_id="KLM1234-1")
        scheduled = DEPARTURE - timedelta(hours=2)
        leg = make_snapshot(
            flight_number="KL1234",
            status="En Route",
            scheduled_arrival=scheduled,
            estimated_arrival=scheduled + timedelta(minutes=40),
        )
        store.append(FLIGHT_ID, snapshot, MilestoneState(fired=[MilestoneTag.H4]))
        deps = _deps(FakeProvider(snapshot, inbound=leg), store, FlakyBus())

        run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))
        assert store.get_latest(FLIGHT_ID).inbound.last_alerted_delay_minutes is None

        second = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=2, minutes=45))
        assert [e.kind for e in second.events] == ["inbound-delay"]
        assert store.get_latest(FLIGHT_ID).inbound.last_alerted_delay_minutes == 40

    def test_failed_send_through_dispatcher(self, db_session, sample_snapshot):
        save_subscription(db_session, new_subscription("+15551234567", "KL880", "2026-01-22"))
        deps = build_monitor_deps(
            db_session, Settings(), provider=FakeProvider(sample_snapshot), sender=FailingSender()
        )

        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))

        assert [e.kind for e in result.undelivered] == ["milestone"]
        assert SqlSnapshotStore(db_session).get_latest(FLIGHT_ID).milestones.fired == []


class TestInboundOnTick:
    @pytest.fixture
    def snapshot(self, make_snapshot):
        return make_snapshot(inbound_fa_flight_id="KLM1234-1")

    @pytest.fixture
    def late_leg(self, make_snapshot):
        scheduled = DEPARTURE - timedelta(hours=2)
        return make_snapshot(
            flight_number="KL1234",
            departure_airport="LHR",
            arrival_airport="AMS",
            status="En Route",
            scheduled_arrival=scheduled,
            estimated_arrival=scheduled + timedelta(minutes=40),
        )

    def test_delay_alert(self, snapshot, late_leg, store, bus):
        store.append(FLIGHT_ID, snapshot, MilestoneState(fired=[MilestoneTag.H4]))
        deps = _deps(FakeProvider(snapshot, inbound=late_leg), store, bus)

        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))

        assert [e.kind for e in result.events] == ["inbound-delay"]
        assert result.inbound.delay_minutes == 40
        assert store.get_latest(FLIGHT_ID).inbound.last_alerted_delay_minutes == 40

    def test_no_repeat_for_same_delay(self, snapshot, late_leg, store, bus):
        store.append(FLIGHT_ID, snapshot, MilestoneState(fired=[MilestoneTag.H4]))
        deps = _deps(FakeProvider(snapshot, inbound=late_leg), store, bus)
        run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=3))
        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=2, minutes=45))
        assert result.events == []

    def test_not_polled_far_from_departure(self, snapshot, late_leg, store, bus):
        deps = _deps(FakeProvider(snapshot, inbound=late_leg), store, bus)
        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=8))
        assert result.inbound is None

    def test_inbound_failure_is_not_fatal(self, snapshot, store, bus):
        provider = FakeProvider(snapshot, inbound_error=ProviderError("timeout"))
        result = run_tick("KL880", "2026-01-22", _deps(provider, store, bus), DEPARTURE - timedelta(hours=3))
        assert result.trackable
        assert any("Inbound" in e for e in result.errors)
        assert store.get_latest(FLIGHT_ID) is not None


class TestScheduleOnTick:
    def test_replans_on_shift(self, make_snapshot, store, bus):
        schedules = MemoryScheduleStore()
        store.append(FLIGHT_ID, make_snapshot(), MilestoneState())
        delayed = make_snapshot(estimated_departure=DEPARTURE + timedelta(hours=1))
        deps = _deps(FakeProvider(delayed), store, bus, schedules)

        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=48))

        assert result.replanned
        assert schedules.list_phases(FLIGHT_ID) == result.replanned

    def test_reconcile_failure_recorded(self, make_snapshot, store, bus):
        store.append(FLIGHT_ID, make_snapshot(), MilestoneState())
        delayed = make_snapshot(estimated_departure=DEPARTURE + timedelta(hours=1))
        deps = _deps(FakeProvider(delayed), store, bus, MemoryScheduleStore(fail=True))

        result = run_tick("KL880", "2026-01-22", deps, DEPARTURE - timedelta(hours=48))

        assert result.replanned is None
        assert any("reconcile" in e for e in result.errors)
        assert len(store.rows) == 2


class TestBuildEvents:
    def test_extra_milestones_sent_separately(self, sample_snapshot):
        milestones = [
            Milestone(tag=MilestoneTag.CHECKIN, hours_remaining=24.0),
            Milestone(tag=MilestoneTag.H24, hours_remaining=24.0),
        ]
        changes = {"gate_origin": FieldChange(old=None, new="D7")}
        events = build_events(sample_snapshot, changes, milestones)
        assert [(e.kind, e.milestone) for e in events] == [
            ("combined", MilestoneTag.H24), ("milestone", MilestoneTag.CHECKIN),
        ]

    def test_inbound_after_flight_events(self, sample_snapshot):
        leg = InboundLegInfo(flight_number="KL1234", status=InboundStatus.LANDED)
        milestones = [Milestone(tag=MilestoneTag.BOARDING, hours_remaining=0.5)]
        events = build_events(sample_snapshot, {}, milestones, "inbound-landed", leg)
        assert [e.kind for e in events] == ["milestone", "inbound-landed"]

    def test_nothing_to_say(self, sample_snapshot):
        assert build_events(sample_snapshot, {}, []) == []
