"""Tests for SQL-backed snapshot, schedule, subscription and user storage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from flightwatch.models import (
    InboundAlertState,
    InboundStatus,
    MilestoneState,
    MilestoneTag,
    SchedulePhase,
    SubscriptionStatus,
)
from flightwatch.schedule.planner import plan_phases
from flightwatch.storage.schedules import SqlScheduleStore
from flightwatch.storage.snapshots import SqlSnapshotStore
from flightwatch.storage.subscriptions import (
    delete_subscription,
    get_subscription,
    list_pending,
    list_subscribers,
    list_subscriptions,
    new_subscription,
    save_subscription,
    set_status,
)
from flightwatch.storage.users import get_user, new_user, save_user

FLIGHT_ID = "KL880#2026-01-22"
DEPARTURE = datetime(2026, 1, 22, 10, 0, tzinfo=timezone.utc)
ARRIVAL = datetime(2026, 1, 22, 19, 0, tzinfo=timezone.utc)


class TestSnapshotStore:
    def test_empty(self, db_session):
        assert SqlSnapshotStore(db_session).get_latest(FLIGHT_ID) is None

    def test_append_and_latest(self, db_session, make_snapshot):
        store = SqlSnapshotStore(db_session)
        store.append(FLIGHT_ID, make_snapshot(gate_origin="D7"), MilestoneState())
        later = make_snapshot(
            gate_origin="E4", fetched_at=datetime(2026, 1, 21, 14, 0, tzinfo=timezone.utc)
        )
        state = MilestoneState(fired=[MilestoneTag.CHECKIN])
        inbound = InboundAlertState(last_alerted_delay_minutes=40, last_status=InboundStatus.IN_FLIGHT)
        store.append(FLIGHT_ID, later, state, inbound)

        latest = store.get_latest(FLIGHT_ID)
        assert latest.snapshot == later
        assert latest.milestones.fired == [MilestoneTag.CHECKIN]
        assert latest.inbound == inbound
        assert latest.created_at == later.fetched_at

    def test_snapshot_round_trip_keeps_utc(self, db_session, sample_snapshot):
        store = SqlSnapshotStore(db_session)
        store.append(FLIGHT_ID, sample_snapshot, MilestoneState())
        stored = store.get_latest(FLIGHT_ID).snapshot
        assert stored.scheduled_departure == DEPARTURE
        assert stored.scheduled_departure.tzinfo is not None

    def test_history_oldest_first(self, db_session, make_snapshot):
        store = SqlSnapshotStore(db_session)
        base = datetime(2026, 1, 21, 0, 0, tzinfo=timezone.utc)
        for hours, gate in ((0, "D1"), (2, "D2"), (4, "D3")):
            store.append(
                FLIGHT_ID,
                make_snapshot(gate_origin=gate, fetched_at=base + timedelta(hours=hours)),
                MilestoneState(),
            )
        history = store.history(FLIGHT_ID)
        assert [h.snapshot.gate_origin for h in history] == ["D1", "D2", "D3"]
        assert [h.snapshot.gate_origin for h in store.history(FLIGHT_ID, limit=2)] == ["D2", "D3"]

    def test_partitioned_by_flight(self, db_session, make_snapshot):
        store = SqlSnapshotStore(db_session)
        store.append(FLIGHT_ID, make_snapshot(), MilestoneState())
        other = make_snapshot(flight_number="AI865")
        store.append(other.flight_id, other, MilestoneState())
        latest = store.latest_snapshots([FLIGHT_ID, "AI865#2026-01-22", "BA1#2026-01-22"])
        assert set(latest) == {FLIGHT_ID, "AI865#2026-01-22"}
        assert latest["AI865#2026-01-22"].flight_number == "AI865"


class TestScheduleStore:
    def test_create_and_list(self, db_session):
        store = SqlScheduleStore(db_session)
        phases = plan_phases(DEPARTURE, ARRIVAL, DEPARTURE - timedelta(hours=48))
        store.create_phases(FLIGHT_ID, phases)
        assert store.list_phases(FLIGHT_ID) == phases

    def test_recreate_after_delete(self, db_session):
        store = SqlScheduleStore(db_session)
        phases = plan_phases(DEPARTURE, ARRIVAL, DEPARTURE - timedelta(hours=48))
        store.create_phases(FLIGHT_ID, phases)
        store.delete_phases(FLIGHT_ID)
        assert store.list_phases(FLIGHT_ID) == []
        # same names again must not collide
        store.create_phases(FLIGHT_ID, phases)
        assert len(store.list_phases(FLIGHT_ID)) == len(phases)

    def test_active_phase(self, db_session):
        store = SqlScheduleStore(db_session)
        now = DEPARTURE - timedelta(hours=48)
        store.create_phases(FLIGHT_ID, plan_phases(DEPARTURE, ARRIVAL, now))
        assert store.active_phase(FLIGHT_ID, DEPARTURE - timedelta(hours=2)).interval == "15m"
        assert store.active_phase(FLIGHT_ID, DEPARTURE - timedelta(hours=18)).interval == "2h"
        assert store.active_phase(FLIGHT_ID, ARRIVAL + timedelta(hours=2)) is None

    def test_delete_only_one_flight(self, db_session):
        store = SqlScheduleStore(db_session)
        phase = SchedulePhase(
            start=DEPARTURE - timedelta(hours=4), end=DEPARTURE, interval="15m", window="0-4h to departure"
        )
        store.create_phases(FLIGHT_ID, [phase])
        store.create_phases("AI865#2026-01-22", [phase])
        store.delete_phases(FLIGHT_ID)
        assert store.list_phases("AI865#2026-01-22") == [phase]


class TestSubscriptions:
    def test_save_and_get(self, db_session):
        save_subscription(db_session, new_subscription("+15551234567", "KL880", "2026-01-22"))
        sub = get_subscription(db_session, "+15551234567", FLIGHT_ID)
        assert sub.status == SubscriptionStatus.PENDING
        assert sub.created_at.tzinfo is not None

    def test_get_missing(self, db_session):
        with pytest.raises(KeyError):
            get_subscription(db_session, "+15551234567", FLIGHT_ID)

    def test_save_is_upsert(self, db_session):
        sub = new_subscription("+15551234567", "KL880", "2026-01-22")
        save_subscription(db_session, sub)
        save_subscription(db_session, sub.model_copy(update={
            "status": SubscriptionStatus.ACTIVE, "fa_flight_id": "KLM880-1",
        }))
        subs = list_subscriptions(db_session, "+15551234567")
        assert len(subs) == 1
        assert subs[0].status == SubscriptionStatus.ACTIVE
        assert subs[0].fa_flight_id == "KLM880-1"

    def test_subscribers_exclude_expired(self, db_session):
        save_subscription(db_session, new_subscription("+15550000001", "KL880", "2026-01-22"))
        save_subscription(db_session, new_subscription("+15550000002", "KL880", "2026-01-22"))
        set_status(db_session, "+15550000002", FLIGHT_ID, SubscriptionStatus.EXPIRED)
        phones = [s.phone for s in list_subscribers(db_session, "KL880", "2026-01-22")]
        assert phones == ["+15550000001"]

    def test_list_pending(self, db_session):
        save_subscription(db_session, new_subscription("+15550000001", "KL880", "2026-01-22"))
        save_subscription(db_session, new_subscription("+15550000001", "AI865", "2026-01-22"))
        set_status(db_session, "+15550000001", FLIGHT_ID, SubscriptionStatus.ACTIVE, fa_flight_id="x")
        assert [s.flight_number for s in list_pending(db_session)] == ["AI865"]
        assert get_subscription(db_session, "+15550000001", FLIGHT_ID).fa_flight_id == "x"

    def test_delete(self, db_session):
        save_subscription(db_session, new_subscription("+15551234567", "KL880", "2026-01-22"))
        delete_subscription(db_session, "+15551234567", FLIGHT_ID)
        assert list_subscriptions(db_session, "+15551234567") == []
        with pytest.raises(KeyError):
            delete_subscription(db_session, "+15551234567", FLIGHT_ID)


class TestUsers:
    def test_save_and_get(self, db_session):
        user = new_user("Priya Shah", "+15551234567")
        save_user(db_session, user)
        loaded = get_user(db_session, "+15551234567")
        assert loaded.id == user.id
        assert loaded.name == "Priya Shah"
        assert loaded.created_at.tzinfo is not None

    def test_missing_raises(self, db_session):
        with pytest.raises(KeyError, match="User not found"):
            get_user(db_session, "+15550000000")

    def test_one_profile_per_phone(self, db_session):
        first = new_user("Priya", "+15551234567")
        save_user(db_session, first)
        save_user(db_session, new_user("Priya Shah", "+15551234567"))
        loaded = get_user(db_session, "+15551234567")
        assert loaded.id == first.id
        assert loaded.name == "Priya Shah"
