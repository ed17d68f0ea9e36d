"""Tests for inbound aircraft polling and alert policy."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from flightwatch.analysis.inbound import (
    build_inbound_info,
    compute_delay_minutes,
    evaluate_inbound,
    normalize_inbound_status,
    should_alert_delay,
    should_alert_landed,
    should_poll_inbound,
)
from flightwatch.models import InboundAlertState, InboundLegInfo, InboundStatus

NOW = datetime(2026, 1, 22, 6, 0, tzinfo=timezone.utc)
SCHEDULED = datetime(2026, 1, 22, 8, 0, tzinfo=timezone.utc)


class TestShouldPoll:
    @pytest.mark.parametrize("hours,expected", [
        (6, False),
        (5, True),
        (2, True),
        (0.01, True),
        (0, False),
        (-1, False),
    ])
    def test_five_hour_window(self, hours, expected):
        assert should_poll_inbound(NOW + timedelta(hours=hours), NOW) is expected

    def test_unknown_departure(self):
        assert should_poll_inbound(None, NOW) is False


class TestShouldAlertDelay:
    def test_below_threshold(self):
        assert should_alert_delay(29, None) is False

    def test_first_alert_at_threshold(self):
        assert should_alert_delay(30, None) is True

    def test_not_worse_enough(self):
        assert should_alert_delay(44, 30) is False

    def test_worsened_by_step(self):
        assert should_alert_delay(45, 30) is True

    def test_improved_delay_stays_quiet(self):
        assert should_alert_delay(35, 60) is False


class TestShouldAlertLanded:
    def test_transition_to_landed(self):
        assert should_alert_landed(InboundStatus.LANDED, InboundStatus.IN_FLIGHT) is True

    def test_first_observation_landed(self):
        assert should_alert_landed(InboundStatus.LANDED, None) is True

    def test_already_landed(self):
        assert should_alert_landed(InboundStatus.LANDED, InboundStatus.LANDED) is False

    def test_not_landed(self):
        assert should_alert_landed(InboundStatus.IN_FLIGHT, InboundStatus.SCHEDULED) is False

    def test_accepts_strings(self):
        assert should_alert_landed("Landed", "In Flight") is True


class TestNormalizeStatus:
    @pytest.mark.parametrize("raw,expected", [
        ("Landed / Taxiing", InboundStatus.LANDED),
        ("Arrived / Gate Arrival", InboundStatus.LANDED),
        ("En Route / On Time", InboundStatus.IN_FLIGHT),
        ("Scheduled", InboundStatus.SCHEDULED),
        (None, InboundStatus.UNKNOWN),
        ("Diverted", InboundStatus.UNKNOWN),
    ])
    def test_status_text(self, raw, expected):
        assert normalize_inbound_status(raw) == expected

    def test_actual_times_win(self):
        assert normalize_inbound_status("Scheduled", actual_departure=NOW) == InboundStatus.IN_FLIGHT
        assert normalize_inbound_status(None, NOW, NOW) == InboundStatus.LANDED


class TestDelayMinutes:
    def test_estimated_late(self):
        assert compute_delay_minutes(SCHEDULED, SCHEDULED + timedelta(minutes=42), None) == 42

    def test_actual_preferred(self):
        est = SCHEDULED + timedelta(minutes=40)
        actual = SCHEDULED + timedelta(minutes=55)
        assert compute_delay_minutes(SCHEDULED, est, actual) == 55

    def test_early_clamped(self):
        assert compute_delay_minutes(SCHEDULED, SCHEDULED - timedelta(minutes=10), None) == 0

    def test_missing_times(self):
        assert compute_delay_minutes(None, SCHEDULED, None) == 0
        assert compute_delay_minutes(SCHEDULED, None, None) == 0


def _leg(status: InboundStatus, delay: int) -> InboundLegInfo:
    return InboundLegInfo(flight_number="KL1234", origin="LHR", status=status, delay_minutes=delay)


class TestEvaluateInbound:
    def test_delay_alert_records_delay(self):
        kind, state = evaluate_inbound(_leg(InboundStatus.IN_FLIGHT, 40), InboundAlertState())
        assert kind == "inbound-delay"
        assert state.last_alerted_delay_minutes == 40
        assert state.last_status == InboundStatus.IN_FLIGHT

    def test_small_increase_no_alert(self):
        prior = InboundAlertState(last_alerted_delay_minutes=40, last_status=InboundStatus.IN_FLIGHT)
        kind, state = evaluate_inbound(_leg(InboundStatus.IN_FLIGHT, 50), prior)
        assert kind is None
        assert state.last_alerted_delay_minutes == 40

    def test_landed_suppresses_delay(self):
        prior = InboundAlertState(last_status=InboundStatus.IN_FLIGHT)
        kind, state = evaluate_inbound(_leg(InboundStatus.LANDED, 90), prior)
        assert kind == "inbound-landed"
        assert state.last_status == InboundStatus.LANDED
        assert state.last_alerted_delay_minutes is None

    def test_landed_only_once(self):
        prior = InboundAlertState(last_status=InboundStatus.LANDED)
        kind, _ = evaluate_inbound(_leg(InboundStatus.LANDED, 90), prior)
        assert kind is None

    def test_unknown_keeps_landed(self):
        prior = InboundAlertState(last_status=InboundStatus.LANDED)
        kind, state = evaluate_inbound(_leg(InboundStatus.UNKNOWN, 0), prior)
        assert kind is None
        assert state.last_status == InboundStatus.LANDED

    def test_unknown_delay_reading_keeps_landed(self):
        prior = InboundAlertState(last_status=InboundStatus.LANDED)
        kind, state = evaluate_inbound(_leg(InboundStatus.UNKNOWN, 45), prior)
        assert kind == "inbound-delay"
        assert state.last_status == InboundStatus.LANDED

        again, _ = evaluate_inbound(_leg(InboundStatus.LANDED, 45), state)
        assert again is None


class TestBuildInboundInfo:
    def test_from_snapshot(self, make_snapshot):
        leg = make_snapshot(
            flight_number="KL1234",
            departure_airport="LHR",
            departure_city="London",
            arrival_airport="AMS",
            status="En Route / Delayed",
            scheduled_arrival=SCHEDULED,
            estimated_arrival=SCHEDULED + timedelta(minutes=35),
            actual_departure=SCHEDULED - timedelta(hours=1),
        )
        info = build_inbound_info(leg)
        assert info.flight_number == "KL1234"
        assert info.origin == "LHR"
        assert info.origin_city == "London"
        assert info.status == InboundStatus.IN_FLIGHT
        assert info.raw_status == "En Route / Delayed"
        assert info.delay_minutes == 35
