"""CLI entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date

from dotenv import load_dotenv

from flightwatch.config import load_settings
from flightwatch.db.engine import SessionLocal, get_engine, init_db
from flightwatch.errors import FlightNotTrackableError
from flightwatch.fetch.airlines import normalize_flight_number
from flightwatch.monitor import run_tick
from flightwatch.runtime import build_monitor_deps, build_provider
from flightwatch.schedule.planner import interval_to_rate_expression, plan_phases, schedule_name
from flightwatch.storage.schedules import SqlScheduleStore
from flightwatch.storage.snapshots import SqlSnapshotStore
from flightwatch.storage.users import get_user, new_user, save_user
from flightwatch.timestamps import parse_timestamp, utcnow
from flightwatch.tracking import activate_pending, start_tracking, subscribe

logger = logging.getLogger(__name__)


def _validate_date(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError("date must be YYYY-MM-DD") from None
    return value


def _print_phases(flight_number: str, flight_date: str, phases) -> None:
    if not phases:
        print("  No phases (flight window has elapsed)")
        return
    for p in phases:
        print(
            f"  {p.start:%Y-%m-%d %H:%MZ} → {p.end:%Y-%m-%d %H:%MZ}  "
            f"{interval_to_rate_expression(p.interval):<18} {p.window}"
        )
        print(f"      {schedule_name(flight_number, flight_date, p.interval, p.window)}")


def cmd_plan(args: argparse.Namespace) -> None:
    """Print the polling plan without touching the database."""
    departure = parse_timestamp(args.departure)
    arrival = parse_timestamp(args.arrival)
    if departure is None:
        snapshot = build_provider(load_settings()).get_snapshot(args.flight, args.date)
        if snapshot is None or snapshot.planned_departure is None:
            print(f"Error: {args.flight} on {args.date} not found; pass --departure.")
            sys.exit(1)
        departure = snapshot.planned_departure
        arrival = arrival or snapshot.planned_arrival
    _print_phases(args.flight, args.date, plan_phases(departure, arrival, utcnow()))


def cmd_track(args: argparse.Namespace) -> None:
    settings = load_settings()
    with SessionLocal() as session:
        try:
            plan = start_tracking(
                args.flight, args.date, build_provider(settings), SqlScheduleStore(session)
            )
        except FlightNotTrackableError as exc:
            print(f"Error: {exc}")
            sys.exit(1)
        session.commit()
    print(f"Tracking {plan.snapshot.flight_id}: {plan.snapshot.status or 'status unknown'}")
    _print_phases(args.flight, args.date, plan.phases)


def cmd_tick(args: argparse.Namespace) -> None:
    settings = load_settings()
    with SessionLocal() as session:
        result = run_tick(args.flight, args.date, build_monitor_deps(session, settings))
        session.commit()
    if not result.trackable:
        print(f"Not trackable: {'; '.join(result.errors)}")
        sys.exit(1)
    print(f"{result.flight_id}: {result.snapshot.status or 'status unknown'}")
    for name, change in result.changes.items():
        print(f"  {name}: {change.old} → {change.new}")
    for event in result.events:
        print(f"  event: {event.kind}")
    for err in result.errors:
        print(f"  warning: {err}")


def cmd_status(args: argparse.Namespace) -> None:
    flight_id = f"{args.flight}#{args.date}"
    with SessionLocal() as session:
        snapshots = SqlSnapshotStore(session)
        schedules = SqlScheduleStore(session)
        stored = snapshots.get_latest(flight_id)
        history = snapshots.history(flight_id, limit=args.history) if args.history else []
        phases = schedules.list_phases(flight_id)
        active = schedules.active_phase(flight_id, utcnow())
    if stored is None:
        print(f"No snapshots for {flight_id}")
        sys.exit(1)
    snap = stored.snapshot
    print(f"{flight_id}  {snap.departure_airport} → {snap.arrival_airport}")
    print(f"  Status:     {snap.status}")
    print(f"  Departure:  {snap.best_departure}")
    print(f"  Arrival:    {snap.best_arrival}")
    print(f"  Milestones: {', '.join(t.value for t in stored.milestones.fired) or 'none'}")
    if active is not None:
        print(f"  Polling:    {interval_to_rate_expression(active.interval)} ({active.window})")
    else:
        print("  Polling:    idle")
    _print_phases(args.flight, args.date, phases)
    if history:
        print(f"  Last {len(history)} fetches:")
        for h in history:
            snap = h.snapshot
            print(
                f"    {h.created_at:%Y-%m-%d %H:%MZ}  {snap.status or '?':<12} "
                f"gate {snap.gate_origin or 'TBD'}"
            )


def cmd_register(args: argparse.Namespace) -> None:
    with SessionLocal() as session:
        try:
            existing = get_user(session, args.phone)
        except KeyError:
            existing = None
        if existing is not None:
            print(f"Error: {existing.phone} is already registered to {existing.name}")
            sys.exit(1)
        user = new_user(args.name, args.phone)
        save_user(session, user)
        session.commit()
    print(f"Registered {user.name} ({user.phone}): {user.id}")


def cmd_subscribe(args: argparse.Namespace) -> None:
    settings = load_settings()
    with SessionLocal() as session:
        sub = subscribe(
            session, build_provider(settings), SqlScheduleStore(session),
            args.phone, args.flight, args.date,
        )
        session.commit()
    print(f"{sub.phone} → {sub.flight_id}: {sub.status.value}")


def cmd_activate(args: argparse.Namespace) -> None:
    settings = load_settings()
    with SessionLocal() as session:
        results = activate_pending(session, build_provider(settings), SqlScheduleStore(session))
        session.commit()
    for r in results:
        state = "activated" if r.activated else f"pending ({r.reason})"
        print(f"  {r.phone} {r.flight_number} {r.date}: {state}")


def main() -> None:
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="flightwatch",
        description="Flight status monitoring with milestone, delay and connection alerts",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def _flight_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("flight", type=normalize_flight_number, help="Flight number, e.g. KL880")
        p.add_argument("date", type=_validate_date, help="Departure date (YYYY-MM-DD)")

    plan_parser = subparsers.add_parser("plan", help="Show the polling plan for a flight")
    _flight_args(plan_parser)
    plan_parser.add_argument("--departure", help="Departure time (ISO, UTC); looked up if omitted")
    plan_parser.add_argument("--arrival", help="Arrival time (ISO, UTC)")

    _flight_args(subparsers.add_parser("track", help="Start tracking a flight"))
    _flight_args(subparsers.add_parser("tick", help="Run one monitoring tick"))
    status_parser = subparsers.add_parser("status", help="Show stored status and plan")
    _flight_args(status_parser)
    status_parser.add_argument(
        "--history", type=int, default=0, metavar="N", help="Also list the last N fetches"
    )

    register_parser = subparsers.add_parser("register", help="Create a traveler profile")
    register_parser.add_argument("phone", help="Phone number (E.164)")
    register_parser.add_argument("name", help="Traveler name")

    sub_parser = subparsers.add_parser("subscribe", help="Subscribe a phone number to a flight")
    sub_parser.add_argument("phone", help="Phone number (E.164)")
    _flight_args(sub_parser)

    subparsers.add_parser("activate", help="Retry pending subscriptions")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    if args.command != "plan":
        init_db(get_engine())

    commands = {
        "plan": cmd_plan,
        "track": cmd_track,
        "tick": cmd_tick,
        "status": cmd_status,
        "register": cmd_register,
        "subscribe": cmd_subscribe,
        "activate": cmd_activate,
    }
    commands[args.command](args)
