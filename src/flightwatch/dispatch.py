"""Fan an update event out to every traveler subscribed to the flight.

Each traveler's other subscribed flights are loaded so the message can
carry connection context for their trip.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.orm import Session

from flightwatch.analysis.connections import analyze_connections, find_relevant_connection
from flightwatch.models import Connection, SubscriptionStatus, UpdateEvent
from flightwatch.notify.compose import compose
from flightwatch.storage.snapshots import SqlSnapshotStore
from flightwatch.storage.subscriptions import list_subscribers, list_subscriptions

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    def send(self, recipient: str, text: str) -> object: ...


class LogSender:
    """Development sender: logs messages instead of delivering them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, recipient: str, text: str) -> None:
        self.sent.append((recipient, text))
        logger.info("Message to %s:\n%s", recipient, text)


class NotificationDispatcher:
    """Compose and send one message per subscriber of an event's flight.

    Delivery errors propagate so the caller (bus or job runner) can retry;
    delivery is at-least-once.
    """

    def __init__(self, session: Session, sender: MessageSender):
        self.session = session
        self.sender = sender
        self.snapshots = SqlSnapshotStore(session)

    def trip_connection(self, phone: str, event: UpdateEvent) -> Connection | None:
        """The connection in this traveler's trip that involves the event's flight."""
        others = [
            sub.flight_id
            for sub in list_subscriptions(self.session, phone)
            if sub.status != SubscriptionStatus.EXPIRED and sub.flight_id != event.flight_id
        ]
        if not others:
            return None
        flights = [event.current, *self.snapshots.latest_snapshots(others).values()]
        return find_relevant_connection(analyze_connections(flights), event.flight_number)

    def handle(self, event: UpdateEvent) -> int:
        """Send the event to all subscribers. Returns the number of messages sent."""
        subscribers = list_subscribers(self.session, event.flight_number, event.date)
        logger.info("%d subscribers for %s", len(subscribers), event.flight_id)

        sent = 0
        for sub in subscribers:
            connection = self.trip_connection(sub.phone, event)
            text = compose(event, connection)
            if not text:
                logger.error("Empty %s message for %s", event.kind, event.flight_id)
                continue
            self.sender.send(sub.phone, text)
            sent += 1
        return sent
