"""Event publishing between the monitor and notification dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from flightwatch.errors import NotificationError
from flightwatch.models import UpdateEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[UpdateEvent], object]


class EventPublisher(Protocol):
    """At-least-once event sink. ``publish`` raises when the event was not delivered."""

    def publish(self, event: UpdateEvent) -> None: ...


class InMemoryEventBus:
    """Synchronous in-process bus. Keeps every published event for inspection.

    Every handler runs even if an earlier one fails. Failures are then raised
    together as a NotificationError so the caller can retry the event.
    """

    def __init__(self) -> None:
        self.published: list[UpdateEvent] = []
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: UpdateEvent) -> None:
        self.published.append(event)
        logger.info("Published %s event for %s", event.kind, event.flight_id)
        failures: list[Exception] = []
        for handler in self._handlers:
            try:
                handler(event)
            except Exception as exc:
                logger.warning(
                    "Handler failed for %s event on %s", event.kind, event.flight_id,
                    exc_info=True,
                )
                failures.append(exc)
        if failures:
            raise NotificationError(
                f"{len(failures)} handler(s) failed for {event.kind} on {event.flight_id}"
            ) from failures[0]
