"""Construct the collaborators for a tick (used by CLI and API)."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from flightwatch.config import Settings
from flightwatch.dispatch import LogSender, MessageSender, NotificationDispatcher
from flightwatch.events import InMemoryEventBus
from flightwatch.fetch.aeroapi import AeroApiClient
from flightwatch.monitor import MonitorDeps
from flightwatch.notify.email import EmailSender
from flightwatch.notify.whatsapp import TwilioConfig, WhatsAppSender
from flightwatch.storage.schedules import SqlScheduleStore
from flightwatch.storage.snapshots import SqlSnapshotStore

logger = logging.getLogger(__name__)


def build_provider(settings: Settings) -> AeroApiClient:
    return AeroApiClient(
        base_url=settings.provider.base_url,
        timeout=settings.provider.timeout_seconds,
    )


def build_sender(settings: Settings) -> MessageSender:
    """Sender for the configured channel. Raises ValueError if it is not configured."""
    channel = settings.notify.channel
    if channel == "whatsapp":
        return WhatsAppSender(TwilioConfig.from_env())
    if channel == "email":
        return EmailSender()
    return LogSender()


def build_monitor_deps(
    session: Session,
    settings: Settings,
    provider: AeroApiClient | None = None,
    sender: MessageSender | None = None,
) -> MonitorDeps:
    """Wire a tick: SQL stores plus an in-process bus feeding the dispatcher."""
    bus = InMemoryEventBus()
    dispatcher = NotificationDispatcher(session, sender or build_sender(settings))
    bus.subscribe(dispatcher.handle)
    return MonitorDeps(
        provider=provider or build_provider(settings),
        snapshots=SqlSnapshotStore(session),
        publisher=bus,
        schedules=SqlScheduleStore(session),
    )
