"""FastAPI dependencies for settings and external collaborators."""

from __future__ import annotations

import re

from flightwatch.config import Settings, load_settings
from flightwatch.dispatch import MessageSender
from flightwatch.fetch.aeroapi import AeroApiClient
from flightwatch.runtime import build_provider, build_sender

_PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{6,14}$")


def normalize_phone(value: str) -> str:
    """E.164 with a leading '+'. Raises ValueError for anything else."""
    value = value.replace(" ", "")
    if not _PHONE_PATTERN.match(value):
        raise ValueError("phone must be an E.164 number")
    return value if value.startswith("+") else f"+{value}"


def get_settings() -> Settings:
    return load_settings()


def get_provider() -> AeroApiClient:
    """Flight-data provider client (overridden in tests)."""
    return build_provider(load_settings())


def get_sender() -> MessageSender:
    """Outbound message channel (overridden in tests)."""
    return build_sender(load_settings())
