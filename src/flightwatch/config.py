"""Runtime settings loaded from YAML, overridable by environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"

ENV_PREFIX = "FLIGHTWATCH_"


class ProviderSettings(BaseModel):
    base_url: str = "https://aeroapi.flightaware.com/aeroapi"
    timeout_seconds: float = 30.0


class NotifySettings(BaseModel):
    channel: Literal["log", "whatsapp", "email"] = "log"


class Settings(BaseModel):
    """Top-level settings; see ``config/flightwatch.yaml``."""

    provider: ProviderSettings = ProviderSettings()
    notify: NotifySettings = NotifySettings()


# env var -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PROVIDER_URL": ("provider", "base_url"),
    "PROVIDER_TIMEOUT": ("provider", "timeout_seconds"),
    "NOTIFY_CHANNEL": ("notify", "channel"),
}


def load_settings(config_dir: Path | None = None) -> Settings:
    """Load ``flightwatch.yaml`` (if present) and apply ``FLIGHTWATCH_*`` overrides.

    Args:
        config_dir: Override for config directory (testing).
    """
    config_dir = config_dir or CONFIG_DIR
    settings_file = config_dir / "flightwatch.yaml"

    data: dict = {}
    if settings_file.exists():
        with open(settings_file) as f:
            data = yaml.safe_load(f) or {}
    else:
        logger.debug("No settings file at %s, using defaults", settings_file)

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(f"{ENV_PREFIX}{env_name}")
        if value:
            data.setdefault(section, {})[key] = value

    return Settings.model_validate(data)
