"""Settings loader for cmdfarm."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

CONFIG_ENV = "CMDFARM_CONFIG"


@dataclass
class Settings:
    """Tunable constants shared by the three executables.

    The defaults are the compiled-in values the executables rely on. In
    particular ``coordinator_port`` is the well-known port submitters
    expect; a settings file may move it for tests or local setups, and
    submitters must then use the same file.
    """

    coordinator_host: str = "127.0.0.1"  # Address submitters connect to
    listen_host: str = "0.0.0.0"
    coordinator_port: int = 9999
    listen_backlog: int = 5
    max_workers: int = 10
    backoff: float = 1.0  # Seconds to wait when no worker is available
    submitter_wait: float = 3.0
    identifier_limit: int = 255
    reply_limit: int = 255
    log_level: str = "INFO"
    log_dir: Path | None = None


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file, or return the defaults.

    The path falls back to the CMDFARM_CONFIG env var; with neither set the
    compiled-in defaults are used.
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_ENV)
    if not config_path:
        return Settings()

    config_path = Path(config_path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    return _parse_settings(raw)


def _parse_settings(raw: Any) -> Settings:
    """Parse raw YAML data into a Settings object."""
    if not isinstance(raw, dict):
        raise ValueError("Configuration must be a mapping")

    known = {f.name: f for f in fields(Settings)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key == "log_dir":
            values[key] = Path(value).expanduser().resolve() if value else None
            continue
        expected = type(getattr(Settings(), key))
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ValueError(f"'{key}' must be of type {expected.__name__}")
        values[key] = value

    settings = Settings(**values)
    if not 0 <= settings.coordinator_port <= 65535:
        raise ValueError(f"Invalid coordinator_port: {settings.coordinator_port}")
    if settings.max_workers < 1:
        raise ValueError("max_workers must be at least 1")
    if settings.backoff < 0 or settings.submitter_wait < 0:
        raise ValueError("backoff and submitter_wait must not be negative")
    if not isinstance(logging.getLevelName(settings.log_level.upper()), int):
        raise ValueError(f"Unknown log_level: {settings.log_level}")
    return settings
