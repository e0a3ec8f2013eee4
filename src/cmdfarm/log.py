"""Logging setup shared by the coordinator, worker and submitter.

All module loggers live under the ``cmdfarm`` namespace and propagate to
one package logger that owns the handlers. The level can be overridden
with the CMDFARM_LOG_LEVEL env var.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
PACKAGE = "cmdfarm"
LEVEL_ENV = "CMDFARM_LOG_LEVEL"


def resolve_level(default: str = "INFO") -> str:
    """Return the level from CMDFARM_LOG_LEVEL or ``default``.

    Raises ValueError for a name logging does not know.
    """
    level = os.getenv(LEVEL_ENV, default).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level: {level}")
    return level


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(handler)
        try:
            logger.setLevel(resolve_level())
        except ValueError:
            # Reported by setup_logging once an executable starts
            logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def get_logger(name: str = PACKAGE) -> logging.Logger:
    """Return a logger under the cmdfarm namespace."""
    _package_logger()
    return logging.getLogger(name)


def setup_logging(component: str, level: str = "INFO", log_dir: Path | None = None) -> logging.Logger:
    """Apply the configured level and optional log file for one executable.

    Raises ValueError when CMDFARM_LOG_LEVEL names an unknown level.
    """
    logger = _package_logger()
    logger.setLevel(resolve_level(level))

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(
            log_dir / f"{component}.log", encoding="utf-8", errors="backslashreplace"
        )
        file_handler.setFormatter(logging.Formatter(FORMAT))
        logger.addHandler(file_handler)

    return logger
