"""Logging setup for the orderflow CLI and services."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# third-party loggers that drown out order lifecycle messages below WARNING
NOISY_LOGGERS = ("httpx", "httpcore", "hishel", "sqlalchemy.engine")


def _level_from_env(default: int) -> int:
    raw = os.getenv("ORDERFLOW_LOG_LEVEL", "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once.

    ``level`` wins over ``ORDERFLOW_LOG_LEVEL``; without either the root logger
    logs at INFO. Client libraries stay at WARNING unless running at DEBUG.
    Pass ``force=True`` to reconfigure during tests.
    """

    effective = level if level is not None else _level_from_env(logging.INFO)
    logging.basicConfig(level=effective, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    library_level = effective if effective <= logging.DEBUG else max(effective, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
