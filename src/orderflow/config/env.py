"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the named variables, stripped; raise listing every missing or blank one."""

    values = {name: (os.getenv(name) or "").strip() for name in names}
    missing = sorted(name for name, value in values.items() if not value)
    if missing:
        raise MissingConfigurationError(f"Missing configuration for: {', '.join(missing)}")
    return values


def optional_env_float(name: str, default: float) -> float:
    """Return a non-negative float override from the environment, or ``default``."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")
    return value


def optional_env_ids(name: str, default: Iterable[str]) -> frozenset[str]:
    """Return a comma-separated id list from the environment, or ``default`` when unset.

    A variable that is set but blank yields an empty set.
    """

    raw = os.getenv(name)
    if raw is None:
        return frozenset(default)
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
