"""SQLAlchemy adapter package for orderflow."""

from __future__ import annotations

from .authority import PatchRefused, SqlAlchemyOrderAuthority, apply_patch
from .mappings import (
    create_all_tables,
    delivery_person_table,
    metadata,
    order_table,
    site_table,
)
from .state import (
    StartupError,
    is_started,
    session_factory,
    shutdown,
    startup,
)

__all__ = [
    "PatchRefused",
    "SqlAlchemyOrderAuthority",
    "StartupError",
    "apply_patch",
    "create_all_tables",
    "delivery_person_table",
    "is_started",
    "metadata",
    "order_table",
    "session_factory",
    "shutdown",
    "site_table",
    "startup",
]
