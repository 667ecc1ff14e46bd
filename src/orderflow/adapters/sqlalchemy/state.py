"""Process-wide engine for the SQL order authority.

``startup`` must run before an authority is built without an explicit
session factory; ``shutdown`` disposes the engine again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from orderflow.config.storage import get_database_config

from .mappings import create_all_tables

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when the SQL adapter is started twice or used before startup."""


@dataclass(slots=True)
class _Runtime:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None


_RUNTIME = _Runtime()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or one built from config) and create tables."""

    if _RUNTIME.engine is not None and not force:
        raise StartupError("SQL order authority already started; pass force=True to rebind")
    if engine is None:
        database = get_database_config()
        uri = database_uri or database.uri
        engine = create_engine(uri, echo=database.echo, **_engine_options(uri))
    create_all_tables(engine)
    _RUNTIME.engine = engine
    _RUNTIME.sessions = sessionmaker(bind=engine, expire_on_commit=False)


def _engine_options(uri: str) -> dict[str, Any]:
    """Share one connection across threads for in-memory SQLite."""
    url = make_url(uri)
    if url.get_backend_name() == "sqlite" and url.database in {None, "", ":memory:"}:
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {}


def is_started() -> bool:
    return _RUNTIME.engine is not None


def session_factory() -> sessionmaker[Session]:
    if _RUNTIME.sessions is None:
        raise StartupError(
            "SQL order authority not started; call orderflow.adapters.sqlalchemy.startup() first"
        )
    return _RUNTIME.sessions


def shutdown() -> None:
    engine, _RUNTIME.engine, _RUNTIME.sessions = _RUNTIME.engine, None, None
    if engine is not None:
        engine.dispose()
