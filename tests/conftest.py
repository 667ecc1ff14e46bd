from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from orderflow.adapters.realtime import InMemoryEventHub
from orderflow.adapters.sqlalchemy import (
    SqlAlchemyOrderAuthority,
    create_all_tables,
    shutdown,
    startup,
)
from orderflow.domain.model import DeliveryPerson, Site

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def started_adapter(sqlite_engine: Engine) -> Iterator[Engine]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield sqlite_engine
    finally:
        shutdown()


@pytest.fixture
def event_hub() -> InMemoryEventHub:
    return InMemoryEventHub()


@pytest.fixture
def authority(
    sqlite_session_factory: sessionmaker[Session],
    event_hub: InMemoryEventHub,
) -> SqlAlchemyOrderAuthority:
    authority = SqlAlchemyOrderAuthority(
        sqlite_session_factory,
        publish=event_hub.publish,
        shared_delivery_person_ids=frozenset({"1"}),
    )
    authority.add_site(Site(id="site-1", name="Centro"))
    authority.add_site(Site(id="site-2", name="Norte"))
    authority.add_delivery_person(DeliveryPerson(id="1", name="Shared Courier", site_id="site-2"))
    authority.add_delivery_person(DeliveryPerson(id="dp-7", name="Ana", site_id="site-1"))
    authority.add_delivery_person(DeliveryPerson(id="dp-8", name="Bruno", site_id="site-1"))
    authority.add_delivery_person(
        DeliveryPerson(id="dp-9", name="Carla", site_id="site-1", available=False)
    )
    authority.add_delivery_person(DeliveryPerson(id="dp-20", name="Diego", site_id="site-2"))
    return authority
