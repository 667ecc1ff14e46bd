from __future__ import annotations

import asyncio

import pytest

from orderflow.adapters.realtime import InMemoryEventHub
from orderflow.domain.model import ConnectionState, Order, RemoteEvent
from orderflow.domain.ports import EventSourceError
from tests.helpers.orders import make_order


class _Recorder:
    def __init__(self) -> None:
        self.events: list[RemoteEvent[Order]] = []
        self.states: list[tuple[ConnectionState, str | None]] = []

    def on_event(self, event: RemoteEvent[Order]) -> None:
        self.events.append(event)

    def on_state(self, state: ConnectionState, detail: str | None) -> None:
        self.states.append((state, detail))


def _connected(hub: InMemoryEventHub, site_id: str = "site-1") -> _Recorder:
    recorder = _Recorder()
    asyncio.run(hub.connect(site_id, on_event=recorder.on_event, on_state=recorder.on_state))
    return recorder


def test_connect_reports_connected() -> None:
    hub = InMemoryEventHub()

    recorder = _connected(hub)

    assert hub.connected
    assert recorder.states == [(ConnectionState.CONNECTED, None)]


def test_publish_filters_by_site() -> None:
    hub = InMemoryEventHub()
    recorder = _connected(hub)

    hub.publish(RemoteEvent.insert(make_order("A"), entity_id="A", site_id="site-1"))
    hub.publish(RemoteEvent.delete("Z", site_id="site-2"))

    assert [event.entity_id for event in recorder.events] == ["A"]
    assert hub.published == 2


def test_publish_without_subscriber_is_dropped() -> None:
    hub = InMemoryEventHub()

    hub.publish(RemoteEvent.delete("A", site_id="site-1"))

    assert hub.published == 1
    assert not hub.connected


def test_fail_detaches_with_error() -> None:
    hub = InMemoryEventHub()
    recorder = _connected(hub)

    hub.fail("socket closed")
    hub.publish(RemoteEvent.delete("A", site_id="site-1"))

    assert recorder.states[-1] == (ConnectionState.ERROR, "socket closed")
    assert recorder.events == []
    assert not hub.connected


def test_refused_connects_raise_then_recover() -> None:
    hub = InMemoryEventHub()
    hub.refuse_next_connects(1)
    recorder = _Recorder()

    with pytest.raises(EventSourceError):
        asyncio.run(hub.connect("site-1", on_event=recorder.on_event, on_state=recorder.on_state))
    asyncio.run(hub.connect("site-1", on_event=recorder.on_event, on_state=recorder.on_state))

    assert hub.connect_attempts == 2
    assert hub.connected


def test_disconnect_and_health() -> None:
    hub = InMemoryEventHub()
    recorder = _connected(hub)

    asyncio.run(hub.disconnect())
    hub.set_healthy(healthy=False)

    assert recorder.states[-1] == (ConnectionState.DISCONNECTED, None)
    assert asyncio.run(hub.test_connection()) is False
