"""Port for the real-time order change feed."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from orderflow.domain.model import ConnectionState, Order, RemoteEvent

type EventCallback = Callable[[RemoteEvent[Order]], None]
type StateCallback = Callable[[ConnectionState, str | None], None]


@runtime_checkable
class OrderEventSource(Protocol):
    """Push source of Insert/Update/Delete notifications scoped to one site.

    Implementations report connection changes through ``on_state`` with an
    optional detail message, and deliver events through ``on_event`` in the
    order they were produced.
    """

    async def connect(
        self,
        site_id: str,
        *,
        on_event: EventCallback,
        on_state: StateCallback,
    ) -> None: ...

    async def disconnect(self) -> None: ...

    async def test_connection(self) -> bool: ...


class EventSourceError(RuntimeError):
    """Raised by event-source adapters when a connection attempt fails."""
