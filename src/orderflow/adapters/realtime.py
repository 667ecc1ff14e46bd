"""In-process change feed.

``InMemoryEventHub`` fans out order notifications to one subscriber per site
and lets callers drive connection trouble by hand. It backs the SQL authority
in a single-process deployment and stands in for a hosted feed in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.domain.model import ConnectionState
from orderflow.domain.ports import EventSourceError, OrderEventSource

if TYPE_CHECKING:
    from orderflow.domain.model import Order, RemoteEvent
    from orderflow.domain.ports import EventCallback, StateCallback

log = getLogger(__name__)


@dataclass(slots=True)
class _Subscription:
    site_id: str
    on_event: EventCallback
    on_state: StateCallback


class InMemoryEventHub:
    def __init__(self) -> None:
        self._subscription: _Subscription | None = None
        self._healthy = True
        self._refuse_connects = 0
        self.published = 0
        self.connect_attempts = 0

    @property
    def connected(self) -> bool:
        return self._subscription is not None

    # OrderEventSource ----------------------------------------------------------

    async def connect(
        self,
        site_id: str,
        *,
        on_event: EventCallback,
        on_state: StateCallback,
    ) -> None:
        self.connect_attempts += 1
        if self._refuse_connects > 0:
            self._refuse_connects -= 1
            raise EventSourceError(f"Change feed refused connection for site {site_id}")
        self._subscription = _Subscription(site_id=site_id, on_event=on_event, on_state=on_state)
        log.debug("Subscriber attached for site %s", site_id)
        on_state(ConnectionState.CONNECTED, None)

    async def disconnect(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.on_state(ConnectionState.DISCONNECTED, None)

    async def test_connection(self) -> bool:
        return self._healthy

    # Feed control ------------------------------------------------------------

    def publish(self, event: RemoteEvent[Order]) -> None:
        """Deliver ``event`` to the subscriber if it watches the event's site."""

        self.published += 1
        subscription = self._subscription
        if subscription is None:
            log.debug("No subscriber; dropped %s for %s", event.type, event.entity_id)
            return
        if event.site_id is not None and event.site_id != subscription.site_id:
            return
        subscription.on_event(event)

    def fail(self, detail: str = "Change feed dropped") -> None:
        """Drop the current subscriber with an error, as a broken socket would."""

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            log.warning("Simulated change feed failure for site %s", subscription.site_id)
            subscription.on_state(ConnectionState.ERROR, detail)

    def refuse_next_connects(self, count: int = 1) -> None:
        self._refuse_connects = count

    def set_healthy(self, *, healthy: bool) -> None:
        self._healthy = healthy


if TYPE_CHECKING:
    _source_check: OrderEventSource = InMemoryEventHub()
