"""Feed real-time order notifications into the optimistic store."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.domain.model import ConnectionState
from orderflow.domain.ports.events import EventSourceError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Coroutine

    from orderflow.domain.model import Order, RemoteEvent
    from orderflow.domain.ports import OrderEventSource

    from .optimistic_store import OptimisticStore

log = getLogger(__name__)

type Resync = Callable[[], Awaitable[object]]
type Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    max_attempts: int = 5

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay_seconds * 2**attempt, self.max_delay_seconds)


@dataclass(frozen=True, slots=True)
class ReconcilerStatus:
    state: ConnectionState
    last_error: str | None
    reconnect_attempts: int
    events_merged: int

    @property
    def degraded(self) -> bool:
        return self.state is not ConnectionState.CONNECTED


class RemoteEventReconciler:
    """Merge Insert/Update/Delete notifications for one site into ``store``.

    Connection trouble never touches the store; it only pauses the event
    stream. After the feed comes back, ``resync`` runs a full filtered reload
    to recover whatever was missed in between.
    """

    def __init__(
        self,
        store: OptimisticStore[Order],
        source: OrderEventSource,
        *,
        site_id: str,
        resync: Resync,
        policy: ReconnectPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.source = source
        self.site_id = site_id
        self._resync = resync
        self._policy = policy or ReconnectPolicy()
        self._sleep = sleep
        self._state = ConnectionState.DISCONNECTED
        self._last_error: str | None = None
        self._attempts = 0
        self._events_merged = 0
        self._has_connected = False
        self._stopped = True
        self._reconnect_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    def status(self) -> ReconcilerStatus:
        return ReconcilerStatus(
            state=self._state,
            last_error=self._last_error,
            reconnect_attempts=self._attempts,
            events_merged=self._events_merged,
        )

    # Lifecycle ---------------------------------------------------------------

    async def start(self) -> None:
        self._stopped = False
        await self._connect()

    async def stop(self) -> None:
        self._stopped = True
        self._cancel_reconnect()
        await self.source.disconnect()
        self.handle_state(ConnectionState.DISCONNECTED, None)
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def reconnect(self) -> None:
        """Drop the current feed and connect again immediately."""

        log.info("Manual reconnect requested for site %s", self.site_id)
        self._cancel_reconnect()
        self._attempts = 0
        self._stopped = False
        await self.source.disconnect()
        await self._connect()

    async def test_connection(self) -> bool:
        healthy = await self.source.test_connection()
        log.info("Connection test for site %s: %s", self.site_id, "ok" if healthy else "failed")
        return healthy

    # Callbacks ---------------------------------------------------------------

    def handle_event(self, event: RemoteEvent[Order]) -> None:
        if event.site_id is not None and event.site_id != self.site_id:
            log.debug("Ignoring %s for %s from site %s", event.type, event.entity_id, event.site_id)
            return
        self.store.merge(event)
        self._events_merged += 1

    def handle_state(self, state: ConnectionState, detail: str | None) -> None:
        previous = self._state
        self._state = state
        if state is previous:
            return
        log.info("Change feed for site %s: %s -> %s", self.site_id, previous, state)

        if state is ConnectionState.ERROR:
            self._last_error = detail
            log.warning("Change feed error for site %s: %s", self.site_id, detail)
            self._schedule_reconnect()
        elif state is ConnectionState.CONNECTED:
            self._attempts = 0
            self._last_error = None
            if self._has_connected:
                self._spawn(self._run_resync())
            self._has_connected = True

    # Internals ---------------------------------------------------------------

    async def _connect(self) -> None:
        self.handle_state(ConnectionState.CONNECTING, None)
        try:
            await self.source.connect(
                self.site_id,
                on_event=self.handle_event,
                on_state=self.handle_state,
            )
        except EventSourceError as exc:
            self.handle_state(ConnectionState.ERROR, str(exc))

    def _schedule_reconnect(self) -> None:
        if self._stopped or self._reconnect_task is not None:
            return
        if self._attempts >= self._policy.max_attempts:
            log.error(
                "Giving up on change feed for site %s after %s attempts",
                self.site_id,
                self._attempts,
            )
            return
        self._attempts += 1
        delay = self._policy.delay_for(self._attempts)
        log.info(
            "Reconnecting site %s in %.1fs (attempt %s/%s)",
            self.site_id,
            delay,
            self._attempts,
            self._policy.max_attempts,
        )
        self._reconnect_task = self._spawn(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        self._reconnect_task = None
        if self._stopped:
            return
        await self._connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

    async def _run_resync(self) -> None:
        log.info("Reloading orders for site %s after reconnect", self.site_id)
        try:
            await self._resync()
        except Exception:  # noqa: BLE001
            log.exception("Reload after reconnect failed for site %s", self.site_id)

    def _spawn(self, coro: Coroutine[object, object, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
