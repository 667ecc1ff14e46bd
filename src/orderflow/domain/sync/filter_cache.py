"""Gate order reloads on actual filter changes.

``FilterFingerprintCache`` answers "does this filter set need a reload?".
``DebouncedReloader`` collapses bursts of filter changes into one evaluation
and makes sure only the newest reload ever reaches the store.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.domain.model import OrderFilters

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from orderflow.domain.model import Order

log = getLogger(__name__)

type FilterInput = OrderFilters | Mapping[str, object]
type Loader = Callable[[OrderFilters, str], Awaitable[Sequence[Order]]]
type Sink = Callable[[Sequence[Order]], object]
type Sleep = Callable[[float], Awaitable[None]]


def fingerprint(filters: FilterInput, site_id: str) -> str:
    """Deterministic digest of a filter set and site; key order does not matter."""

    payload = filters.as_payload() if isinstance(filters, OrderFilters) else dict(filters)
    encoded = json.dumps(
        {"filters": payload, "site_id": site_id},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class FilterFingerprintCache:
    def __init__(self) -> None:
        self._fingerprint: str | None = None
        self._site_id: str | None = None

    @property
    def last_fingerprint(self) -> str | None:
        return self._fingerprint

    def should_reload(self, filters: FilterInput, site_id: str, *, force: bool = False) -> bool:
        """Return True (and remember the new fingerprint) when a reload is due."""

        key = fingerprint(filters, site_id)
        site_changed = site_id != self._site_id
        if not (force or site_changed or key != self._fingerprint):
            return False
        self._fingerprint = key
        self._site_id = site_id
        return True

    def invalidate(self) -> None:
        """Forget the last fingerprint so the next request reloads."""

        self._fingerprint = None
        self._site_id = None


class DebouncedReloader:
    """Debounce reload requests and discard results superseded by newer loads.

    Every call restarts the debounce window; only the last call of a burst is
    evaluated. Each issued load takes a fresh, monotonically increasing token
    and its result is handed to ``sink`` only if no newer load was issued
    while it was in flight.
    """

    def __init__(
        self,
        cache: FilterFingerprintCache,
        loader: Loader,
        sink: Sink,
        *,
        debounce_seconds: float = 0.3,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.cache = cache
        self._loader = loader
        self._sink = sink
        self._debounce_seconds = debounce_seconds
        self._sleep = sleep
        self._calls = 0
        self._force_requested = False
        self._latest_token = 0

    @property
    def latest_token(self) -> int:
        return self._latest_token

    async def request(
        self, filters: OrderFilters, site_id: str, *, force: bool = False
    ) -> bool:
        """Ask for a reload; return True if this call's result was applied."""

        self._calls += 1
        call = self._calls
        self._force_requested = self._force_requested or force
        if self._debounce_seconds > 0:
            await self._sleep(self._debounce_seconds)
        if call != self._calls:
            log.debug("Reload request %s folded into a newer request", call)
            return False

        force_now, self._force_requested = self._force_requested, False
        if not self.cache.should_reload(filters, site_id, force=force_now):
            log.debug("Filters unchanged for site %s; reload skipped", site_id)
            return False
        return await self._load(filters, site_id)

    async def _load(self, filters: OrderFilters, site_id: str) -> bool:
        self._latest_token += 1
        token = self._latest_token
        log.info("Reloading orders for site %s (token %s)", site_id, token)
        try:
            orders = await self._loader(filters, site_id)
        except Exception:
            if token == self._latest_token:
                self.cache.invalidate()
            raise
        if token != self._latest_token:
            log.info("Discarding stale reload %s; newest is %s", token, self._latest_token)
            return False
        self._sink(orders)
        log.info("Loaded %s orders for site %s", len(orders), site_id)
        return True
