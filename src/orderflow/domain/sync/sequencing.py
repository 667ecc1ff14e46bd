"""Per-key FIFO ordering for overlapping asynchronous operations."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable


class KeyedSequencer:
    """Run critical sections for the same key strictly in submission order.

    A caller's place in every key's queue is reserved synchronously when
    ``sequenced`` is entered, before the first suspension point. Two sections
    sharing a key therefore run in the order they were submitted, and sections
    with disjoint keys run concurrently.
    """

    def __init__(self) -> None:
        self._tails: dict[str, asyncio.Future[None]] = {}

    @asynccontextmanager
    async def sequenced(self, keys: Iterable[str]) -> AsyncIterator[None]:
        unique = set(keys)
        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        predecessors: list[asyncio.Future[None]] = []
        for key in unique:
            previous = self._tails.get(key)
            if previous is not None and not previous.done():
                predecessors.append(previous)
            self._tails[key] = done
        try:
            if predecessors:
                await asyncio.wait(predecessors)
            yield
        finally:
            if not done.done():
                done.set_result(None)
            for key in unique:
                if self._tails.get(key) is done:
                    del self._tails[key]

    def busy(self, key: str) -> bool:
        tail = self._tails.get(key)
        return tail is not None and not tail.done()
