from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from orderflow.domain.model import Order, OrderFilters, OrderStatus, OrderType
from orderflow.domain.sync import DebouncedReloader, FilterFingerprintCache, fingerprint
from tests.helpers.orders import FakeLoader, make_order, no_sleep


def test_fingerprint_ignores_key_order() -> None:
    first = fingerprint({"status": "kitchen", "type": "delivery"}, "site-1")
    second = fingerprint({"type": "delivery", "status": "kitchen"}, "site-1")

    assert first == second


def test_fingerprint_matches_for_equal_filter_objects() -> None:
    created = datetime(2024, 5, 1, tzinfo=UTC)
    first = OrderFilters(status=OrderStatus.KITCHEN, created_from=created)
    second = OrderFilters(created_from=created, status=OrderStatus.KITCHEN)

    assert fingerprint(first, "site-1") == fingerprint(second, "site-1")
    assert fingerprint(first, "site-1") != fingerprint(first, "site-2")


def test_should_reload_only_on_change() -> None:
    cache = FilterFingerprintCache()
    filters = OrderFilters(order_type=OrderType.PICKUP)

    assert cache.should_reload(filters, "site-1") is True
    assert cache.should_reload(filters, "site-1") is False
    assert cache.should_reload(filters, "site-2") is True
    assert cache.should_reload(OrderFilters(), "site-2") is True


def test_force_and_invalidate_trigger_reload() -> None:
    cache = FilterFingerprintCache()
    filters = OrderFilters()
    cache.should_reload(filters, "site-1")

    assert cache.should_reload(filters, "site-1", force=True) is True

    cache.invalidate()

    assert cache.last_fingerprint is None
    assert cache.should_reload(filters, "site-1") is True


def _reloader(loader: FakeLoader, sink: list[list[Order]]) -> DebouncedReloader:
    return DebouncedReloader(
        FilterFingerprintCache(),
        loader.load_orders,
        lambda orders: sink.append(list(orders)),
        debounce_seconds=0.3,
        sleep=no_sleep,
    )


def test_burst_of_requests_issues_one_load() -> None:
    loader = FakeLoader([make_order("A"), make_order("B", order_type=OrderType.PICKUP)])
    sink: list[list[Order]] = []
    reloader = _reloader(loader, sink)
    pickups = OrderFilters(order_type=OrderType.PICKUP)

    async def scenario() -> list[bool]:
        return list(
            await asyncio.gather(
                reloader.request(OrderFilters(), "site-1"),
                reloader.request(OrderFilters(status=OrderStatus.KITCHEN), "site-1"),
                reloader.request(pickups, "site-1"),
            )
        )

    applied = asyncio.run(scenario())

    assert applied == [False, False, True]
    assert loader.calls == [(pickups, "site-1")]
    assert [order.id for order in sink[0]] == ["B"]


def test_identical_request_is_skipped() -> None:
    loader = FakeLoader([make_order("A")])
    sink: list[list[Order]] = []
    reloader = _reloader(loader, sink)

    async def scenario() -> tuple[bool, bool]:
        first = await reloader.request(OrderFilters(), "site-1")
        second = await reloader.request(OrderFilters(), "site-1")
        return first, second

    assert asyncio.run(scenario()) == (True, False)
    assert len(loader.calls) == 1


def test_stale_load_is_discarded() -> None:
    loader = FakeLoader([make_order("A"), make_order("P", order_type=OrderType.PICKUP)])
    slow, fast = asyncio.Event(), asyncio.Event()
    loader.gates = [slow, fast]
    sink: list[list[Order]] = []
    reloader = _reloader(loader, sink)

    async def scenario() -> tuple[bool, bool]:
        first = asyncio.ensure_future(reloader.request(OrderFilters(), "site-1"))
        await asyncio.sleep(0.01)
        second = asyncio.ensure_future(
            reloader.request(OrderFilters(order_type=OrderType.PICKUP), "site-1")
        )
        await asyncio.sleep(0.01)
        fast.set()
        await second
        slow.set()
        return await first, second.result()

    first_applied, second_applied = asyncio.run(scenario())

    assert (first_applied, second_applied) == (False, True)
    assert len(sink) == 1
    assert [order.id for order in sink[0]] == ["P"]
    assert reloader.latest_token == 2


def test_failed_load_allows_retry_with_same_filters() -> None:
    loader = FakeLoader([make_order("A")])
    loader.error = RuntimeError("backend down")
    sink: list[list[Order]] = []
    reloader = _reloader(loader, sink)

    async def scenario() -> bool:
        with pytest.raises(RuntimeError):
            await reloader.request(OrderFilters(), "site-1")
        loader.error = None
        return await reloader.request(OrderFilters(), "site-1")

    assert asyncio.run(scenario()) is True
    assert len(loader.calls) == 2
    assert len(sink) == 1


def test_force_survives_debounce_folding() -> None:
    loader = FakeLoader([make_order("A")])
    sink: list[list[Order]] = []
    reloader = _reloader(loader, sink)

    async def scenario() -> None:
        await reloader.request(OrderFilters(), "site-1")
        await asyncio.gather(
            reloader.request(OrderFilters(), "site-1", force=True),
            reloader.request(OrderFilters(), "site-1"),
        )

    asyncio.run(scenario())

    assert len(loader.calls) == 2
