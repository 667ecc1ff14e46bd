"""Reusable builders and fakes for order tests."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from orderflow.domain.model import (
    BulkPatch,
    DeliveryPerson,
    Order,
    OrderStatus,
    OrderType,
    PaymentStatus,
)
from orderflow.domain.ports import GatewayError, MutationAck

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from orderflow.domain.model import OrderFilters

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_order(
    order_id: str = "A",
    *,
    status: OrderStatus = OrderStatus.KITCHEN,
    order_type: OrderType = OrderType.DELIVERY,
    site_id: str = "site-1",
    created_at: datetime | None = None,
    assigned_delivery_person_id: str | None = None,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
    has_multiple_payments: bool = False,
    extra_time_minutes: int = 0,
    delivery_eta: datetime | None = None,
) -> Order:
    return Order(
        id=order_id,
        status=status,
        order_type=order_type,
        site_id=site_id,
        created_at=created_at or BASE_TIME,
        assigned_delivery_person_id=assigned_delivery_person_id,
        payment_status=payment_status,
        has_multiple_payments=has_multiple_payments,
        extra_time_minutes=extra_time_minutes,
        delivery_eta=delivery_eta,
    )


def make_person(
    person_id: str,
    name: str,
    *,
    site_id: str = "site-1",
    available: bool = True,
    active_order_count: int = 0,
) -> DeliveryPerson:
    return DeliveryPerson(
        id=person_id,
        name=name,
        site_id=site_id,
        available=available,
        active_order_count=active_order_count,
    )


class FakeGateway:
    """Records update calls and answers with configurable acknowledgements."""

    def __init__(self) -> None:
        self.calls: list[tuple[tuple[str, ...], BulkPatch]] = []
        self.rejected: dict[str, str] = {}
        self.silent: set[str] = set()
        self.error: GatewayError | None = None
        self.release: asyncio.Event | None = None

    async def update_orders(
        self, order_ids: Sequence[str], patch: BulkPatch
    ) -> Mapping[str, MutationAck]:
        self.calls.append((tuple(order_ids), patch))
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return {
            order_id: (
                MutationAck.failure(self.rejected[order_id])
                if order_id in self.rejected
                else MutationAck.success()
            )
            for order_id in order_ids
            if order_id not in self.silent
        }


class FakeLoader:
    """Serves canned order lists; can hold individual loads open."""

    def __init__(self, orders: Sequence[Order] = ()) -> None:
        self.orders = list(orders)
        self.calls: list[tuple[OrderFilters, str]] = []
        self.gates: list[asyncio.Event] = []
        self.error: Exception | None = None

    async def load_orders(self, filters: OrderFilters, site_id: str) -> list[Order]:
        self.calls.append((filters, site_id))
        snapshot = list(self.orders)
        if self.gates:
            gate = self.gates.pop(0)
            await gate.wait()
        if self.error is not None:
            raise self.error
        return [order for order in snapshot if order.site_id == site_id and filters.matches(order)]


async def no_sleep(_seconds: float) -> None:
    await asyncio.sleep(0)
