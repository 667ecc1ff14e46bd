"""Ports for reading orders and delivery personnel."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from orderflow.domain.model import DeliveryPerson, Order, OrderFilters, Role


@runtime_checkable
class OrderLoader(Protocol):
    """Return the canonical order set for a site under the given filters."""

    async def load_orders(self, filters: OrderFilters, site_id: str) -> Sequence[Order]: ...


@runtime_checkable
class DeliveryDirectory(Protocol):
    """Read-only list of delivery personnel scoped to a site."""

    async def list_delivery_people(self, site_id: str) -> Sequence[DeliveryPerson]: ...


@runtime_checkable
class RoleProvider(Protocol):
    """Supply the role of the operator issuing edits."""

    def __call__(self) -> Role: ...
