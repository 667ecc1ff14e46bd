"""Order, delivery-person and site records.

All entities are frozen dataclasses keyed by a string ``id``. Mutation always goes
through ``dataclasses.replace`` so that a snapshot taken before an optimistic
edit can never be altered by later edits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .enums import TERMINAL_STATUSES, OrderStatus, OrderType, PaymentStatus

if TYPE_CHECKING:
    from datetime import datetime


class Keyed(Protocol):
    """Structural contract for entities held by the optimistic store."""

    @property
    def id(self) -> str: ...


# Fields that only grow while an order is open.
MONOTONIC_ORDER_FIELDS = frozenset({"extra_time_minutes", "delivery_eta"})


@dataclass(frozen=True, slots=True, kw_only=True)
class Order:
    id: str
    status: OrderStatus
    order_type: OrderType
    site_id: str
    created_at: datetime
    assigned_delivery_person_id: str | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_status_2: PaymentStatus | None = None
    has_multiple_payments: bool = False
    extra_time_minutes: int = 0
    extra_time_reason: str | None = None
    cancellation_reason: str | None = None
    delivery_eta: datetime | None = None

    def __post_init__(self) -> None:
        if self.extra_time_minutes < 0:
            raise ValueError("extra_time_minutes must be non-negative")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_delivery(self) -> bool:
        return self.order_type is OrderType.DELIVERY

    @property
    def is_pickup(self) -> bool:
        return self.order_type is OrderType.PICKUP

    @property
    def waiting_for_pickup(self) -> bool:
        """Pickup orders in the in-transit slot are waiting at the counter."""
        return self.is_pickup and self.status is OrderStatus.IN_TRANSIT


@dataclass(frozen=True, slots=True, kw_only=True)
class DeliveryPerson:
    id: str
    name: str
    site_id: str
    available: bool = True
    active_order_count: int = 0
    phone: str | None = None

    def __post_init__(self) -> None:
        if self.active_order_count < 0:
            raise ValueError("active_order_count must be non-negative")


@dataclass(frozen=True, slots=True, kw_only=True)
class Site:
    id: str
    name: str
