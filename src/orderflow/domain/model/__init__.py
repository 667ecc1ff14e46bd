"""Order domain model."""

from __future__ import annotations

from .entities import MONOTONIC_ORDER_FIELDS, DeliveryPerson, Keyed, Order, Site
from .enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    ChangeType,
    ConnectionState,
    OrderStatus,
    OrderType,
    PaymentStatus,
    Role,
)
from .events import RemoteEvent
from .filters import OrderFilters
from .patch import EXTRA_TIME_FIELDS, BulkPatch

__all__ = [
    "ACTIVE_STATUSES",
    "EXTRA_TIME_FIELDS",
    "MONOTONIC_ORDER_FIELDS",
    "TERMINAL_STATUSES",
    "BulkPatch",
    "ChangeType",
    "ConnectionState",
    "DeliveryPerson",
    "Keyed",
    "Order",
    "OrderFilters",
    "OrderStatus",
    "OrderType",
    "PaymentStatus",
    "RemoteEvent",
    "Role",
    "Site",
]
