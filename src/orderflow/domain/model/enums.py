"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class OrderStatus(StrEnum):
    RECEIVED = "received"
    KITCHEN = "kitchen"
    # pickup orders occupy this slot while waiting at the counter
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(StrEnum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Role(StrEnum):
    ADMIN = "admin"
    SITE_ADMIN = "site_admin"
    AGENT = "agent"


class ConnectionState(StrEnum):
    """Lifecycle of the real-time change feed."""

    CONNECTED = "connected"
    CONNECTING = "connecting"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class ChangeType(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)
ACTIVE_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.KITCHEN, OrderStatus.IN_TRANSIT})
