"""Order list filters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .entities import Order
    from .enums import OrderStatus, OrderType


@dataclass(frozen=True, slots=True, kw_only=True)
class OrderFilters:
    status: OrderStatus | None = None
    order_type: OrderType | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    delivery_person_id: str | None = None

    def matches(self, order: Order) -> bool:
        if self.status is not None and order.status != self.status:
            return False
        if self.order_type is not None and order.order_type != self.order_type:
            return False
        if self.created_from is not None and order.created_at < self.created_from:
            return False
        if self.created_to is not None and order.created_at > self.created_to:
            return False
        return not (
            self.delivery_person_id is not None
            and order.assigned_delivery_person_id != self.delivery_person_id
        )

    def as_payload(self) -> dict[str, str | None]:
        """Primitive representation used for fingerprints and query strings."""

        return {
            "status": self.status.value if self.status else None,
            "order_type": self.order_type.value if self.order_type else None,
            "created_from": self.created_from.isoformat() if self.created_from else None,
            "created_to": self.created_to.isoformat() if self.created_to else None,
            "delivery_person_id": self.delivery_person_id,
        }
