"""Allowed status transitions and their display labels."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from orderflow.domain.model import TERMINAL_STATUSES, OrderStatus, OrderType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

TRANSITIONS: Mapping[OrderStatus, tuple[OrderStatus, ...]] = MappingProxyType(
    {
        OrderStatus.RECEIVED: (OrderStatus.KITCHEN, OrderStatus.CANCELLED),
        OrderStatus.KITCHEN: (OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED),
        OrderStatus.IN_TRANSIT: (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
        OrderStatus.DELIVERED: (),
        OrderStatus.CANCELLED: (),
    }
)

STATUS_LABELS: Mapping[OrderStatus, str] = MappingProxyType(
    {
        OrderStatus.RECEIVED: "Received",
        OrderStatus.KITCHEN: "In kitchen",
        OrderStatus.IN_TRANSIT: "On the way",
        OrderStatus.DELIVERED: "Delivered",
        OrderStatus.CANCELLED: "Cancelled",
    }
)
WAITING_FOR_PICKUP_LABEL = "Waiting for pickup"


def compute_allowed_statuses(
    current_statuses: Iterable[OrderStatus],
    order_types: Iterable[OrderType],
) -> list[OrderStatus]:
    """Return the statuses a selection may move to.

    A selection spanning more than one status ("mixed") may not change status at
    all. Pickup and delivery orders share one transition table; ``order_types``
    only affects how the in-transit slot is labelled (see ``status_label``).
    """

    del order_types
    distinct = set(current_statuses)
    if len(distinct) != 1:
        return []
    (current,) = distinct
    return list(TRANSITIONS[current])


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def status_label(status: OrderStatus, order_types: Iterable[OrderType] = ()) -> str:
    types = set(order_types)
    if status is OrderStatus.IN_TRANSIT and types == {OrderType.PICKUP}:
        return WAITING_FOR_PICKUP_LABEL
    return STATUS_LABELS[status]


def status_options(
    current_statuses: Iterable[OrderStatus],
    order_types: Iterable[OrderType],
) -> list[tuple[OrderStatus, str]]:
    """Allowed next statuses paired with the label to show for this selection."""

    types = tuple(order_types)
    return [
        (status, status_label(status, types))
        for status in compute_allowed_statuses(current_statuses, types)
    ]
