"""Rules deciding when the delivery-person field may be edited."""

from __future__ import annotations

from typing import TYPE_CHECKING

from orderflow.domain.model import OrderStatus, OrderType, Role

from .decisions import AssignmentDecision, AssignmentLockReason

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from orderflow.domain.model import Order

DEFAULT_ELEVATED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SITE_ADMIN})


def is_mixed(selection: Iterable[Order]) -> bool:
    return len({order.status for order in selection}) > 1


def can_edit_assignment(
    selection: Sequence[Order],
    actor_role: Role,
    *,
    elevated_roles: frozenset[Role] = DEFAULT_ELEVATED_ROLES,
) -> AssignmentDecision:
    """Evaluate the lock rules in order; the first one that matches wins."""

    if is_mixed(selection):
        return AssignmentDecision.deny(AssignmentLockReason.MIXED_STATE)
    if any(order.waiting_for_pickup for order in selection):
        return AssignmentDecision.deny(AssignmentLockReason.PICKUP_NO_ASSIGNMENT)
    en_route = any(
        order.is_delivery and order.status is OrderStatus.IN_TRANSIT for order in selection
    )
    if en_route and actor_role not in elevated_roles:
        return AssignmentDecision.deny(AssignmentLockReason.IN_TRANSIT_LOCKED)
    return AssignmentDecision.allow()


def requires_assignment_for_transition(target_status: OrderStatus, order_type: OrderType) -> bool:
    return target_status is OrderStatus.IN_TRANSIT and order_type is OrderType.DELIVERY
