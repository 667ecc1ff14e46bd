from __future__ import annotations

import pytest

from orderflow.domain.lifecycle import (
    AssignmentLockReason,
    can_edit_assignment,
    is_mixed,
    requires_assignment_for_transition,
)
from orderflow.domain.model import OrderStatus, OrderType, Role
from tests.helpers.orders import make_order


def test_mixed_selection_locks_assignment_first() -> None:
    selection = [
        make_order("A", status=OrderStatus.KITCHEN),
        make_order("B", status=OrderStatus.IN_TRANSIT, order_type=OrderType.PICKUP),
    ]

    decision = can_edit_assignment(selection, Role.ADMIN)

    assert is_mixed(selection)
    assert not decision.editable
    assert decision.reason is AssignmentLockReason.MIXED_STATE


@pytest.mark.parametrize("role", list(Role))
def test_waiting_pickup_is_never_assignable(role: Role) -> None:
    selection = [make_order("C", status=OrderStatus.IN_TRANSIT, order_type=OrderType.PICKUP)]

    decision = can_edit_assignment(selection, role)

    assert not decision.editable
    assert decision.reason is AssignmentLockReason.PICKUP_NO_ASSIGNMENT


def test_in_transit_delivery_locked_for_agents() -> None:
    selection = [
        make_order("A", status=OrderStatus.IN_TRANSIT, assigned_delivery_person_id="dp-1"),
    ]

    decision = can_edit_assignment(selection, Role.AGENT)

    assert not decision.editable
    assert decision.reason is AssignmentLockReason.IN_TRANSIT_LOCKED


@pytest.mark.parametrize("role", [Role.ADMIN, Role.SITE_ADMIN])
def test_in_transit_delivery_editable_for_elevated_roles(role: Role) -> None:
    selection = [
        make_order("A", status=OrderStatus.IN_TRANSIT, assigned_delivery_person_id="dp-1"),
    ]

    assert can_edit_assignment(selection, role).editable


def test_elevated_roles_are_configurable() -> None:
    selection = [make_order("A", status=OrderStatus.IN_TRANSIT)]

    decision = can_edit_assignment(
        selection, Role.SITE_ADMIN, elevated_roles=frozenset({Role.ADMIN})
    )

    assert decision.reason is AssignmentLockReason.IN_TRANSIT_LOCKED


def test_kitchen_orders_are_editable_by_anyone() -> None:
    selection = [make_order("A"), make_order("B")]

    decision = can_edit_assignment(selection, Role.AGENT)

    assert decision.editable
    assert decision.reason is None


def test_only_delivery_dispatch_requires_assignment() -> None:
    assert requires_assignment_for_transition(OrderStatus.IN_TRANSIT, OrderType.DELIVERY)
    assert not requires_assignment_for_transition(OrderStatus.IN_TRANSIT, OrderType.PICKUP)
    assert not requires_assignment_for_transition(OrderStatus.DELIVERED, OrderType.DELIVERY)
