from __future__ import annotations

import pytest

from orderflow.domain.lifecycle import (
    TRANSITIONS,
    can_transition,
    compute_allowed_statuses,
    is_terminal,
    status_label,
    status_options,
)
from orderflow.domain.model import OrderStatus, OrderType


@pytest.mark.parametrize(
    ("current", "expected"),
    [
        (OrderStatus.RECEIVED, [OrderStatus.KITCHEN, OrderStatus.CANCELLED]),
        (OrderStatus.KITCHEN, [OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED]),
        (OrderStatus.IN_TRANSIT, [OrderStatus.DELIVERED, OrderStatus.CANCELLED]),
        (OrderStatus.DELIVERED, []),
        (OrderStatus.CANCELLED, []),
    ],
)
def test_uniform_selection_follows_transition_table(
    current: OrderStatus, expected: list[OrderStatus]
) -> None:
    assert compute_allowed_statuses([current, current], [OrderType.DELIVERY]) == expected


def test_mixed_selection_allows_no_status_change() -> None:
    allowed = compute_allowed_statuses(
        [OrderStatus.KITCHEN, OrderStatus.IN_TRANSIT],
        [OrderType.DELIVERY, OrderType.DELIVERY],
    )

    assert allowed == []


def test_empty_selection_allows_nothing() -> None:
    assert compute_allowed_statuses([], []) == []


def test_pickup_and_delivery_share_transitions() -> None:
    pickup = compute_allowed_statuses([OrderStatus.KITCHEN], [OrderType.PICKUP])
    delivery = compute_allowed_statuses([OrderStatus.KITCHEN], [OrderType.DELIVERY])

    assert pickup == delivery


def test_terminal_statuses_have_no_outgoing_transitions() -> None:
    for status, targets in TRANSITIONS.items():
        assert (targets == ()) is is_terminal(status)


def test_can_transition_rejects_skipping_states() -> None:
    assert can_transition(OrderStatus.RECEIVED, OrderStatus.KITCHEN)
    assert not can_transition(OrderStatus.RECEIVED, OrderStatus.DELIVERED)
    assert not can_transition(OrderStatus.KITCHEN, OrderStatus.KITCHEN)
    assert not can_transition(OrderStatus.DELIVERED, OrderStatus.CANCELLED)


def test_in_transit_label_depends_on_order_type() -> None:
    assert status_label(OrderStatus.IN_TRANSIT, [OrderType.PICKUP]) == "Waiting for pickup"
    assert status_label(OrderStatus.IN_TRANSIT, [OrderType.DELIVERY]) == "On the way"
    assert (
        status_label(OrderStatus.IN_TRANSIT, [OrderType.PICKUP, OrderType.DELIVERY])
        == "On the way"
    )


def test_status_options_pair_statuses_with_labels() -> None:
    options = status_options([OrderStatus.KITCHEN], [OrderType.PICKUP])

    assert options == [
        (OrderStatus.IN_TRANSIT, "Waiting for pickup"),
        (OrderStatus.CANCELLED, "Cancelled"),
    ]
