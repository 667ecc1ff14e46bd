"""Delivery-person roster helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from orderflow.domain.model import DeliveryPerson


def assignable_delivery_people(
    people: Iterable[DeliveryPerson],
    site_id: str,
    *,
    shared_ids: frozenset[str] = frozenset(),
) -> list[DeliveryPerson]:
    """Available people for ``site_id`` (plus shared couriers), least busy first."""

    roster = [
        person
        for person in people
        if person.available and (person.site_id == site_id or person.id in shared_ids)
    ]
    return sorted(roster, key=lambda person: (person.active_order_count, person.name.casefold()))
