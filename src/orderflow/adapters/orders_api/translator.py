"""Translate remote order API payloads to and from domain values."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.domain.model import DeliveryPerson, Order
from orderflow.domain.ports import MutationAck

from .schema import (
    BulkUpdateRequest,
    DeliveryPersonPayload,
    MutationResultPayload,
    OrderPayload,
    PatchPayload,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from orderflow.domain.model import BulkPatch, OrderFilters

log = getLogger(__name__)


def parse_order(payload: OrderPayload) -> Order:
    return Order(
        id=payload.id,
        status=payload.status,
        order_type=payload.order_type,
        site_id=payload.site_id,
        created_at=payload.created_at,
        assigned_delivery_person_id=payload.assigned_delivery_person_id,
        payment_status=payload.payment_status,
        payment_status_2=payload.payment_status_2,
        has_multiple_payments=payload.has_multiple_payments,
        extra_time_minutes=max(payload.extra_time_minutes, 0),
        extra_time_reason=payload.extra_time_reason,
        cancellation_reason=payload.cancellation_reason,
        delivery_eta=payload.delivery_eta,
    )


def parse_delivery_person(payload: DeliveryPersonPayload) -> DeliveryPerson:
    return DeliveryPerson(
        id=payload.id,
        name=payload.name,
        site_id=payload.site_id,
        available=payload.available,
        active_order_count=max(payload.active_order_count, 0),
        phone=payload.phone,
    )


def build_bulk_update(order_ids: Sequence[str], patch: BulkPatch) -> dict[str, object]:
    """Request body for a bulk update; only fields the patch sets are sent."""

    request = BulkUpdateRequest(
        order_ids=list(order_ids),
        patch=PatchPayload(
            status=patch.status,
            extra_time=patch.extra_time,
            extra_time_reason=patch.extra_time_reason,
            delivery_person_id=patch.assigned_delivery_person_id,
            payment_status=patch.payment_status,
            payment_status_2=patch.payment_status_2,
            cancellation_reason=patch.cancellation_reason,
        ),
    )
    return request.model_dump(mode="json", exclude_none=True)


def build_order_query(filters: OrderFilters, site_id: str) -> dict[str, str]:
    params = {key: value for key, value in filters.as_payload().items() if value is not None}
    params["site_id"] = site_id
    return params


def parse_mutation_results(
    order_ids: Sequence[str], results: Iterable[MutationResultPayload]
) -> dict[str, MutationAck]:
    requested = set(order_ids)
    acks: dict[str, MutationAck] = {}
    for result in results:
        if result.id not in requested:
            log.warning("Ignoring acknowledgement for unrequested order %s", result.id)
            continue
        acks[result.id] = (
            MutationAck.success()
            if result.ok
            else MutationAck.failure(result.error or "Rejected by server")
        )
    return acks
