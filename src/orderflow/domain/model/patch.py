"""Bulk edit payloads proposed by an operator."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .enums import OrderStatus, PaymentStatus

EXTRA_TIME_FIELDS: frozenset[str] = frozenset({"extra_time", "extra_time_reason"})


@dataclass(frozen=True, slots=True, kw_only=True)
class BulkPatch:
    """Fields an operator wants to change on every selected order.

    ``None`` means "leave unchanged". ``extra_time`` is a number of minutes to
    add on top of whatever the order already carries.
    """

    status: OrderStatus | None = None
    extra_time: int | None = None
    extra_time_reason: str | None = None
    assigned_delivery_person_id: str | None = None
    payment_status: PaymentStatus | None = None
    payment_status_2: PaymentStatus | None = None
    cancellation_reason: str | None = None

    def __post_init__(self) -> None:
        if self.extra_time is not None and self.extra_time < 0:
            raise ValueError("extra_time must be non-negative; extra time is additive only")

    def fields_set(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name) is not None)

    def without(self, *names: str) -> BulkPatch:
        return replace(self, **dict.fromkeys(names))

    @property
    def is_empty(self) -> bool:
        return not self.fields_set()

    @property
    def adds_extra_time(self) -> bool:
        return bool(self.extra_time)
