"""Turn a multi-order selection plus a proposed edit into per-order patches.

Validation happens in a fixed order and stops at the first blocking rule:

1. a mixed-status selection may only receive extra time;
2. moving to in-transit needs a delivery person for every delivery order;
3. assigning a delivery person must pass the assignment guard;
4. cancelling needs permission and a reason, extra time needs a reason.

Anything that survives is resolved order by order. Fields that make no sense
for a particular order are dropped for that order instead of failing the whole
edit, so a bulk edit applies as much as validly applies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from orderflow.domain.model import EXTRA_TIME_FIELDS, OrderStatus, PaymentStatus, Role

from .assignment_guard import (
    DEFAULT_ELEVATED_ROLES,
    can_edit_assignment,
    is_mixed,
    requires_assignment_for_transition,
)
from .decisions import Rejection, RejectionKind, ResolvedPatch
from .status_policy import can_transition

if TYPE_CHECKING:
    from collections.abc import Iterable

    from orderflow.domain.model import BulkPatch, Order

DEFAULT_CANCELLATION_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SITE_ADMIN})

type PlanResult = list[ResolvedPatch] | Rejection


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True, slots=True)
class BulkMutationPlanner:
    """Pure planner; holds only the role sets it evaluates against."""

    elevated_roles: frozenset[Role] = DEFAULT_ELEVATED_ROLES
    cancellation_roles: frozenset[Role] = DEFAULT_CANCELLATION_ROLES

    def plan(self, selection: Iterable[Order], patch: BulkPatch, actor_role: Role) -> PlanResult:
        orders = list(selection)
        rejection = self._validate(orders, patch, actor_role)
        if rejection is not None:
            return rejection
        return [_resolve(order, patch) for order in orders]

    def _validate(
        self, orders: list[Order], patch: BulkPatch, actor_role: Role
    ) -> Rejection | None:
        requested = patch.fields_set()

        if is_mixed(orders):
            offending = tuple(name for name in requested if name not in EXTRA_TIME_FIELDS)
            if offending:
                return Rejection(kind=RejectionKind.MIXED_STATE_VIOLATION, fields=offending)

        if patch.status is OrderStatus.IN_TRANSIT and patch.assigned_delivery_person_id is None:
            missing = tuple(
                order.id
                for order in orders
                if requires_assignment_for_transition(OrderStatus.IN_TRANSIT, order.order_type)
                and order.assigned_delivery_person_id is None
            )
            if missing:
                return Rejection(
                    kind=RejectionKind.MISSING_DELIVERY_PERSON,
                    fields=("assigned_delivery_person_id",),
                    order_ids=missing,
                )

        if patch.assigned_delivery_person_id is not None:
            decision = can_edit_assignment(orders, actor_role, elevated_roles=self.elevated_roles)
            if not decision.editable:
                return Rejection(
                    kind=RejectionKind.ASSIGNMENT_LOCKED,
                    fields=("assigned_delivery_person_id",),
                    reason=decision.reason.value if decision.reason else None,
                )

        if patch.status is OrderStatus.CANCELLED:
            if actor_role not in self.cancellation_roles:
                return Rejection(
                    kind=RejectionKind.CANCELLATION_NOT_PERMITTED,
                    fields=("status",),
                    reason=actor_role.value,
                )
            if _blank(patch.cancellation_reason):
                return Rejection(
                    kind=RejectionKind.MISSING_CANCELLATION_REASON,
                    fields=("cancellation_reason",),
                )

        if patch.adds_extra_time and _blank(patch.extra_time_reason):
            return Rejection(
                kind=RejectionKind.MISSING_EXTRA_TIME_REASON,
                fields=("extra_time_reason",),
            )

        return None


def _resolve(order: Order, patch: BulkPatch) -> ResolvedPatch:
    changes: dict[str, object] = {}
    dropped: list[str] = []

    if patch.status is not None:
        if can_transition(order.status, patch.status):
            changes["status"] = patch.status
        else:
            dropped.append("status")

    if patch.cancellation_reason is not None:
        if changes.get("status") is OrderStatus.CANCELLED:
            changes["cancellation_reason"] = patch.cancellation_reason
        else:
            dropped.append("cancellation_reason")

    if patch.assigned_delivery_person_id is not None:
        if order.is_delivery and not order.is_terminal:
            changes["assigned_delivery_person_id"] = patch.assigned_delivery_person_id
        else:
            dropped.append("assigned_delivery_person_id")

    _resolve_extra_time(order, patch, changes, dropped)

    if patch.payment_status is not None:
        changes["payment_status"] = patch.payment_status
    elif changes.get("status") is OrderStatus.DELIVERED and (
        order.payment_status is not PaymentStatus.PAID
    ):
        # the authority marks payment as settled on delivery
        changes["payment_status"] = PaymentStatus.PAID

    if patch.payment_status_2 is not None:
        if order.has_multiple_payments:
            changes["payment_status_2"] = patch.payment_status_2
        else:
            dropped.append("payment_status_2")

    return ResolvedPatch(
        order_id=order.id,
        patch=patch.without(*dropped) if dropped else patch,
        changes=changes,
        dropped=tuple(dropped),
    )


def _resolve_extra_time(
    order: Order,
    patch: BulkPatch,
    changes: dict[str, object],
    dropped: list[str],
) -> None:
    requested = [name for name in sorted(EXTRA_TIME_FIELDS) if getattr(patch, name) is not None]
    if not requested:
        return
    if not patch.adds_extra_time or order.is_terminal:
        dropped.extend(requested)
        return

    minutes = patch.extra_time or 0
    changes["extra_time_minutes"] = order.extra_time_minutes + minutes
    changes["extra_time_reason"] = patch.extra_time_reason
    if order.delivery_eta is not None:
        changes["delivery_eta"] = order.delivery_eta + timedelta(minutes=minutes)
