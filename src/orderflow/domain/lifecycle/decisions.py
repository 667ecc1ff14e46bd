"""Decision types shared by the status policy, assignment guard and planner.

The planner never raises for a blocked edit; it returns a ``Rejection`` value
describing exactly which fields or orders caused the block so that callers can
explain it. ``ResolvedPatch`` is the per-order outcome of an accepted plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from orderflow.domain.model import BulkPatch


class AssignmentLockReason(StrEnum):
    MIXED_STATE = "mixed-state"
    PICKUP_NO_ASSIGNMENT = "pickup-no-assignment"
    IN_TRANSIT_LOCKED = "in-transit-locked"


@dataclass(frozen=True, slots=True)
class AssignmentDecision:
    editable: bool
    reason: AssignmentLockReason | None = None

    @classmethod
    def allow(cls) -> AssignmentDecision:
        return cls(editable=True)

    @classmethod
    def deny(cls, reason: AssignmentLockReason) -> AssignmentDecision:
        return cls(editable=False, reason=reason)


class RejectionKind(StrEnum):
    MIXED_STATE_VIOLATION = "mixed-state-violation"
    MISSING_DELIVERY_PERSON = "missing-delivery-person"
    ASSIGNMENT_LOCKED = "assignment-locked"
    CANCELLATION_NOT_PERMITTED = "cancellation-not-permitted"
    MISSING_CANCELLATION_REASON = "missing-cancellation-reason"
    MISSING_EXTRA_TIME_REASON = "missing-extra-time-reason"


@dataclass(frozen=True, slots=True, kw_only=True)
class Rejection:
    """A bulk edit blocked before anything was applied."""

    kind: RejectionKind
    fields: tuple[str, ...] = ()
    order_ids: tuple[str, ...] = ()
    reason: str | None = None

    @property
    def message(self) -> str:
        parts = [self.kind.value]
        if self.fields:
            parts.append(f"fields={', '.join(self.fields)}")
        if self.order_ids:
            parts.append(f"orders={', '.join(self.order_ids)}")
        if self.reason:
            parts.append(f"reason={self.reason}")
        return "; ".join(parts)


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolvedPatch:
    """What a bulk edit means for one order.

    ``patch`` is the request sent to the remote authority (extra time stays a
    delta); ``changes`` are the resulting field values applied locally.
    ``dropped`` lists request fields that do not apply to this order.
    """

    order_id: str
    patch: BulkPatch
    changes: Mapping[str, object] = field(default_factory=dict[str, object])
    dropped: tuple[str, ...] = ()

    @property
    def is_noop(self) -> bool:
        return not self.changes
