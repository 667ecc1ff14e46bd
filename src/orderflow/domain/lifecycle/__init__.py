"""Guarded order state machine: status policy, assignment guard and bulk planner."""

from __future__ import annotations

from .assignment_guard import (
    DEFAULT_ELEVATED_ROLES,
    can_edit_assignment,
    is_mixed,
    requires_assignment_for_transition,
)
from .decisions import (
    AssignmentDecision,
    AssignmentLockReason,
    Rejection,
    RejectionKind,
    ResolvedPatch,
)
from .planner import DEFAULT_CANCELLATION_ROLES, BulkMutationPlanner, PlanResult
from .status_policy import (
    TRANSITIONS,
    can_transition,
    compute_allowed_statuses,
    is_terminal,
    status_label,
    status_options,
)

__all__ = [
    "DEFAULT_CANCELLATION_ROLES",
    "DEFAULT_ELEVATED_ROLES",
    "TRANSITIONS",
    "AssignmentDecision",
    "AssignmentLockReason",
    "BulkMutationPlanner",
    "PlanResult",
    "Rejection",
    "RejectionKind",
    "ResolvedPatch",
    "can_edit_assignment",
    "can_transition",
    "compute_allowed_statuses",
    "is_mixed",
    "is_terminal",
    "requires_assignment_for_transition",
    "status_label",
    "status_options",
]
