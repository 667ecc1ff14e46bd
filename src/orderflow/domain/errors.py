"""Error taxonomy for order mutations.

``ValidationRejection`` is raised before anything is applied or sent.
``RemoteFailure`` always describes an edit that was applied optimistically and
has already been rolled back. Both are scoped to the order ids they name.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from orderflow.domain.lifecycle.decisions import Rejection


class OrderLifecycleError(RuntimeError):
    """Base class for order mutation errors."""


class ValidationRejection(OrderLifecycleError):
    """Raised when the planner blocks a bulk edit."""

    def __init__(self, rejection: Rejection) -> None:
        super().__init__(f"Bulk edit rejected: {rejection.message}")
        self.rejection = rejection

    @property
    def kind(self) -> str:
        return self.rejection.kind.value


class RemoteFailure(OrderLifecycleError):
    """Raised when the remote authority did not confirm an optimistic edit."""

    def __init__(
        self,
        reason: str,
        *,
        order_ids: Iterable[str] = (),
        timed_out: bool = False,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.order_ids = tuple(order_ids)
        self.timed_out = timed_out
