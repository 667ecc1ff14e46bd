"""Port for the remote order-mutation API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from orderflow.domain.model import BulkPatch


@dataclass(frozen=True, slots=True)
class MutationAck:
    """Per-order outcome reported by the remote authority."""

    ok: bool
    error: str | None = None

    @classmethod
    def success(cls) -> MutationAck:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> MutationAck:
        return cls(ok=False, error=error)


@runtime_checkable
class OrderMutationGateway(Protocol):
    """Apply one patch to a set of orders; report success per order id."""

    async def update_orders(
        self, order_ids: Sequence[str], patch: BulkPatch
    ) -> Mapping[str, MutationAck]: ...


class GatewayError(RuntimeError):
    """Raised by gateway adapters when a mutation request fails as a whole."""
