"""Application service for single and bulk order edits."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.domain.errors import RemoteFailure, ValidationRejection
from orderflow.domain.lifecycle import BulkMutationPlanner, Rejection
from orderflow.domain.ports.mutation import GatewayError, MutationAck
from orderflow.domain.sync.optimistic_store import UnknownEntityError

DEFAULT_MUTATION_TIMEOUT_SECONDS = 12.0

if TYPE_CHECKING:
    from collections.abc import Sequence

    from orderflow.domain.lifecycle import PlanResult, ResolvedPatch
    from orderflow.domain.model import BulkPatch, Order
    from orderflow.domain.ports import OrderMutationGateway, RoleProvider
    from orderflow.domain.sync import OptimisticStore, PendingMutation

log = getLogger(__name__)


@dataclass(slots=True)
class BulkMutationResult:
    """Outcome of one submitted edit, per order."""

    resolved: list[ResolvedPatch]
    committed: list[str] = field(default_factory=list[str])
    failures: dict[str, RemoteFailure] = field(default_factory=dict[str, RemoteFailure])
    skipped: list[str] = field(default_factory=list[str])

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        for failure in self.failures.values():
            raise failure


class OrderMutationService:
    """Plan an edit, show it immediately, then confirm or undo it remotely."""

    def __init__(
        self,
        store: OptimisticStore[Order],
        gateway: OrderMutationGateway,
        *,
        role_provider: RoleProvider,
        planner: BulkMutationPlanner | None = None,
        timeout_seconds: float = DEFAULT_MUTATION_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.role_provider = role_provider
        self.planner = planner or BulkMutationPlanner()
        self.timeout_seconds = timeout_seconds

    def selection(self, order_ids: Sequence[str]) -> list[Order]:
        orders: list[Order] = []
        for order_id in dict.fromkeys(order_ids):
            order = self.store.get(order_id)
            if order is None:
                raise UnknownEntityError(f"Unknown order id: {order_id}")
            orders.append(order)
        return orders

    def preview(self, order_ids: Sequence[str], patch: BulkPatch) -> PlanResult:
        """Plan against the current local state without applying anything."""

        return self.planner.plan(self.selection(order_ids), patch, self.role_provider())

    async def submit(self, order_ids: Sequence[str], patch: BulkPatch) -> BulkMutationResult:
        outcome = self.preview(order_ids, patch)
        if isinstance(outcome, Rejection):
            log.info("Rejected edit for %s: %s", list(order_ids), outcome.message)
            raise ValidationRejection(outcome)

        result = BulkMutationResult(resolved=outcome)
        effective: list[ResolvedPatch] = []
        for resolved in outcome:
            if resolved.is_noop:
                result.skipped.append(resolved.order_id)
            else:
                effective.append(resolved)
        if not effective:
            log.info("Edit for %s changes nothing; not sent", list(order_ids))
            return result

        tickets: dict[str, PendingMutation[Order]] = {}
        for resolved in effective:
            self.store.apply(resolved.order_id, resolved.changes)
            tickets[resolved.order_id] = self.store.pending(resolved.order_id)  # pyright: ignore[reportArgumentType]

        async with self.store.sequenced(tickets):
            live = [resolved for resolved in effective if tickets[resolved.order_id].live]
            self._drop_discarded(effective, live, result)
            acks, timed_out = await self._send(live) if live else ({}, False)
            self._settle([resolved.order_id for resolved in live], acks, timed_out, result)
        return result

    async def update_order(self, order_id: str, patch: BulkPatch) -> BulkMutationResult:
        return await self.submit([order_id], patch)

    def _drop_discarded(
        self,
        effective: list[ResolvedPatch],
        live: list[ResolvedPatch],
        result: BulkMutationResult,
    ) -> None:
        """Report edits whose pending entry was rolled back while they waited their turn."""

        live_ids = {resolved.order_id for resolved in live}
        for resolved in effective:
            if resolved.order_id in live_ids:
                continue
            failure = RemoteFailure(
                "Edit discarded before sending: an earlier edit to this order was rolled back",
                order_ids=(resolved.order_id,),
            )
            result.failures[resolved.order_id] = failure
            log.warning("Not sending order %s: %s", resolved.order_id, failure.reason)

    async def _send(
        self, effective: list[ResolvedPatch]
    ) -> tuple[dict[str, MutationAck], bool]:
        groups: dict[BulkPatch, list[str]] = {}
        for resolved in effective:
            groups.setdefault(resolved.patch, []).append(resolved.order_id)

        acks: dict[str, MutationAck] = {}
        try:
            async with asyncio.timeout(self.timeout_seconds):
                async with asyncio.TaskGroup() as group:
                    for patch, ids in groups.items():
                        group.create_task(self._send_group(ids, patch, acks))
        except TimeoutError:
            log.error(
                "Order update timed out after %.1fs for %s",
                self.timeout_seconds,
                [resolved.order_id for resolved in effective if resolved.order_id not in acks],
            )
            return acks, True
        except BaseException:
            for resolved in effective:
                self.store.rollback(resolved.order_id)
            raise
        return acks, False

    async def _send_group(
        self, ids: list[str], patch: BulkPatch, acks: dict[str, MutationAck]
    ) -> None:
        try:
            response = await self.gateway.update_orders(ids, patch)
        except GatewayError as exc:
            log.error("Order update failed for %s: %s", ids, exc)
            for order_id in ids:
                acks[order_id] = MutationAck.failure(str(exc))
            return
        for order_id in ids:
            acks[order_id] = response.get(order_id) or MutationAck.failure(
                "No acknowledgement for order"
            )

    def _settle(
        self,
        ids: list[str],
        acks: dict[str, MutationAck],
        timed_out: bool,
        result: BulkMutationResult,
    ) -> None:
        for order_id in ids:
            ack = acks.get(order_id)
            if ack is not None and ack.ok:
                self.store.commit(order_id)
                result.committed.append(order_id)
                continue
            self.store.rollback(order_id)
            if ack is None:
                reason = f"Timed out after {self.timeout_seconds:.1f}s"
                failure = RemoteFailure(reason, order_ids=(order_id,), timed_out=timed_out)
            else:
                failure = RemoteFailure(ack.error or "Rejected by server", order_ids=(order_id,))
            result.failures[order_id] = failure
            log.warning("Rolled back order %s: %s", order_id, failure.reason)
        log.info(
            "Order edit settled: committed=%s, rolled_back=%s",
            len(result.committed),
            len(result.failures),
        )
