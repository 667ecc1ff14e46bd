"""Application wiring: one live, optimistically edited order board per site."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from orderflow.adapters.orders_api import HttpOrderGateway
from orderflow.adapters.realtime import InMemoryEventHub
from orderflow.adapters.sqlalchemy import SqlAlchemyOrderAuthority, is_started, startup
from orderflow.config.sync import SyncConfig, get_sync_config
from orderflow.domain.delivery import assignable_delivery_people
from orderflow.domain.lifecycle import (
    BulkMutationPlanner,
    can_edit_assignment,
    compute_allowed_statuses,
    status_options,
)
from orderflow.domain.model import MONOTONIC_ORDER_FIELDS, OrderFilters
from orderflow.domain.order_mutations import OrderMutationService
from orderflow.domain.sync import (
    DebouncedReloader,
    FilterFingerprintCache,
    OptimisticStore,
    ReconnectPolicy,
    RemoteEventReconciler,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from sqlalchemy.engine import Engine

    from orderflow.domain.lifecycle import AssignmentDecision
    from orderflow.domain.model import BulkPatch, DeliveryPerson, Order, OrderStatus, Role
    from orderflow.domain.order_mutations import BulkMutationResult
    from orderflow.domain.ports import (
        DeliveryDirectory,
        OrderEventSource,
        OrderLoader,
        OrderMutationGateway,
        RoleProvider,
    )
    from orderflow.domain.sync import ReconcilerStatus

log = getLogger(__name__)


class OrderBoard:
    """Order list for one site that stays in sync with the remote authority.

    Edits show up locally at once and are confirmed or undone when the
    authority answers. Remote notifications and filtered reloads feed the same
    store, so the visible list is always the newest known state with any
    unconfirmed local edits on top.
    """

    def __init__(
        self,
        *,
        site_id: str,
        gateway: OrderMutationGateway,
        loader: OrderLoader,
        directory: DeliveryDirectory,
        events: OrderEventSource,
        role_provider: RoleProvider,
        sync_config: SyncConfig | None = None,
        filters: OrderFilters | None = None,
        closing: Sequence[Callable[[], Awaitable[None]]] = (),
    ) -> None:
        config = sync_config or get_sync_config()
        self.site_id = site_id
        self.config = config
        self.filters = filters or OrderFilters()
        self.role_provider = role_provider
        self.directory = directory
        self._closing = tuple(closing)

        self.store: OptimisticStore[Order] = OptimisticStore(
            name="order", monotonic_fields=MONOTONIC_ORDER_FIELDS
        )
        self.planner = BulkMutationPlanner(
            elevated_roles=config.elevated_roles,
            cancellation_roles=config.cancellation_roles,
        )
        self.mutations = OrderMutationService(
            self.store,
            gateway,
            role_provider=role_provider,
            planner=self.planner,
            timeout_seconds=config.mutation_timeout_seconds,
        )
        self.reloader = DebouncedReloader(
            FilterFingerprintCache(),
            loader.load_orders,
            self.store.replace_all,
            debounce_seconds=config.debounce_seconds,
        )
        self.reconciler = RemoteEventReconciler(
            self.store,
            events,
            site_id=site_id,
            resync=self.reload,
            policy=ReconnectPolicy(
                base_delay_seconds=config.reconnect_base_delay_seconds,
                max_delay_seconds=config.reconnect_max_delay_seconds,
                max_attempts=config.reconnect_max_attempts,
            ),
        )

    # Lifecycle ---------------------------------------------------------------

    async def start(self) -> None:
        log.info("Starting order board for site %s", self.site_id)
        await self.reloader.request(self.filters, self.site_id, force=True)
        await self.reconciler.start()

    async def stop(self) -> None:
        await self.reconciler.stop()
        for close in self._closing:
            await close()
        log.info("Stopped order board for site %s", self.site_id)

    # Loading -----------------------------------------------------------------

    async def load(self, filters: OrderFilters | None = None, *, force: bool = False) -> bool:
        """Reload when ``filters`` differ from the last load (or when forced)."""

        if filters is not None:
            self.filters = filters
        return await self.reloader.request(self.filters, self.site_id, force=force)

    async def reload(self) -> bool:
        return await self.load(force=True)

    def orders(self) -> list[Order]:
        return sorted(self.store.items(), key=lambda order: order.created_at, reverse=True)

    # Editing -----------------------------------------------------------------

    async def update_orders(
        self, order_ids: Sequence[str], patch: BulkPatch
    ) -> BulkMutationResult:
        return await self.mutations.submit(order_ids, patch)

    def allowed_statuses(self, order_ids: Sequence[str]) -> list[OrderStatus]:
        selection = self.mutations.selection(order_ids)
        return compute_allowed_statuses(
            (order.status for order in selection), (order.order_type for order in selection)
        )

    def status_labels(self, order_ids: Sequence[str]) -> list[tuple[OrderStatus, str]]:
        selection = self.mutations.selection(order_ids)
        return status_options(
            [order.status for order in selection], [order.order_type for order in selection]
        )

    def assignment_state(self, order_ids: Sequence[str]) -> AssignmentDecision:
        return can_edit_assignment(
            self.mutations.selection(order_ids),
            self.role_provider(),
            elevated_roles=self.config.elevated_roles,
        )

    async def delivery_people(self) -> list[DeliveryPerson]:
        people = await self.directory.list_delivery_people(self.site_id)
        return assignable_delivery_people(
            people, self.site_id, shared_ids=self.config.shared_delivery_person_ids
        )

    # Connection --------------------------------------------------------------

    def connection_state(self) -> ReconcilerStatus:
        return self.reconciler.status()

    async def reconnect(self) -> None:
        await self.reconciler.reconnect()

    async def test_connection(self) -> bool:
        return await self.reconciler.test_connection()


def fixed_role(role: Role) -> RoleProvider:
    def provide() -> Role:
        return role

    return provide


def build_http_order_board(
    site_id: str,
    *,
    role: Role,
    events: OrderEventSource,
    gateway: HttpOrderGateway | None = None,
    sync_config: SyncConfig | None = None,
    filters: OrderFilters | None = None,
) -> OrderBoard:
    """Board backed by the remote order API and an externally supplied feed."""

    effective_gateway = gateway or HttpOrderGateway()
    return OrderBoard(
        site_id=site_id,
        gateway=effective_gateway,
        loader=effective_gateway,
        directory=effective_gateway,
        events=events,
        role_provider=fixed_role(role),
        sync_config=sync_config,
        filters=filters,
        closing=(effective_gateway.aclose,),
    )


def build_sql_order_board(
    site_id: str,
    *,
    role: Role,
    engine: Engine | None = None,
    database_uri: str | None = None,
    hub: InMemoryEventHub | None = None,
    sync_config: SyncConfig | None = None,
    filters: OrderFilters | None = None,
) -> tuple[OrderBoard, SqlAlchemyOrderAuthority, InMemoryEventHub]:
    """Board backed by the local SQL authority with an in-process change feed."""

    if not is_started():
        startup(engine=engine, database_uri=database_uri)
    config = sync_config or get_sync_config()
    effective_hub = hub or InMemoryEventHub()
    authority = SqlAlchemyOrderAuthority(
        publish=effective_hub.publish,
        shared_delivery_person_ids=config.shared_delivery_person_ids,
    )
    board = OrderBoard(
        site_id=site_id,
        gateway=authority,
        loader=authority,
        directory=authority,
        events=effective_hub,
        role_provider=fixed_role(role),
        sync_config=config,
        filters=filters,
    )
    return board, authority, effective_hub
