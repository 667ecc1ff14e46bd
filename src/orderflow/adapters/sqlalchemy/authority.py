"""SQL-backed remote authority for orders.

Plays the server's part: it re-checks every patch against the lifecycle
rules, persists accepted changes and publishes the resulting notifications.
Each order in a bulk update is accepted or refused on its own.

The coroutine methods run their session work in a worker thread so the
event loop keeps serving while the database is busy; notifications are
published from the calling loop once the thread returns.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, or_, select, update

from orderflow.domain.lifecycle import can_transition
from orderflow.domain.model import (
    ACTIVE_STATUSES,
    OrderStatus,
    PaymentStatus,
    RemoteEvent,
)
from orderflow.domain.ports import (
    DeliveryDirectory,
    MutationAck,
    OrderLoader,
    OrderMutationGateway,
)

from .mappings import (
    delivery_person_from_row,
    delivery_person_table,
    order_from_row,
    order_table,
    order_to_row,
    site_table,
)
from .state import session_factory as configured_session_factory

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlalchemy import RowMapping, Select
    from sqlalchemy.orm import Session, sessionmaker

    from orderflow.domain.model import BulkPatch, DeliveryPerson, Order, OrderFilters, Site
    from orderflow.domain.ports import EventCallback

log = getLogger(__name__)

type Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class PatchRefused(ValueError):
    """Raised internally when one order cannot take a patch."""


def apply_patch(order: Order, patch: BulkPatch) -> Order:
    """Authoritative application of ``patch`` to ``order``.

    ``extra_time`` is added to what the order already carries and pushes the
    delivery ETA back by the same amount. Reaching delivered settles payment
    unless the patch says otherwise.
    """

    changes: dict[str, object] = {}

    if patch.status is not None and patch.status is not order.status:
        if not can_transition(order.status, patch.status):
            raise PatchRefused(f"Cannot move order from {order.status} to {patch.status}")
        if patch.status is OrderStatus.CANCELLED and not (patch.cancellation_reason or "").strip():
            raise PatchRefused("Cancelling an order requires a reason")
        if (
            patch.status is OrderStatus.IN_TRANSIT
            and order.is_delivery
            and (patch.assigned_delivery_person_id or order.assigned_delivery_person_id) is None
        ):
            raise PatchRefused("A delivery person must be assigned before dispatch")
        changes["status"] = patch.status
        if patch.status is OrderStatus.CANCELLED:
            changes["cancellation_reason"] = patch.cancellation_reason
        if patch.status is OrderStatus.DELIVERED and patch.payment_status is None:
            changes["payment_status"] = PaymentStatus.PAID

    if patch.assigned_delivery_person_id is not None:
        if not order.is_delivery:
            raise PatchRefused("Pickup orders take no delivery person")
        if order.is_terminal:
            raise PatchRefused(f"Order is already {order.status}")
        changes["assigned_delivery_person_id"] = patch.assigned_delivery_person_id

    if patch.extra_time:
        if order.is_terminal:
            raise PatchRefused(f"Order is already {order.status}")
        changes["extra_time_minutes"] = order.extra_time_minutes + patch.extra_time
        changes["extra_time_reason"] = patch.extra_time_reason
        if order.delivery_eta is not None:
            changes["delivery_eta"] = order.delivery_eta + timedelta(minutes=patch.extra_time)

    if patch.payment_status is not None:
        changes["payment_status"] = patch.payment_status

    if patch.payment_status_2 is not None:
        if not order.has_multiple_payments:
            raise PatchRefused("Order has a single payment")
        changes["payment_status_2"] = patch.payment_status_2

    return replace(order, **changes)  # pyright: ignore[reportArgumentType]


class SqlAlchemyOrderAuthority:
    """Order store that validates, persists and broadcasts order changes."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        publish: EventCallback | None = None,
        shared_delivery_person_ids: frozenset[str] = frozenset(),
        clock: Clock = _utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._publish = publish
        self.shared_delivery_person_ids = shared_delivery_person_ids
        self._clock = clock
        # one session at a time; sqlite connections are shared across worker threads
        self._lock = threading.Lock()

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self._session_factory = configured_session_factory()
        return self._session_factory

    def set_publisher(self, publish: EventCallback | None) -> None:
        self._publish = publish

    # Mutations ---------------------------------------------------------------

    async def update_orders(
        self, order_ids: Sequence[str], patch: BulkPatch
    ) -> dict[str, MutationAck]:
        acks, accepted = await asyncio.to_thread(self._persist_patch, list(order_ids), patch)
        log.info("Accepted %s of %s order updates", len(accepted), len(order_ids))
        for order in accepted:
            self._emit(RemoteEvent.update(order.id, entity=order, site_id=order.site_id))
        return acks

    def _persist_patch(
        self, order_ids: list[str], patch: BulkPatch
    ) -> tuple[dict[str, MutationAck], list[Order]]:
        acks: dict[str, MutationAck] = {}
        accepted: list[Order] = []
        now = self._clock()
        with self._lock, self.session_factory.begin() as session:
            rows = session.execute(
                select(order_table).where(order_table.c.id.in_(order_ids))
            ).mappings()
            current = {row["id"]: order_from_row(row) for row in rows}
            for order_id in order_ids:
                order = current.get(order_id)
                if order is None:
                    acks[order_id] = MutationAck.failure("Order not found")
                    continue
                try:
                    self._check_assignee(session, patch)
                    updated = apply_patch(order, patch)
                except PatchRefused as exc:
                    log.info("Refused update for order %s: %s", order_id, exc)
                    acks[order_id] = MutationAck.failure(str(exc))
                    continue
                session.execute(
                    update(order_table)
                    .where(order_table.c.id == order_id)
                    .values(**order_to_row(updated), updated_at=now)
                )
                acks[order_id] = MutationAck.success()
                accepted.append(updated)
        return acks, accepted

    def add_site(self, site: Site) -> None:
        with self._lock, self.session_factory.begin() as session:
            session.execute(insert(site_table).values(id=site.id, name=site.name))

    def add_delivery_person(self, person: DeliveryPerson) -> None:
        with self._lock, self.session_factory.begin() as session:
            session.execute(
                insert(delivery_person_table).values(
                    id=person.id,
                    site_id=person.site_id,
                    name=person.name,
                    phone=person.phone,
                    available=person.available,
                )
            )

    def insert_order(self, order: Order) -> None:
        with self._lock, self.session_factory.begin() as session:
            session.execute(insert(order_table).values(**order_to_row(order)))
        self._emit(RemoteEvent.insert(order, entity_id=order.id, site_id=order.site_id))

    def delete_order(self, order_id: str) -> bool:
        with self._lock, self.session_factory.begin() as session:
            site_id = session.execute(
                select(order_table.c.site_id).where(order_table.c.id == order_id)
            ).scalar_one_or_none()
            if site_id is None:
                return False
            session.execute(delete(order_table).where(order_table.c.id == order_id))
        self._emit(RemoteEvent.delete(order_id, site_id=site_id))
        return True

    # Reads -------------------------------------------------------------------

    async def load_orders(self, filters: OrderFilters, site_id: str) -> list[Order]:
        statement = select(order_table).where(order_table.c.site_id == site_id)
        if filters.status is not None:
            statement = statement.where(order_table.c.status == filters.status)
        if filters.order_type is not None:
            statement = statement.where(order_table.c.order_type == filters.order_type)
        if filters.created_from is not None:
            statement = statement.where(order_table.c.created_at >= filters.created_from)
        if filters.created_to is not None:
            statement = statement.where(order_table.c.created_at <= filters.created_to)
        if filters.delivery_person_id is not None:
            statement = statement.where(
                order_table.c.assigned_delivery_person_id == filters.delivery_person_id
            )
        statement = statement.order_by(order_table.c.created_at.desc(), order_table.c.id)

        rows = await asyncio.to_thread(self._fetch_rows, statement)
        orders = [order_from_row(row) for row in rows]
        log.debug("Loaded %s orders for site %s", len(orders), site_id)
        return orders

    async def list_delivery_people(self, site_id: str) -> list[DeliveryPerson]:
        active_counts = (
            select(
                order_table.c.assigned_delivery_person_id.label("person_id"),
                func.count().label("active"),
            )
            .where(order_table.c.status.in_(sorted(ACTIVE_STATUSES)))
            .where(order_table.c.assigned_delivery_person_id.is_not(None))
            .group_by(order_table.c.assigned_delivery_person_id)
            .subquery()
        )
        statement = (
            select(delivery_person_table, active_counts.c.active)
            .outerjoin(active_counts, active_counts.c.person_id == delivery_person_table.c.id)
            .where(
                or_(
                    delivery_person_table.c.site_id == site_id,
                    delivery_person_table.c.id.in_(sorted(self.shared_delivery_person_ids)),
                )
            )
            .order_by(delivery_person_table.c.name)
        )
        rows = await asyncio.to_thread(self._fetch_rows, statement)
        return [
            delivery_person_from_row(row, active_order_count=row["active"] or 0) for row in rows
        ]

    # Internals ---------------------------------------------------------------

    def _fetch_rows(self, statement: Select[Any]) -> Sequence[RowMapping]:
        with self._lock, self.session_factory() as session:
            return session.execute(statement).mappings().all()

    def _check_assignee(self, session: Session, patch: BulkPatch) -> None:
        person_id = patch.assigned_delivery_person_id
        if person_id is None:
            return
        exists = session.execute(
            select(delivery_person_table.c.id).where(delivery_person_table.c.id == person_id)
        ).scalar_one_or_none()
        if exists is None:
            raise PatchRefused(f"Unknown delivery person: {person_id}")

    def _emit(self, event: RemoteEvent[Order]) -> None:
        if self._publish is not None:
            self._publish(event)


if TYPE_CHECKING:
    _gateway_check: OrderMutationGateway = SqlAlchemyOrderAuthority()
    _loader_check: OrderLoader = SqlAlchemyOrderAuthority()
    _directory_check: DeliveryDirectory = SqlAlchemyOrderAuthority()
