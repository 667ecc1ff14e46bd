#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from orderflow.adapters.orders_api import HttpOrderGateway
from orderflow.app import fixed_role
from orderflow.config import ConfigurationError, configure_logging, get_sync_config
from orderflow.domain.delivery import assignable_delivery_people
from orderflow.domain.errors import OrderLifecycleError
from orderflow.domain.lifecycle import BulkMutationPlanner, status_label
from orderflow.domain.model import (
    MONOTONIC_ORDER_FIELDS,
    BulkPatch,
    Order,
    OrderFilters,
    OrderStatus,
    OrderType,
    PaymentStatus,
    Role,
)
from orderflow.domain.order_mutations import OrderMutationService
from orderflow.domain.ports import GatewayError
from orderflow.domain.sync import OptimisticStore, UnknownEntityError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and edit orders for one site")
    parser.add_argument("--site", required=True, help="Site id to operate on")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    orders = commands.add_parser("orders", help="List orders")
    orders.add_argument("--status", type=OrderStatus, choices=list(OrderStatus))
    orders.add_argument("--type", dest="order_type", type=OrderType, choices=list(OrderType))
    orders.add_argument("--courier", help="Only orders assigned to this delivery person")

    commands.add_parser("couriers", help="List assignable delivery people")

    update = commands.add_parser("update", help="Apply one edit to one or more orders")
    update.add_argument("order_ids", nargs="+", metavar="ORDER_ID")
    update.add_argument("--role", type=Role, choices=list(Role), default=Role.AGENT)
    update.add_argument("--status", type=OrderStatus, choices=list(OrderStatus))
    update.add_argument("--courier", help="Delivery person id to assign")
    update.add_argument("--extra-time", type=int, help="Minutes to add to the order")
    update.add_argument("--reason", help="Reason for the extra time")
    update.add_argument("--cancel-reason", help="Reason for cancelling")
    update.add_argument("--payment", type=PaymentStatus, choices=list(PaymentStatus))
    update.add_argument("--payment-2", type=PaymentStatus, choices=list(PaymentStatus))
    return parser.parse_args(list(argv))


def _build_patch(args: argparse.Namespace) -> BulkPatch:
    if args.extra_time is not None and args.extra_time < 0:
        raise ValueError("Extra time must be non-negative")
    patch = BulkPatch(
        status=args.status,
        extra_time=args.extra_time,
        extra_time_reason=args.reason,
        assigned_delivery_person_id=args.courier,
        payment_status=args.payment,
        payment_status_2=args.payment_2,
        cancellation_reason=args.cancel_reason,
    )
    if patch.is_empty:
        raise ValueError("Nothing to change; pass at least one field")
    return patch


def _format_order(order: Order) -> str:
    label = status_label(order.status, (order.order_type,))
    courier = order.assigned_delivery_person_id or "-"
    extra = f" +{order.extra_time_minutes}min" if order.extra_time_minutes else ""
    return (
        f"{order.id:<12} {order.order_type:<9} {label:<20} courier={courier:<8} "
        f"payment={order.payment_status}{extra}"
    )


async def _list_orders(gateway: HttpOrderGateway, args: argparse.Namespace) -> None:
    filters = OrderFilters(
        status=args.status, order_type=args.order_type, delivery_person_id=args.courier
    )
    for order in await gateway.load_orders(filters, args.site):
        print(_format_order(order))


async def _list_couriers(gateway: HttpOrderGateway, args: argparse.Namespace) -> None:
    config = get_sync_config()
    people = assignable_delivery_people(
        await gateway.list_delivery_people(args.site),
        args.site,
        shared_ids=config.shared_delivery_person_ids,
    )
    for person in people:
        print(f"{person.id:<8} {person.name:<24} active={person.active_order_count}")


async def _update_orders(gateway: HttpOrderGateway, args: argparse.Namespace) -> bool:
    patch = _build_patch(args)
    config = get_sync_config()
    store: OptimisticStore[Order] = OptimisticStore(
        await gateway.load_orders(OrderFilters(), args.site),
        name="order",
        monotonic_fields=MONOTONIC_ORDER_FIELDS,
    )
    service = OrderMutationService(
        store,
        gateway,
        role_provider=fixed_role(args.role),
        planner=BulkMutationPlanner(
            elevated_roles=config.elevated_roles,
            cancellation_roles=config.cancellation_roles,
        ),
        timeout_seconds=config.mutation_timeout_seconds,
    )
    result = await service.submit(args.order_ids, patch)
    for order_id in result.committed:
        order = store.get(order_id)
        if order is not None:
            print(_format_order(order))
    for order_id in result.skipped:
        print(f"{order_id:<12} unchanged")
    for order_id, failure in result.failures.items():
        print(f"{order_id:<12} failed: {failure.reason}", file=sys.stderr)
    return result.ok


async def _run(args: argparse.Namespace) -> bool:
    async with HttpOrderGateway() as gateway:
        if args.command == "orders":
            await _list_orders(gateway, args)
            return True
        if args.command == "couriers":
            await _list_couriers(gateway, args)
            return True
        return await _update_orders(gateway, args)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    try:
        parsed_args = _parse_args(argv if argv is not None else sys.argv[1:])
        if parsed_args.command == "update":
            _build_patch(parsed_args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)
    try:
        succeeded = asyncio.run(_run(parsed_args))
    except (ConfigurationError, OrderLifecycleError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except UnknownEntityError as exc:
        print(f"Error: {exc.args[0]}", file=sys.stderr)
        sys.exit(2)
    except GatewayError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    if not succeeded:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def cli() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    cli()
