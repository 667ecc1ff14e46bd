"""SQLAlchemy table metadata for orders, sites and delivery personnel."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
)

from orderflow.domain.model import DeliveryPerson, Order, OrderStatus, OrderType, PaymentStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine, RowMapping

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

site_table = Table(
    "site",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
)

delivery_person_table = Table(
    "delivery_person",
    metadata,
    Column("id", String, primary_key=True),
    Column("site_id", String, ForeignKey("site.id"), nullable=False),
    Column("name", String, nullable=False),
    Column("phone", String, nullable=True),
    Column("available", Boolean, nullable=False, default=True),
)

order_table = Table(
    "order",
    metadata,
    Column("id", String, primary_key=True),
    Column("site_id", String, ForeignKey("site.id"), nullable=False),
    Column("status", Enum(OrderStatus, native_enum=False), nullable=False),
    Column("order_type", Enum(OrderType, native_enum=False), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column(
        "assigned_delivery_person_id",
        String,
        ForeignKey("delivery_person.id"),
        nullable=True,
    ),
    Column(
        "payment_status",
        Enum(PaymentStatus, native_enum=False),
        nullable=False,
        default=PaymentStatus.PENDING,
    ),
    Column("payment_status_2", Enum(PaymentStatus, native_enum=False), nullable=True),
    Column("has_multiple_payments", Boolean, nullable=False, default=False),
    Column("extra_time_minutes", Integer, nullable=False, default=0),
    Column("extra_time_reason", String, nullable=True),
    Column("cancellation_reason", String, nullable=True),
    Column("delivery_eta", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    Index("ix_order_site_created", "site_id", "created_at"),
)

ORDER_COLUMNS: tuple[str, ...] = (
    "id",
    "site_id",
    "status",
    "order_type",
    "created_at",
    "assigned_delivery_person_id",
    "payment_status",
    "payment_status_2",
    "has_multiple_payments",
    "extra_time_minutes",
    "extra_time_reason",
    "cancellation_reason",
    "delivery_eta",
)


def order_from_row(row: RowMapping) -> Order:
    return Order(**{name: row[name] for name in ORDER_COLUMNS})  # pyright: ignore[reportArgumentType]


def order_to_row(order: Order) -> dict[str, object]:
    return {name: getattr(order, name) for name in ORDER_COLUMNS}


def delivery_person_from_row(row: RowMapping, *, active_order_count: int = 0) -> DeliveryPerson:
    return DeliveryPerson(
        id=row["id"],
        name=row["name"],
        site_id=row["site_id"],
        available=row["available"],
        active_order_count=active_order_count,
        phone=row["phone"],
    )


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the order metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
