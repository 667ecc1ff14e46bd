"""Pydantic models describing the remote order API payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orderflow.domain.model import OrderStatus, OrderType, PaymentStatus


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _coerce_id(value: object) -> object:
    if isinstance(value, int):
        return str(value)
    return value


class OrdersApiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OrderPayload(OrdersApiBaseModel):
    id: str
    status: OrderStatus
    order_type: OrderType = Field(alias="type")
    site_id: str
    created_at: datetime
    assigned_delivery_person_id: str | None = Field(default=None, alias="delivery_person_id")
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_status_2: PaymentStatus | None = None
    has_multiple_payments: bool = False
    extra_time_minutes: int = 0
    extra_time_reason: str | None = None
    cancellation_reason: str | None = None
    delivery_eta: datetime | None = None

    _normalize_ids = field_validator(
        "id", "site_id", "assigned_delivery_person_id", mode="before"
    )(_coerce_id)
    _normalize_text = field_validator(
        "extra_time_reason", "cancellation_reason", mode="before"
    )(_blank_to_none)

    @field_validator("extra_time_minutes", mode="before")
    @classmethod
    def _null_extra_time(cls, value: object) -> object:
        return 0 if value is None else value


class OrdersResponse(OrdersApiBaseModel):
    orders: list[OrderPayload]


class DeliveryPersonPayload(OrdersApiBaseModel):
    id: str
    name: str
    site_id: str
    available: bool = True
    active_order_count: int = Field(default=0, alias="active_orders")
    phone: str | None = None

    _normalize_ids = field_validator("id", "site_id", mode="before")(_coerce_id)
    _normalize_phone = field_validator("phone", mode="before")(_blank_to_none)


class DeliveryPeopleResponse(OrdersApiBaseModel):
    delivery_people: list[DeliveryPersonPayload]


class PatchPayload(OrdersApiBaseModel):
    """Wire form of a bulk patch; unset fields are omitted on serialization."""

    status: OrderStatus | None = None
    extra_time: int | None = None
    extra_time_reason: str | None = None
    delivery_person_id: str | None = None
    payment_status: PaymentStatus | None = None
    payment_status_2: PaymentStatus | None = None
    cancellation_reason: str | None = None


class BulkUpdateRequest(OrdersApiBaseModel):
    order_ids: list[str]
    patch: PatchPayload


class MutationResultPayload(OrdersApiBaseModel):
    id: str
    ok: bool
    error: str | None = None

    _normalize_id = field_validator("id", mode="before")(_coerce_id)


class BulkUpdateResponse(OrdersApiBaseModel):
    results: list[MutationResultPayload]


class ErrorDetail(OrdersApiBaseModel):
    code: str
    message: str


class ErrorResponse(OrdersApiBaseModel):
    error: ErrorDetail
