from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003
from datetime import UTC, datetime

import httpx
import pytest

from orderflow.adapters.http_resilience import ResilientClient
from orderflow.adapters.orders_api import HttpOrderGateway, OrdersApiError
from orderflow.adapters.orders_api.schema import OrderPayload
from orderflow.adapters.orders_api.translator import build_bulk_update, parse_order
from orderflow.config import MissingConfigurationError, ResilienceConfig
from orderflow.config.orders_api import OrdersApiConfig, get_orders_api_config
from orderflow.domain.model import (
    BulkPatch,
    OrderFilters,
    OrderStatus,
    OrderType,
    PaymentStatus,
)

BASE_URL = "https://orders.example.test/api/"


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or BASE_URL,
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


@pytest.fixture
def api_config(monkeypatch: pytest.MonkeyPatch) -> OrdersApiConfig:
    monkeypatch.setenv("ORDERFLOW_API_BASE_URL", BASE_URL.rstrip("/"))
    monkeypatch.setenv("ORDERFLOW_API_TOKEN", "token-123")
    return get_orders_api_config()


@pytest.fixture
def order_payload() -> dict[str, object]:
    return {
        "id": 101,
        "status": "kitchen",
        "type": "delivery",
        "site_id": "site-1",
        "created_at": "2024-05-01T12:00:00Z",
        "delivery_person_id": None,
        "payment_status": "pending",
        "extra_time_minutes": None,
        "extra_time_reason": "  ",
        "delivery_eta": "2024-05-01T12:45:00+00:00",
    }


def test_parse_order_normalises_payload(order_payload: dict[str, object]) -> None:
    order = parse_order(OrderPayload.model_validate(order_payload))

    assert order.id == "101"
    assert order.order_type is OrderType.DELIVERY
    assert order.status is OrderStatus.KITCHEN
    assert order.extra_time_minutes == 0
    assert order.extra_time_reason is None
    assert order.created_at == datetime(2024, 5, 1, 12, tzinfo=UTC)


def test_bulk_update_body_omits_unset_fields() -> None:
    body = build_bulk_update(
        ["1", "2"],
        BulkPatch(status=OrderStatus.IN_TRANSIT, assigned_delivery_person_id="dp-7"),
    )

    assert body == {
        "order_ids": ["1", "2"],
        "patch": {"status": "in_transit", "delivery_person_id": "dp-7"},
    }


def test_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ORDERFLOW_API_BASE_URL", raising=False)
    monkeypatch.setenv("ORDERFLOW_API_TOKEN", "token-123")

    with pytest.raises(MissingConfigurationError) as exc:
        get_orders_api_config()

    assert "ORDERFLOW_API_BASE_URL" in str(exc.value)


def test_load_orders_sends_filters_and_auth(
    api_config: OrdersApiConfig, order_payload: dict[str, object]
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"orders": [order_payload]})

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))

    async def scenario() -> list[str]:
        async with gateway:
            orders = await gateway.load_orders(
                OrderFilters(status=OrderStatus.KITCHEN), "site-1"
            )
        return [order.id for order in orders]

    assert asyncio.run(scenario()) == ["101"]
    request = seen[0]
    assert request.url.path == "/api/orders"
    assert request.url.params["site_id"] == "site-1"
    assert request.url.params["status"] == "kitchen"
    assert "order_type" not in request.url.params


def test_update_orders_maps_per_order_results(api_config: OrdersApiConfig) -> None:
    bodies: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": "1", "ok": True},
                    {"id": 2, "ok": False, "error": "Order already delivered"},
                    {"id": "99", "ok": True},
                ]
            },
        )

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))
    patch = BulkPatch(payment_status=PaymentStatus.PAID)

    acks = asyncio.run(gateway.update_orders(["1", "2"], patch))

    assert bodies == [{"order_ids": ["1", "2"], "patch": {"payment_status": "paid"}}]
    assert acks["1"].ok
    assert not acks["2"].ok
    assert acks["2"].error == "Order already delivered"
    assert "99" not in acks


def test_application_error_raises(api_config: OrdersApiConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(
            403, json={"error": {"code": "forbidden", "message": "Role may not edit"}}
        )

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))

    with pytest.raises(OrdersApiError) as exc:
        asyncio.run(gateway.update_orders(["1"], BulkPatch(status=OrderStatus.KITCHEN)))

    assert exc.value.code == "forbidden"
    assert exc.value.status == 403
    assert str(exc.value) == "Role may not edit"


def test_http_error_without_body_raises(api_config: OrdersApiConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(502, text="Bad gateway")

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))

    with pytest.raises(OrdersApiError) as exc:
        asyncio.run(gateway.load_orders(OrderFilters(), "site-1"))

    assert exc.value.status == 502


def test_transport_error_is_wrapped(api_config: OrdersApiConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))

    with pytest.raises(OrdersApiError, match="unreachable"):
        asyncio.run(gateway.load_orders(OrderFilters(), "site-1"))


def test_unexpected_payload_raises(api_config: OrdersApiConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, json={"rows": []})

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))

    with pytest.raises(OrdersApiError, match="Unexpected"):
        asyncio.run(gateway.load_orders(OrderFilters(), "site-1"))


def test_directory_lists_people_for_site(api_config: OrdersApiConfig) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(
            200,
            json={
                "delivery_people": [
                    {"id": 7, "name": "Ana", "site_id": "site-1", "active_orders": 2},
                    {"id": "1", "name": "Shared", "site_id": "site-3", "phone": ""},
                ]
            },
        )

    gateway = HttpOrderGateway(config=api_config, client_factory=_make_client_factory(handler))

    people = asyncio.run(gateway.list_delivery_people("site-1"))

    assert seen == ["/api/sites/site-1/delivery-people"]
    assert [(person.id, person.active_order_count) for person in people] == [("7", 2), ("1", 0)]
    assert people[1].phone is None


def test_clients_are_reused_until_closed(api_config: OrdersApiConfig) -> None:
    created: list[ResilienceConfig] = []
    inner = _make_client_factory(lambda request: httpx.Response(200, json={"orders": []}))

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        created.append(resilience)
        return inner(resilience)

    gateway = HttpOrderGateway(config=api_config, client_factory=factory)

    async def scenario() -> None:
        await gateway.load_orders(OrderFilters(), "site-1")
        await gateway.load_orders(OrderFilters(), "site-2")
        await gateway.aclose()
        await gateway.load_orders(OrderFilters(), "site-1")

    asyncio.run(scenario())

    assert [config.name for config in created] == ["orders", "orders"]
