"""HTTP client for the remote order API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from orderflow.adapters.http_resilience import ResilientClient
from orderflow.config.orders_api import OrdersApiConfig, get_orders_api_config
from orderflow.domain.ports import (
    DeliveryDirectory,
    GatewayError,
    OrderLoader,
    OrderMutationGateway,
)

from .schema import (
    BulkUpdateResponse,
    DeliveryPeopleResponse,
    ErrorResponse,
    OrdersApiBaseModel,
    OrdersResponse,
)
from .translator import (
    build_bulk_update,
    build_order_query,
    parse_delivery_person,
    parse_mutation_results,
    parse_order,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from orderflow.config.http_resilience import ResilienceConfig
    from orderflow.domain.model import BulkPatch, DeliveryPerson, Order, OrderFilters
    from orderflow.domain.ports import MutationAck

log = getLogger(__name__)

ORDERS_PATH = "orders"
BULK_UPDATE_PATH = "orders/bulk-update"


def _directory_path(site_id: str) -> str:
    return f"sites/{site_id}/delivery-people"


def _should_cache_directory(payload: object) -> bool:
    """Only cache well-formed directory listings, never error bodies."""

    try:
        DeliveryPeopleResponse.model_validate(payload)
    except ValidationError:
        return False
    return True


def _default_config() -> OrdersApiConfig:
    return get_orders_api_config(cache_predicate=_should_cache_directory)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class OrdersApiError(GatewayError):
    """Raised when the order API fails a request as a whole."""

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


@dataclass(slots=True)
class HttpOrderGateway:
    """Order mutations, order loads and the delivery directory over HTTP.

    Clients are created on first use and kept until ``aclose`` so the
    directory cache survives between calls.
    """

    config: OrdersApiConfig = field(default_factory=_default_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)
    _directory_client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> HttpOrderGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for client in (self._client, self._directory_client):
            if client is not None:
                await client.aclose()
        self._client = None
        self._directory_client = None

    async def update_orders(
        self, order_ids: Sequence[str], patch: BulkPatch
    ) -> Mapping[str, MutationAck]:
        body = build_bulk_update(order_ids, patch)
        log.info("Sending update for %s orders: %s", len(order_ids), patch.fields_set())
        payload = await self._perform_request(
            self._orders_client(), "POST", BULK_UPDATE_PATH, json=body
        )
        response = self._validate(BulkUpdateResponse, payload)
        return parse_mutation_results(order_ids, response.results)

    async def load_orders(self, filters: OrderFilters, site_id: str) -> list[Order]:
        payload = await self._perform_request(
            self._orders_client(),
            "GET",
            ORDERS_PATH,
            params=build_order_query(filters, site_id),
        )
        response = self._validate(OrdersResponse, payload)
        return [parse_order(order) for order in response.orders]

    async def list_delivery_people(self, site_id: str) -> list[DeliveryPerson]:
        payload = await self._perform_request(
            self._directory(), "GET", _directory_path(site_id)
        )
        response = self._validate(DeliveryPeopleResponse, payload)
        return [parse_delivery_person(person) for person in response.delivery_people]

    def _orders_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    def _directory(self) -> ResilientClient:
        if self._directory_client is None:
            self._directory_client = self.client_factory(self.config.directory_resilience)
        return self._directory_client

    async def _perform_request(
        self,
        client: ResilientClient,
        method: str,
        path: str,
        *,
        json: object | None = None,
        params: Mapping[str, str] | None = None,
    ) -> object:
        try:
            response = await client.request(method, path, json=json, params=params)
        except httpx.TransportError as exc:
            log.error(f"Order API transport error on {method} {path}: {exc}")
            raise OrdersApiError(f"Order API unreachable: {exc}") from exc

        payload = _json_or_none(response)
        if isinstance(payload, dict) and "error" in payload:
            try:
                error = ErrorResponse.model_validate(payload).error
            except ValidationError:
                error = None
            if error is not None:
                log.error(f"Order API error {error.code}: {error.message}")
                raise OrdersApiError(error.message, code=error.code, status=response.status_code)

        if response.is_error:
            raise OrdersApiError(
                f"Order API returned HTTP {response.status_code} for {method} {path}",
                status=response.status_code,
            )
        return payload

    @staticmethod
    def _validate[TModel: OrdersApiBaseModel](
        model: type[TModel], payload: object
    ) -> TModel:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise OrdersApiError(f"Unexpected order API response: {exc}") from exc


def _json_or_none(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return None


if TYPE_CHECKING:
    _gateway_check: OrderMutationGateway = HttpOrderGateway()
    _loader_check: OrderLoader = HttpOrderGateway()
    _directory_check: DeliveryDirectory = HttpOrderGateway()
