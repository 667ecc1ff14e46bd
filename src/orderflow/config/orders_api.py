"""Remote order API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, ShouldCacheHook

ORDERS_API_TIMEOUT_SECONDS = 12.0
DIRECTORY_CACHE_TTL_SECONDS = 30.0


@dataclass(frozen=True)
class OrdersApiConfig:
    """Holds the remote order API endpoint, credentials and client policies.

    ``resilience`` governs order reads and mutations and never caches;
    ``directory_resilience`` governs the delivery-personnel directory, whose
    responses may be served from a short-lived cache.
    """

    base_url: str
    api_token: str
    resilience: ResilienceConfig
    directory_resilience: ResilienceConfig


def get_orders_api_config(
    *,
    resilience: ResilienceConfig | None = None,
    directory_resilience: ResilienceConfig | None = None,
    cache_predicate: ShouldCacheHook | None = None,
) -> OrdersApiConfig:
    values = require_env_vars(("ORDERFLOW_API_BASE_URL", "ORDERFLOW_API_TOKEN"))
    base_url = values["ORDERFLOW_API_BASE_URL"].rstrip("/") + "/"
    headers = {"Authorization": f"Bearer {values['ORDERFLOW_API_TOKEN']}"}
    return OrdersApiConfig(
        base_url=base_url,
        api_token=values["ORDERFLOW_API_TOKEN"],
        resilience=resilience
        or ResilienceConfig(
            name="orders",
            base_url=base_url,
            timeout_seconds=ORDERS_API_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            cache=None,
            default_headers=headers,
        ),
        directory_resilience=directory_resilience
        or ResilienceConfig(
            name="delivery-directory",
            base_url=base_url,
            timeout_seconds=ORDERS_API_TIMEOUT_SECONDS,
            cache=CacheConfig(
                backend="memory",
                default_ttl_seconds=DIRECTORY_CACHE_TTL_SECONDS,
                should_cache=cache_predicate,
            ),
            default_headers=headers,
        ),
    )
