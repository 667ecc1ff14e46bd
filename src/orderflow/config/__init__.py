"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_float, optional_env_ids, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .orders_api import OrdersApiConfig, get_orders_api_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "MissingConfigurationError",
    "OrdersApiConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SyncConfig",
    "configure_logging",
    "get_database_config",
    "get_orders_api_config",
    "get_storage_config",
    "get_sync_config",
    "optional_env_float",
    "optional_env_ids",
    "require_env_vars",
]
