"""Synchronization defaults for the optimistic order engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from orderflow.domain.model.enums import Role

from .env import optional_env_float, optional_env_ids

DEFAULT_MUTATION_TIMEOUT_SECONDS = 12.0
DEFAULT_DEBOUNCE_SECONDS = 0.3
DEFAULT_RECONNECT_BASE_DELAY_SECONDS = 1.0
DEFAULT_RECONNECT_MAX_DELAY_SECONDS = 30.0
DEFAULT_RECONNECT_MAX_ATTEMPTS = 5
DEFAULT_SHARED_DELIVERY_PERSON_IDS = frozenset({"1"})


@dataclass(frozen=True, slots=True)
class SyncConfig:
    mutation_timeout_seconds: float = DEFAULT_MUTATION_TIMEOUT_SECONDS
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    reconnect_base_delay_seconds: float = DEFAULT_RECONNECT_BASE_DELAY_SECONDS
    reconnect_max_delay_seconds: float = DEFAULT_RECONNECT_MAX_DELAY_SECONDS
    reconnect_max_attempts: int = DEFAULT_RECONNECT_MAX_ATTEMPTS
    elevated_roles: frozenset[Role] = field(
        default_factory=lambda: frozenset({Role.ADMIN, Role.SITE_ADMIN})
    )
    cancellation_roles: frozenset[Role] = field(
        default_factory=lambda: frozenset({Role.ADMIN, Role.SITE_ADMIN})
    )
    # couriers listed for every site regardless of their home site
    shared_delivery_person_ids: frozenset[str] = DEFAULT_SHARED_DELIVERY_PERSON_IDS


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        mutation_timeout_seconds=optional_env_float(
            "ORDERFLOW_MUTATION_TIMEOUT", DEFAULT_MUTATION_TIMEOUT_SECONDS
        ),
        debounce_seconds=optional_env_float("ORDERFLOW_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS),
        shared_delivery_person_ids=optional_env_ids(
            "ORDERFLOW_SHARED_COURIERS", DEFAULT_SHARED_DELIVERY_PERSON_IDS
        ),
    )
