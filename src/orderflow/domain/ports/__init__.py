"""Domain port definitions for adapters."""

from __future__ import annotations

from .events import EventCallback, EventSourceError, OrderEventSource, StateCallback
from .loading import DeliveryDirectory, OrderLoader, RoleProvider
from .mutation import GatewayError, MutationAck, OrderMutationGateway

__all__ = [
    "DeliveryDirectory",
    "EventCallback",
    "EventSourceError",
    "GatewayError",
    "MutationAck",
    "OrderEventSource",
    "OrderLoader",
    "OrderMutationGateway",
    "RoleProvider",
    "StateCallback",
]
