"""Remote order API adapter: public interface."""

from __future__ import annotations

from .client import HttpOrderGateway, OrdersApiError

__all__ = ["HttpOrderGateway", "OrdersApiError"]
