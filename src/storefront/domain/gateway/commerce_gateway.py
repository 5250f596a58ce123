"""Abstract gateway to the external commerce backend.

Defined in the domain layer so the orchestrator never depends on the
HTTP client. Every call is a fresh round trip; implementations must not
cache and must not guess a status when the backend cannot be reached.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.order import OrderRequest, OrderStatus, PendingOrder


class CommerceGateway(ABC):

    @abstractmethod
    async def create_order(self, request: OrderRequest) -> PendingOrder:
        """Create a pending order. Raises ``OrderCreationError``."""

    @abstractmethod
    async def set_order_status(
        self,
        order_id: int | str,
        status: OrderStatus,
        extra: dict[str, str] | None = None,
    ) -> None:
        """Move an order to *status*. Idempotent. Raises ``OrderUpdateError``."""
