"""Pending order: the backend record of one checkout attempt.

The order request is snapshotted from the Cart at the instant the
shopper submits checkout. Later cart edits never reach it. Once the
backend has assigned an id, only the status may move.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum

from storefront.domain.exceptions import EmptyCartError
from storefront.domain.model.cart import Cart
from storefront.domain.model.customer import CustomerDetails
from storefront.domain.model.pricing import PriceQuote
from storefront.domain.model.value_objects import Money


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderLine:
    """Price snapshot of one cart line at order-creation time."""

    product_id: str
    name: str
    quantity: int
    unit_price: Money  # locked at snapshot time

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderRequest:
    """What gets submitted to the backend to create a pending order."""

    lines: tuple[OrderLine, ...]
    customer: CustomerDetails
    quote: PriceQuote

    @property
    def subtotal(self) -> Money:
        return self.quote.subtotal

    @staticmethod
    def snapshot(cart: Cart, customer: CustomerDetails, quote: PriceQuote) -> OrderRequest:
        if cart.is_empty:
            raise EmptyCartError("Cannot check out an empty cart")
        lines = tuple(
            OrderLine(
                product_id=item.product_id,
                name=item.name,
                quantity=item.quantity.value,
                unit_price=item.unit_price,
            )
            for item in cart.items
        )
        return OrderRequest(lines=lines, customer=customer, quote=quote)


@dataclass(frozen=True)
class PendingOrder:
    """An order as acknowledged by the commerce backend."""

    id: int | str
    lines: tuple[OrderLine, ...]
    customer: CustomerDetails
    status: OrderStatus = OrderStatus.PENDING
    meta_data: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def with_status(self, status: OrderStatus) -> PendingOrder:
        return replace(self, status=status)
