"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world. The checkout results
are what the navigation layer routes on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from storefront.domain.exceptions import CheckoutError, ReconciliationInconsistency
from storefront.domain.model.cart import Cart


@dataclass(frozen=True)
class CartLineDTO:
    """Output: a single cart line as displayed to the user."""

    product_id: str
    name: str
    quantity: int
    unit_price: str  # formatted, e.g. "₹100.00"
    line_total: str
    image: str | None


@dataclass(frozen=True)
class CartDTO:
    items: list[CartLineDTO]
    item_count: int
    total: str

    @staticmethod
    def from_cart(cart: Cart) -> CartDTO:
        return CartDTO(
            items=[
                CartLineDTO(
                    product_id=item.product_id,
                    name=item.name,
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.line_total),
                    image=item.image,
                )
                for item in cart.items
            ],
            item_count=cart.item_count,
            total=str(cart.total),
        )


# ---------------------------------------------------------------------------
# Checkout results (consumed by the navigation layer)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckoutSucceeded:
    order_id: int | str
    payment_reference: str
    total: str  # cart subtotal at snapshot time
    amount_paid: str


@dataclass(frozen=True)
class CheckoutCancelled:
    order_id: int | str


@dataclass(frozen=True)
class CheckoutFailed:
    order_id: int | str | None
    error_reason: str
    error: CheckoutError

    @property
    def needs_manual_reconciliation(self) -> bool:
        return isinstance(self.error, ReconciliationInconsistency)


CheckoutResult = Union[CheckoutSucceeded, CheckoutCancelled, CheckoutFailed]
