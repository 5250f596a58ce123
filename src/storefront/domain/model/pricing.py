"""Price quote for a checkout: what the shopper will actually be charged."""

from __future__ import annotations

from dataclasses import dataclass

from storefront.domain.model.value_objects import Money


@dataclass(frozen=True)
class Coupon:
    code: str
    discount: Money
    minimum_subtotal: Money


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Money
    discount: Money
    delivery_charge: Money
    coupon_code: str | None = None

    @property
    def payable(self) -> Money:
        # Discount never pushes the goods below zero.
        goods = self.subtotal - min(self.discount, self.subtotal)
        return goods + self.delivery_charge
