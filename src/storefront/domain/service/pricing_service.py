"""Domain service: Pricing Policy.

Turns a cart subtotal into a price quote. Delivery is free at or above
a threshold and a flat fee below it; at most one coupon applies.
"""

from __future__ import annotations

from decimal import Decimal

from storefront.domain.exceptions import InvalidCouponError
from storefront.domain.model.pricing import Coupon, PriceQuote
from storefront.domain.model.value_objects import DEFAULT_CURRENCY, Money


def default_coupons(currency: str = DEFAULT_CURRENCY) -> dict[str, Coupon]:
    return {
        "WELCOME100": Coupon(
            code="WELCOME100",
            discount=Money(Decimal("100"), currency),
            minimum_subtotal=Money(Decimal("200"), currency),
        ),
    }


class PricingPolicy:

    def __init__(
        self,
        delivery_fee: Money,
        free_delivery_threshold: Money,
        coupons: dict[str, Coupon] | None = None,
    ) -> None:
        self._delivery_fee = delivery_fee
        self._free_delivery_threshold = free_delivery_threshold
        self._coupons = (
            coupons if coupons is not None else default_coupons(delivery_fee.currency)
        )

    def quote(self, subtotal: Money, coupon_code: str | None = None) -> PriceQuote:
        discount = Money.zero(subtotal.currency)
        code = None
        if coupon_code and coupon_code.strip():
            coupon = self.find_coupon(coupon_code)
            if subtotal < coupon.minimum_subtotal:
                raise InvalidCouponError(
                    f"Minimum order amount {coupon.minimum_subtotal} required "
                    f"for coupon {coupon.code}"
                )
            discount = coupon.discount
            code = coupon.code

        if subtotal >= self._free_delivery_threshold:
            delivery = Money.zero(subtotal.currency)
        else:
            delivery = self._delivery_fee

        return PriceQuote(
            subtotal=subtotal,
            discount=discount,
            delivery_charge=delivery,
            coupon_code=code,
        )

    def find_coupon(self, code: str) -> Coupon:
        coupon = self._coupons.get(code.strip().upper())
        if coupon is None:
            raise InvalidCouponError(f"Invalid coupon code: {code!r}")
        return coupon
