"""JSON-file-backed session storage for the cart."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from storefront.domain.model.cart import Cart, LineItem
from storefront.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity
from storefront.domain.repository.cart_repository import CartRepository


class JsonCartRepository(CartRepository):

    def __init__(self, file_path: Path, currency: str = DEFAULT_CURRENCY) -> None:
        self._file_path = file_path
        self._currency = currency

    # --- CartRepository interface ---------------------------------------------

    def load(self) -> Cart:
        if not self._file_path.exists():
            return Cart(currency=self._currency)
        raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        return self._to_domain(raw)

    def save(self, cart: Cart) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        self._file_path.write_text(
            json.dumps(self._to_raw(cart), indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(cart: Cart) -> dict:
        return {
            "currency": cart.currency,
            "items": [
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "unit_price": str(item.unit_price.amount),
                    "quantity": item.quantity.value,
                    "image": item.image,
                }
                for item in cart.items
            ],
        }

    def _to_domain(self, raw: dict) -> Cart:
        currency = raw.get("currency", self._currency)
        items = tuple(
            LineItem(
                product_id=str(i["product_id"]),
                name=i["name"],
                unit_price=Money(Decimal(i["unit_price"]), currency),
                quantity=Quantity(i["quantity"]),
                image=i.get("image"),
            )
            for i in raw.get("items", [])
        )
        return Cart(items=items, currency=currency)
