"""JSON-file-backed implementation of ProductRepository."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import DEFAULT_CURRENCY, Money
from storefront.domain.repository.product_repository import ProductRepository


class JsonProductRepository(ProductRepository):

    def __init__(self, file_path: Path, currency: str = DEFAULT_CURRENCY) -> None:
        self._file_path = file_path
        self._currency = currency

    # --- ProductRepository interface ------------------------------------------

    def get_by_id(self, product_id: str) -> Product | None:
        return self._load().get(product_id)

    def list_all(self) -> list[Product]:
        return list(self._load().values())

    # --- Serialization helpers ------------------------------------------------

    def _load(self) -> dict[str, Product]:
        if not self._file_path.exists():
            return {}
        raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        products: dict[str, Product] = {}
        for item in raw:
            images = item.get("images") or []
            product = Product(
                id=str(item["id"]),
                name=item["name"],
                price=Money(Decimal(str(item["price"])), item.get("currency", self._currency)),
                image=images[0]["src"] if images else item.get("image"),
            )
            products[product.id] = product
        return products
