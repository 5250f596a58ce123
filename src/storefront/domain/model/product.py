"""Product as handed to the cart by the catalogue."""

from __future__ import annotations

from dataclasses import dataclass

from storefront.domain.model.value_objects import Money


@dataclass(frozen=True)
class Product:
    """A purchasable product.

    Product ids are opaque to the storefront; they are whatever the
    commerce backend assigned.
    """

    id: str
    name: str
    price: Money
    image: str | None = None
