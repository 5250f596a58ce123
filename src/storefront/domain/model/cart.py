"""Cart aggregate and its transition function.

The Cart is an immutable value. Every mutation is expressed as an action
fed through ``reduce_cart`` which returns a *new* Cart, so any observer
holding the previous Cart keeps a consistent snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, Union

from storefront.domain.exceptions import ValidationError
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import DEFAULT_CURRENCY, Money, Quantity


@dataclass(frozen=True)
class LineItem:
    """One product in the cart with its quantity.

    A LineItem with quantity zero cannot exist: ``Quantity`` rejects it,
    and the reducer removes items rather than zeroing them.
    """

    product_id: str
    name: str
    unit_price: Money
    quantity: Quantity
    image: str | None = None

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value

    @staticmethod
    def from_product(product: Product) -> LineItem:
        return LineItem(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            quantity=Quantity(1),
            image=product.image,
        )


@dataclass(frozen=True)
class Cart:
    """Ordered collection of line items, unique by product id.

    Order only matters for display. ``total`` is recomputed on every
    read and never cached.
    """

    items: tuple[LineItem, ...] = ()
    currency: str = DEFAULT_CURRENCY

    @property
    def total(self) -> Money:
        result = Money.zero(self.currency)
        for item in self.items:
            result = result + item.line_total
        return result

    @property
    def item_count(self) -> int:
        return sum(item.quantity.value for item in self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def get(self, product_id: str) -> LineItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def __contains__(self, product_id: object) -> bool:
        return any(item.product_id == product_id for item in self.items)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AddProduct:
    product: Product


@dataclass(frozen=True)
class RemoveItem:
    product_id: str


@dataclass(frozen=True)
class IncrementQuantity:
    product_id: str


@dataclass(frozen=True)
class DecrementQuantity:
    product_id: str


@dataclass(frozen=True)
class ClearCart:
    pass


CartAction = Union[AddProduct, RemoveItem, IncrementQuantity, DecrementQuantity, ClearCart]


# ---------------------------------------------------------------------------
# Transition function
# ---------------------------------------------------------------------------


def reduce_cart(cart: Cart, action: CartAction) -> Cart:
    """Return the Cart that results from applying *action* to *cart*.

    Pure: *cart* is never modified. Actions that target a product id
    not in the cart return the cart unchanged. Adding a product priced
    in another currency raises ``ValidationError`` and leaves the cart
    as it was, so ``total`` stays derivable.
    """
    if isinstance(action, AddProduct):
        if action.product.price.currency != cart.currency:
            raise ValidationError(
                f"Cannot add {action.product.name!r} priced in "
                f"{action.product.price.currency} to a {cart.currency} cart"
            )
        if action.product.id in cart:
            return _map_item(cart, action.product.id, _bump)
        return replace(cart, items=cart.items + (LineItem.from_product(action.product),))

    if isinstance(action, RemoveItem):
        if action.product_id not in cart:
            return cart
        return replace(
            cart,
            items=tuple(i for i in cart.items if i.product_id != action.product_id),
        )

    if isinstance(action, IncrementQuantity):
        return _map_item(cart, action.product_id, _bump)

    if isinstance(action, DecrementQuantity):
        # Clamped at one: quantity controls never delete an item.
        return _map_item(cart, action.product_id, _drop)

    if isinstance(action, ClearCart):
        if cart.is_empty:
            return cart
        return replace(cart, items=())

    raise TypeError(f"Unknown cart action: {action!r}")


def _bump(item: LineItem) -> LineItem:
    return replace(item, quantity=item.quantity.incremented())


def _drop(item: LineItem) -> LineItem:
    return replace(item, quantity=item.quantity.decremented())


def _map_item(cart: Cart, product_id: str, fn) -> Cart:
    if product_id not in cart:
        return cart
    items = tuple(fn(i) if i.product_id == product_id else i for i in cart.items)
    if items == cart.items:
        return cart
    return replace(cart, items=items)
