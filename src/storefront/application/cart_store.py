"""Cart Store: the shopper's working selection.

Holds the current immutable Cart and replaces it on every dispatched
action. It is the only state shared between the presentation layer and
the checkout orchestrator.
"""

from __future__ import annotations

from typing import Callable

import structlog

from storefront.domain.model.cart import (
    AddProduct,
    Cart,
    CartAction,
    ClearCart,
    DecrementQuantity,
    IncrementQuantity,
    LineItem,
    RemoveItem,
    reduce_cart,
)
from storefront.domain.model.product import Product
from storefront.domain.model.value_objects import DEFAULT_CURRENCY, Money

logger = structlog.get_logger(__name__)

CartListener = Callable[[Cart], None]


class CartStore:

    def __init__(self, initial: Cart | None = None, currency: str = DEFAULT_CURRENCY) -> None:
        self._state = initial if initial is not None else Cart(currency=currency)
        self._listeners: list[CartListener] = []

    # --- Read side ------------------------------------------------------------

    @property
    def state(self) -> Cart:
        return self._state

    @property
    def items(self) -> tuple[LineItem, ...]:
        return self._state.items

    @property
    def total(self) -> Money:
        return self._state.total

    def snapshot(self) -> Cart:
        """The current Cart. Immutable, so safe to hold across awaits."""
        return self._state

    # --- Write side -----------------------------------------------------------

    def dispatch(self, action: CartAction) -> Cart:
        previous = self._state
        self._state = reduce_cart(previous, action)
        if self._state is not previous:
            logger.debug("Cart updated", action=type(action).__name__, items=len(self._state))
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    def add(self, product: Product) -> Cart:
        return self.dispatch(AddProduct(product))

    def remove(self, product_id: str) -> Cart:
        return self.dispatch(RemoveItem(product_id))

    def increment(self, product_id: str) -> Cart:
        return self.dispatch(IncrementQuantity(product_id))

    def decrement(self, product_id: str) -> Cart:
        return self.dispatch(DecrementQuantity(product_id))

    def clear(self) -> Cart:
        return self.dispatch(ClearCart())

    # --- Observers ------------------------------------------------------------

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Call *listener* with every new Cart. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
