"""Abstract session storage for the shopper's cart."""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.cart import Cart


class CartRepository(ABC):

    @abstractmethod
    def load(self) -> Cart:
        """Return the session cart, or an empty cart if there is none."""

    @abstractmethod
    def save(self, cart: Cart) -> None:
        """Persist the session cart."""
