"""Abstract hosted payment widget.

The widget is third-party code: it reports back through three raw
callbacks and gives no guarantee it calls only one of them, or only
once. ``PaymentSessionAdapter`` is the only caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

from storefront.domain.model.payment import PaymentOptions


class PaymentWidget(ABC):

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """False when the widget runtime failed to load."""

    @abstractmethod
    def launch(
        self,
        options: PaymentOptions,
        on_success: Callable[[dict[str, Any]], None],
        on_dismiss: Callable[[], None],
        on_error: Callable[[Any], None],
    ) -> None:
        """Open the widget. Returns immediately; resolution is via callbacks."""
