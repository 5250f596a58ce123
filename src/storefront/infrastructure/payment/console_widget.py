"""Interactive stand-in for the hosted payment widget.

Used by the CLI: it shows the amount, asks the shopper whether to pay,
dismiss or simulate a gateway failure, and reports back through the
widget callbacks from its own thread, the way a hosted widget would.
"""

from __future__ import annotations

import secrets
import threading
from decimal import Decimal
from typing import Any, Callable

import click

from storefront.domain.gateway.payment_widget import PaymentWidget
from storefront.domain.model.payment import PaymentOptions

CHOICES = ("pay", "dismiss", "fail")


class ConsoleWidget(PaymentWidget):

    def __init__(
        self,
        merchant_name: str = "",
        prompt: Callable[..., str] = click.prompt,
        echo: Callable[[str], None] = click.echo,
        threaded: bool = True,
    ) -> None:
        self._merchant_name = merchant_name
        self._prompt = prompt
        self._echo = echo
        self._threaded = threaded

    @property
    def is_loaded(self) -> bool:
        return True

    def launch(
        self,
        options: PaymentOptions,
        on_success: Callable[[dict[str, Any]], None],
        on_dismiss: Callable[[], None],
        on_error: Callable[[Any], None],
    ) -> None:
        def run() -> None:
            amount = Decimal(options.amount_minor_units) / 100
            self._echo("")
            self._echo(f"  {self._merchant_name or 'Payment'}: {options.description}")
            self._echo(f"  Amount due: {amount:.2f} {options.currency}")
            choice = self._prompt(
                "  Pay, dismiss or fail",
                type=click.Choice(CHOICES),
                default="pay",
            )
            if choice == "pay":
                on_success(
                    {
                        "payment_reference": f"pay_{secrets.token_hex(7)}",
                        "gateway_order_id": f"order_{options.order_reference}",
                    }
                )
            elif choice == "dismiss":
                on_dismiss()
            else:
                on_error({"error": {"description": "Payment declined by the bank"}})

        if self._threaded:
            threading.Thread(target=run, name="payment-widget", daemon=True).start()
        else:
            run()
