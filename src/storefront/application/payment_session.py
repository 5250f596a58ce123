"""Payment Session Adapter.

Wraps the hosted payment widget behind a single-outcome contract: the
widget's three raw callbacks are normalised into one ``PaymentOutcome``
and delivered at most once per session, however often the widget
calls back.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog

from storefront.domain.exceptions import AdapterUnavailable
from storefront.domain.gateway.payment_widget import PaymentWidget
from storefront.domain.model.payment import (
    PaymentDismissed,
    PaymentErrored,
    PaymentOptions,
    PaymentOutcome,
    PaymentSucceeded,
)
from storefront.domain.model.value_objects import Money

logger = structlog.get_logger(__name__)

OutcomeCallback = Callable[[PaymentOutcome], None]


class PaymentSession:
    """One open widget session. Delivers its outcome exactly once.

    Once ``expire``d, the session stops delivering. A success that still
    arrives is money already captured, so it is handed to
    ``on_late_outcome`` instead of being dropped.
    """

    def __init__(
        self,
        order_reference: str,
        on_outcome: OutcomeCallback,
        on_late_outcome: OutcomeCallback | None = None,
    ) -> None:
        self.order_reference = order_reference
        self._on_outcome = on_outcome
        self._on_late_outcome = on_late_outcome
        self._settled = False
        self._expired = False

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def expired(self) -> bool:
        return self._expired

    def expire(self) -> None:
        """Stop listening. Has no effect on a session that already settled."""
        if self._settled:
            return
        self._settled = True
        self._expired = True

    def deliver(self, outcome: PaymentOutcome) -> None:
        if self._expired and isinstance(outcome, PaymentSucceeded):
            self._deliver_late(outcome)
            return
        if self._settled:
            logger.warning(
                "Duplicate payment callback discarded",
                order_reference=self.order_reference,
                outcome=type(outcome).__name__,
            )
            return
        self._settled = True
        logger.info(
            "Payment outcome received",
            order_reference=self.order_reference,
            outcome=type(outcome).__name__,
        )
        self._on_outcome(outcome)

    def _deliver_late(self, outcome: PaymentSucceeded) -> None:
        logger.error(
            "Payment succeeded after the session expired",
            order_reference=self.order_reference,
            payment_reference=outcome.payment_reference,
        )
        if self._on_late_outcome is not None:
            self._on_late_outcome(outcome)

    # --- Raw widget callbacks -------------------------------------------------

    def _success(self, payload: dict[str, Any] | None) -> None:
        payload = payload or {}
        reference = payload.get("payment_reference") or payload.get("razorpay_payment_id")
        if not reference:
            self.deliver(PaymentErrored("Payment succeeded without a payment reference"))
            return
        self.deliver(
            PaymentSucceeded(
                payment_reference=str(reference),
                gateway_order_id=_optional_str(
                    payload.get("gateway_order_id") or payload.get("razorpay_order_id")
                ),
                signature=_optional_str(
                    payload.get("signature") or payload.get("razorpay_signature")
                ),
            )
        )

    def _dismiss(self) -> None:
        self.deliver(PaymentDismissed())

    def _error(self, payload: Any = None) -> None:
        self.deliver(PaymentErrored(_describe_error(payload)))


class PaymentSessionAdapter:

    def __init__(self, widget: PaymentWidget, merchant_name: str = "") -> None:
        self._widget = widget
        self._merchant_name = merchant_name

    def open(
        self,
        amount: Money,
        order_reference: str,
        prefill: dict[str, str],
        on_outcome: OutcomeCallback,
        on_late_outcome: OutcomeCallback | None = None,
    ) -> PaymentSession:
        """Launch the widget for *amount*.

        Raises ``AdapterUnavailable`` synchronously when the widget runtime
        is not loaded. Otherwise returns at once; the outcome arrives via
        *on_outcome*. A success reported after the session expired goes
        to *on_late_outcome*.
        """
        if not self._widget.is_loaded:
            raise AdapterUnavailable("Payment system is not loaded")

        session = PaymentSession(order_reference, on_outcome, on_late_outcome)
        options = PaymentOptions(
            amount_minor_units=amount.minor_units,
            currency=amount.currency,
            order_reference=order_reference,
            description=f"Order #{order_reference}",
            prefill=dict(prefill),
        )
        logger.info(
            "Opening payment session",
            order_reference=order_reference,
            amount_minor_units=options.amount_minor_units,
            currency=options.currency,
            merchant=self._merchant_name,
        )
        try:
            self._widget.launch(
                options,
                on_success=session._success,
                on_dismiss=session._dismiss,
                on_error=session._error,
            )
        except AdapterUnavailable:
            raise
        except Exception as exc:
            if session.settled:
                logger.warning(
                    "Payment widget raised after settling",
                    order_reference=order_reference,
                    error=str(exc),
                )
                return session
            raise AdapterUnavailable(f"Payment widget failed to open: {exc}") from exc
        return session


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _describe_error(payload: Any) -> str:
    # Error payloads carry no guaranteed structure.
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("description"):
            return str(error["description"])
        if payload.get("description"):
            return str(payload["description"])
    if isinstance(payload, str) and payload:
        return payload
    return "Payment was not successful"
