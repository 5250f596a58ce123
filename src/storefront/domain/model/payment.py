"""Payment outcome: the single terminal result of a payment session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class PaymentOptions:
    """What the hosted payment widget is opened with."""

    amount_minor_units: int
    currency: str
    order_reference: str
    description: str = ""
    prefill: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentSucceeded:
    payment_reference: str
    gateway_order_id: str | None = None
    signature: str | None = None


@dataclass(frozen=True)
class PaymentDismissed:
    """The shopper closed the widget without paying."""


@dataclass(frozen=True)
class PaymentErrored:
    reason: str


PaymentOutcome = Union[PaymentSucceeded, PaymentDismissed, PaymentErrored]
