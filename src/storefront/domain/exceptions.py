"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.

The checkout taxonomy (``CheckoutError`` and below) doubles as the error
value carried by a failed or cancelled checkout result, so callers can
branch on the exception type without anything being raised past the
orchestrator.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    def __init__(self, message: str, errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors = dict(errors or {})


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class EmptyCartError(ValidationError):
    """Checkout was requested for a cart with no items."""


class InvalidCouponError(ValidationError):
    """The coupon code is unknown or its conditions are not met."""


# ---------------------------------------------------------------------------
# Checkout taxonomy
# ---------------------------------------------------------------------------


class CheckoutError(DomainException):
    """Base class for everything that can end a checkout attempt."""


class CheckoutInProgressError(CheckoutError):
    """A second checkout was submitted while one is still in flight."""


class IllegalTransitionError(CheckoutError):
    """The checkout state machine was asked to make an undefined move."""


class OrderCreationError(CheckoutError):
    """The backend order was not created. Nothing exists; safe to retry."""


class OrderUpdateError(CheckoutError):
    """The order exists but its status could not be changed.

    Retryable: status updates are idempotent.
    """

    def __init__(self, message: str, order_id: int | str | None = None) -> None:
        super().__init__(message)
        self.order_id = order_id


class AdapterUnavailable(CheckoutError):
    """The payment widget runtime is not loaded."""


class PaymentFailed(CheckoutError):
    """The payment gateway reported a failure. The order stays pending."""


class PaymentCancelled(CheckoutError):
    """The shopper dismissed the payment widget. Not an error condition."""


class ReconciliationInconsistency(CheckoutError):
    """Payment was captured but the backend order could not be completed.

    Requires manual reconciliation. Retrying the checkout risks a double
    charge, so this is never downgraded to a plain failure.
    """

    def __init__(
        self,
        message: str,
        order_id: int | str,
        payment_reference: str,
    ) -> None:
        super().__init__(message)
        self.order_id = order_id
        self.payment_reference = payment_reference
