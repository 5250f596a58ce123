"""Money and quantities for cart lines, quotes and payments.

Both are frozen and compared by value; an instance that exists is
already valid, so callers never re-check amounts or counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from storefront.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "INR"

_SYMBOLS = {"INR": "₹", "USD": "$"}


@dataclass(frozen=True)
class Money:
    """A price, total or charge in one currency.

    Amounts are Decimal and never negative. Mixing currencies in
    arithmetic or comparisons raises ``ValidationError`` rather than
    producing a meaningless total.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")

    @staticmethod
    def of(amount: str | float | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        """Build from catalogue or config input; floats go through ``str``."""
        try:
            return Money(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> Money:
        return Money(Decimal("0.00"), currency)

    # --- Arithmetic -----------------------------------------------------------

    def __add__(self, other: Money) -> Money:
        return Money(self._amount_of(other) + self.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        # Discounts are capped before subtracting, so this never goes below zero.
        remaining = self.amount - self._amount_of(other)
        if remaining < 0:
            raise ValidationError(
                f"Subtracting {other} from {self} would give a negative amount"
            )
        return Money(remaining, self.currency)

    def __mul__(self, quantity: int) -> Money:
        if not isinstance(quantity, int):
            raise TypeError(f"Can only multiply Money by int, got {type(quantity).__name__}")
        return Money(self.amount * quantity, self.currency)

    def __lt__(self, other: Money) -> bool:
        return self.amount < self._amount_of(other)

    def __le__(self, other: Money) -> bool:
        return self.amount <= self._amount_of(other)

    def __gt__(self, other: Money) -> bool:
        return self.amount > self._amount_of(other)

    def __ge__(self, other: Money) -> bool:
        return self.amount >= self._amount_of(other)

    def _amount_of(self, other: Money) -> Decimal:
        if other.currency != self.currency:
            raise ValidationError(f"Cannot combine {self.currency} with {other.currency}")
        return other.amount

    # --- Gateway and display --------------------------------------------------

    @property
    def minor_units(self) -> int:
        """Paise (or cents), as the payment widget expects the amount."""
        return int((self.amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def __str__(self) -> str:
        symbol = _SYMBOLS.get(self.currency)
        if symbol is None:
            return f"{self.amount:.2f} {self.currency}"
        return f"{symbol}{self.amount:.2f}"


@dataclass(frozen=True)
class Quantity:
    """How many units of a product a cart line holds; always at least one."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value < 1:
            raise ValidationError(f"Quantity must be positive, got {self.value}")

    def incremented(self) -> Quantity:
        return Quantity(self.value + 1)

    def decremented(self) -> Quantity:
        # Quantity controls stop at one; removing a line is a separate action.
        return Quantity(max(self.value - 1, 1))

    def __str__(self) -> str:
        return str(self.value)
