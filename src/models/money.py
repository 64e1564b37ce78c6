"""
Money Value Object

Amounts are stored as an integer number of cents plus an ISO 4217
currency code. Every arithmetic result is rounded back to whole cents
(half-up), so long add/subtract chains never drift.

DESIGN DECISION: Inputs are read through ``Decimal(str(value))``. A float
such as ``0.1`` therefore means ten cents, not 0.1000000000000000055...
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal, DecimalException, getcontext, localcontext
from fractions import Fraction
from typing import Any

from babel.numbers import format_currency
from pydantic import Field, field_validator, model_validator

from src.models.base import ValueObject
from src.models.errors import CurrencyMismatchError, InvalidInputError, InvalidOperandError
from src.utils.decimal_utils import coerce_decimal

DEFAULT_CURRENCY = "BRL"
DEFAULT_LOCALE = "pt_BR"

_WHOLE_CENT = Decimal("1")
_PRECISION_MARGIN = 30


def _digits(number: Decimal) -> int:
    _, digits, exponent = number.as_tuple()
    return len(digits) + abs(exponent)


def _wide_context(*numbers: Decimal):
    """Decimal context with enough precision to keep whole-cent results exact."""
    context = getcontext().copy()
    context.prec = max(context.prec, sum(_digits(n) for n in numbers) + _PRECISION_MARGIN)
    return localcontext(context)


def _round_to_cent(value: Decimal) -> int:
    return int(value.quantize(_WHOLE_CENT, rounding=ROUND_HALF_UP))


def to_cents(amount: Any) -> int:
    """Convert a major-unit amount to whole cents, rounding half-up."""
    if amount is None:
        raise InvalidInputError("Amount is required")
    try:
        value = coerce_decimal(amount)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e
    if not value.is_finite():
        raise InvalidInputError("Amount must be a finite number")
    try:
        with _wide_context(value):
            return _round_to_cent(value * 100)
    except DecimalException as e:
        raise InvalidInputError("Amount is out of range") from e


def normalize_currency(code: str) -> str:
    """Upper-cased ISO 4217 code; anything but three letters is rejected."""
    code = code.strip()
    if len(code) != 3 or not code.isascii() or not code.isalpha():
        raise InvalidInputError("Currency must be a 3-letter code (ISO 4217)")
    return code.upper()


def _operand(value: Any, message: str) -> Decimal:
    try:
        number = coerce_decimal(value)
    except ValueError as e:
        raise InvalidOperandError(message) from e
    if not number.is_finite():
        raise InvalidOperandError(message)
    return number


class Money(ValueObject):
    """
    Exact-cent monetary amount.

    Construct with a major-unit ``amount`` or with ``amount_in_cents``:

        Money(amount="100.50", currency="BRL")
        Money.from_cents(10050, "BRL")
    """

    amount_in_cents: int = Field(
        ...,
        description="Amount in minor units (cents)"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="ISO 4217 currency code, upper-case"
    )

    @model_validator(mode="before")
    @classmethod
    def convert_amount(cls, data: Any) -> Any:
        """Accept ``amount`` (major units) or the ``amountInCents`` wire key."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "amountInCents" in data:
            data.setdefault("amount_in_cents", data.pop("amountInCents"))
        amount = data.pop("amount", None)
        if "amount_in_cents" not in data:
            data["amount_in_cents"] = to_cents(amount)
        return data

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return normalize_currency(v)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_cents(cls, amount_in_cents: int, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(amount_in_cents=amount_in_cents, currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(amount_in_cents=0, currency=currency)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def amount(self) -> Decimal:
        """Amount in major units, always with two decimal places."""
        return Decimal(self.amount_in_cents).scaleb(-2)

    def is_positive(self) -> bool:
        return self.amount_in_cents > 0

    def is_negative(self) -> bool:
        return self.amount_in_cents < 0

    def is_zero(self) -> bool:
        return self.amount_in_cents == 0

    def equals(self, other: "Money") -> bool:
        """Same cents and same currency. Never raises on mismatch."""
        return (
            isinstance(other, Money)
            and self.amount_in_cents == other.amount_in_cents
            and self.currency == other.currency
        )

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def _ensure_same_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def _with_cents(self, cents: int) -> "Money":
        return Money(amount_in_cents=cents, currency=self.currency)

    def add(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return self._with_cents(self.amount_in_cents + other.amount_in_cents)

    def subtract(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return self._with_cents(self.amount_in_cents - other.amount_in_cents)

    def multiply(self, factor: Any) -> "Money":
        number = _operand(factor, "Factor must be a finite number")
        cents = Decimal(self.amount_in_cents)
        try:
            with _wide_context(cents, number):
                return self._with_cents(_round_to_cent(cents * number))
        except DecimalException as e:
            raise InvalidOperandError("Product is out of range") from e

    def divide(self, divisor: Any) -> "Money":
        number = _operand(divisor, "Divisor must be a non-zero finite number")
        if number == 0:
            raise InvalidOperandError("Divisor must be a non-zero finite number")
        cents = Decimal(self.amount_in_cents)
        try:
            with _wide_context(cents, number):
                return self._with_cents(_round_to_cent(cents / number))
        except DecimalException as e:
            raise InvalidOperandError("Quotient is out of range") from e

    def allocate(self, ratios: Sequence[Any]) -> list["Money"]:
        """
        Split into parts proportional to ``ratios`` that sum exactly to self.

        Every part first gets the floor of its exact share; the cents left
        over go one at a time to the parts with the largest fractional
        remainder, earlier parts winning ties.

            Money(amount=100).allocate([1, 1, 1])  ->  33.34, 33.33, 33.33
        """
        weights = [_operand(r, "Ratios must be finite numbers") for r in ratios]
        if not weights:
            raise InvalidOperandError("At least one ratio is required")
        if any(w < 0 for w in weights):
            raise InvalidOperandError("Ratios cannot be negative")
        total_weight = sum((Fraction(w) for w in weights), Fraction(0))
        if total_weight == 0:
            raise InvalidOperandError("Ratios cannot all be zero")

        sign = -1 if self.amount_in_cents < 0 else 1
        cents = abs(self.amount_in_cents)
        exact = [cents * Fraction(w) / total_weight for w in weights]
        shares = [int(share) for share in exact]
        leftover = cents - sum(shares)
        by_remainder = sorted(
            range(len(exact)),
            key=lambda i: (-(exact[i] - shares[i]), i),
        )
        for i in by_remainder[:leftover]:
            shares[i] += 1
        return [self._with_cents(sign * share) for share in shares]

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def compare_to(self, other: "Money") -> int:
        """Negative, zero or positive, like the difference in cents."""
        self._ensure_same_currency(other)
        return self.amount_in_cents - other.amount_in_cents

    def is_greater_than(self, other: "Money") -> bool:
        return self.compare_to(other) > 0

    def is_less_than(self, other: "Money") -> bool:
        return self.compare_to(other) < 0

    def is_greater_than_or_equal(self, other: "Money") -> bool:
        return self.compare_to(other) >= 0

    def is_less_than_or_equal(self, other: "Money") -> bool:
        return self.compare_to(other) <= 0

    def min(self, other: "Money") -> "Money":
        return self if self.is_less_than_or_equal(other) else other

    __add__ = add
    __sub__ = subtract
    __lt__ = is_less_than
    __le__ = is_less_than_or_equal
    __gt__ = is_greater_than
    __ge__ = is_greater_than_or_equal

    def __neg__(self) -> "Money":
        return self._with_cents(-self.amount_in_cents)

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def format(self, locale: str = DEFAULT_LOCALE) -> str:
        """Localized currency string, e.g. ``R$ 1.234,56`` for pt_BR."""
        return format_currency(self.amount, self.currency, locale=locale.replace("-", "_"))

    def to_dict(self) -> dict[str, Any]:
        """Wire snapshot: ``{amount, currency, amountInCents}``."""
        return {
            "amount": float(self.amount),
            "currency": self.currency,
            "amountInCents": self.amount_in_cents,
        }

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


__all__ = ["DEFAULT_CURRENCY", "DEFAULT_LOCALE", "Money", "normalize_currency", "to_cents"]
