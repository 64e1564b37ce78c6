"""
Tests for the Money value object.

Amounts are exact cents; these tests pin down rounding, currency checks
and the largest-remainder allocation the split strategies build on.
"""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from src.models.errors import CurrencyMismatchError, InvalidInputError, InvalidOperandError
from src.models.money import Money, normalize_currency, to_cents


def brl(amount) -> Money:
    return Money(amount=amount, currency="BRL")


class TestMoneyCreation:
    """Tests for constructing Money."""

    def test_amount_is_stored_in_cents(self):
        """Test that the major-unit amount is converted to cents."""
        money = brl("100.50")
        assert money.amount_in_cents == 10050
        assert money.amount == Decimal("100.50")
        assert money.currency == "BRL"

    def test_float_input_is_read_as_written(self):
        """Test that 0.1 means ten cents."""
        assert brl(0.1).amount_in_cents == 10

    def test_half_cents_round_up(self):
        """Test half-up rounding, away from zero for negatives."""
        assert to_cents(10.005) == 1001
        assert to_cents(-10.005) == -1001
        assert to_cents("10.004") == 1000

    def test_default_currency(self):
        """Test that the default currency is BRL."""
        assert Money(amount=1).currency == "BRL"

    def test_currency_is_upper_cased(self):
        """Test that currency codes are normalized."""
        assert Money(amount=1, currency="usd").currency == "USD"
        assert normalize_currency(" eur ") == "EUR"

    @pytest.mark.parametrize("currency", ["US", "EURO", "12A", ""])
    def test_invalid_currency_rejected(self, currency):
        """Test that anything but a 3-letter code is rejected."""
        with pytest.raises(ValueError, match="3-letter code"):
            Money(amount=1, currency=currency)

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), "abc"])
    def test_non_finite_amount_rejected(self, amount):
        """Test that NaN, infinity and garbage are rejected."""
        with pytest.raises(ValueError):
            Money(amount=amount)

    def test_amount_is_required(self):
        """Test that a missing amount is not read as zero."""
        with pytest.raises(ValidationError, match="Amount is required"):
            Money(currency="USD")
        with pytest.raises(InvalidInputError, match="Amount is required"):
            to_cents(None)

    def test_large_amounts_stay_exact(self):
        """Test amounts beyond the default decimal precision."""
        money = Money(amount=1e30)
        assert money.amount_in_cents == 10**32
        assert to_cents("12345678901234567890123456789.125") == 1234567890123456789012345678913

    def test_amount_out_of_decimal_range(self):
        """Test that an unrepresentable amount is an input error."""
        with pytest.raises(InvalidInputError, match="out of range"):
            to_cents("1e999999")

    def test_from_cents(self):
        """Test the cents factory."""
        money = Money.from_cents(12345, "USD")
        assert money.amount == Decimal("123.45")
        assert money.currency == "USD"

    def test_wire_key_accepted(self):
        """Test that the camelCase snapshot key can be read back."""
        money = Money.model_validate({"amountInCents": 500, "currency": "BRL"})
        assert money.amount_in_cents == 500

    def test_zero(self):
        """Test the zero factory and predicates."""
        zero = Money.zero("EUR")
        assert zero.is_zero()
        assert not zero.is_positive()
        assert not zero.is_negative()

    def test_money_is_immutable(self):
        """Test that Money cannot be changed after construction."""
        money = brl(10)
        with pytest.raises(ValidationError):
            money.amount_in_cents = 1


class TestMoneyArithmetic:
    """Tests for Money arithmetic."""

    def test_add_has_no_float_drift(self):
        """Test that 0.1 + 0.2 is exactly 0.30."""
        total = brl(0.1).add(brl(0.2))
        assert total.amount == Decimal("0.30")
        assert total.equals(brl("0.3"))

    def test_subtract(self):
        """Test subtraction and the operator form."""
        assert brl(100).subtract(brl("30.25")).equals(brl("69.75"))
        assert (brl(10) - brl(15)).is_negative()

    def test_different_currencies_rejected(self):
        """Test that mixing currencies raises."""
        with pytest.raises(CurrencyMismatchError, match="different currencies"):
            brl(1).add(Money(amount=1, currency="USD"))

    def test_multiply_rounds_half_up(self):
        """Test multiplication rounding."""
        assert brl(10).multiply("0.333").amount_in_cents == 333
        assert brl("0.05").multiply("0.5").amount_in_cents == 3

    def test_divide(self):
        """Test division rounding."""
        assert brl(100).divide(3).amount_in_cents == 3333
        assert brl(100).divide("0.5").equals(brl(200))

    def test_large_products_stay_exact(self):
        """Test multiply and divide beyond the default decimal precision."""
        big = Money.from_cents(10**30)
        assert big.multiply(3).amount_in_cents == 3 * 10**30
        assert brl(1).divide("1e-30").amount_in_cents == 10**32

    def test_divide_by_zero_rejected(self):
        """Test that dividing by zero raises."""
        with pytest.raises(InvalidOperandError, match="non-zero"):
            brl(100).divide(0)

    @pytest.mark.parametrize("operand", [float("inf"), float("nan"), "abc"])
    def test_non_finite_operands_rejected(self, operand):
        """Test that non-finite factors are rejected."""
        with pytest.raises(InvalidOperandError):
            brl(100).multiply(operand)

    def test_negation(self):
        """Test unary minus."""
        assert (-brl(5)).amount_in_cents == -500


class TestMoneyAllocation:
    """Tests for largest-remainder allocation."""

    def test_equal_allocation_gives_leftover_to_first(self):
        """Test that 100 split three ways is 33.34, 33.33, 33.33."""
        shares = brl(100).allocate([1, 1, 1])
        assert [s.amount_in_cents for s in shares] == [3334, 3333, 3333]

    def test_allocation_always_sums_to_total(self):
        """Test that allocated parts add back to the original."""
        total = brl("1000.01")
        shares = total.allocate([3, 7, 11])
        assert sum(s.amount_in_cents for s in shares) == total.amount_in_cents

    def test_largest_remainder_wins(self):
        """Test that the leftover cent goes to the largest fractional share."""
        shares = brl(1000).allocate([4500, 3200])
        assert [s.amount for s in shares] == [Decimal("584.42"), Decimal("415.58")]

    def test_negative_amount_allocation(self):
        """Test that negative amounts allocate symmetrically."""
        shares = brl(-100).allocate([1, 1, 1])
        assert [s.amount_in_cents for s in shares] == [-3334, -3333, -3333]

    def test_zero_weight_gets_nothing(self):
        """Test that a zero ratio receives nothing."""
        shares = brl(10).allocate([1, 0])
        assert [s.amount_in_cents for s in shares] == [1000, 0]

    @pytest.mark.parametrize("ratios", [[], [0, 0], [1, -1]])
    def test_invalid_ratios_rejected(self, ratios):
        """Test that empty, all-zero and negative ratios are rejected."""
        with pytest.raises(InvalidOperandError):
            brl(10).allocate(ratios)


class TestMoneyComparison:
    """Tests for comparison and equality."""

    def test_compare_to(self):
        """Test ordering helpers and operators."""
        assert brl(10).compare_to(brl(5)) > 0
        assert brl(5).is_less_than(brl(10))
        assert brl(5) <= brl(5)
        assert brl(6) > brl(5)
        assert brl(3).min(brl(4)).equals(brl(3))

    def test_compare_different_currencies_rejected(self):
        """Test that ordering across currencies raises."""
        with pytest.raises(CurrencyMismatchError):
            brl(1).is_greater_than(Money(amount=1, currency="USD"))

    def test_equals_never_raises(self):
        """Test that equality across currencies is simply False."""
        assert not brl(1).equals(Money(amount=1, currency="USD"))
        assert brl(1) == brl("1.00")


class TestMoneyPresentation:
    """Tests for formatting and snapshots."""

    def test_format_pt_br(self):
        """Test Brazilian formatting."""
        formatted = brl("1234.56").format("pt_BR")
        assert "R$" in formatted
        assert "1.234,56" in formatted

    def test_format_en_us(self):
        """Test US formatting, accepting a hyphenated locale."""
        assert Money(amount="1234.56", currency="USD").format("en-US") == "$1,234.56"

    def test_to_dict(self):
        """Test the camelCase snapshot."""
        assert brl("100.50").to_dict() == {
            "amount": 100.5,
            "currency": "BRL",
            "amountInCents": 10050,
        }

    def test_str(self):
        """Test the plain string form."""
        assert str(brl("100.5")) == "100.50 BRL"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
