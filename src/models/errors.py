"""
Domain Errors

Every failure in the core is raised synchronously to the caller.
Nothing is retried or swallowed here; translating these into user-facing
messages is the job of the layer above.

Validation errors raised from inside pydantic validators surface as
``pydantic.ValidationError``, which is itself a ``ValueError``.
"""


class FinanceError(Exception):
    """Base exception for household finance domain errors."""
    pass


# =============================================================================
# VALIDATION
# =============================================================================

class InvalidInputError(FinanceError, ValueError):
    """Malformed input to a constructor or mutator."""
    pass


class InvalidOperandError(InvalidInputError):
    """Non-finite factor, or zero / non-finite divisor."""
    pass


class NegativeAmountError(InvalidInputError):
    """A negative amount where only non-negative amounts make sense."""
    pass


class ZeroAmountError(InvalidInputError):
    """A zero amount where a positive amount is required."""
    pass


# =============================================================================
# CURRENCY
# =============================================================================

class CurrencyMismatchError(FinanceError, ValueError):
    """Binary money operation across different currencies."""

    def __init__(self, left: str, right: str, message: str | None = None):
        self.left = left
        self.right = right
        super().__init__(
            message
            or f"Cannot perform operation with different currencies: {left} and {right}"
        )


class CurrencyConversionNotSupportedError(FinanceError):
    """Money would have to change currency; conversion is not implemented."""
    pass


# =============================================================================
# SPLITTING
# =============================================================================

class MissingIncomeError(FinanceError, ValueError):
    """A proportional split was requested without an income for a partner."""

    def __init__(self, partner_id: str | None = None):
        self.partner_id = partner_id
        if partner_id is None:
            super().__init__("Partner incomes required for proportional split")
        else:
            super().__init__(f"Income not found for partner {partner_id}")


class InvalidIncomeError(FinanceError, ValueError):
    """A partner income is zero or negative."""
    pass


class FixedAmountExceededError(FinanceError, ValueError):
    """Fixed amounts add up to more than the amount being split."""
    pass


class CustomAmountMismatchError(FinanceError, ValueError):
    """Custom amounts do not add up to the amount being split."""
    pass


class SplitReconciliationError(FinanceError, ValueError):
    """A split strategy produced shares that do not sum to the total."""
    pass


# =============================================================================
# DOMAIN INVARIANTS
# =============================================================================

class InvalidStateTransitionError(FinanceError, ValueError):
    """A lifecycle transition was attempted from the wrong state."""
    pass


class ContributionExceedsRemainingError(FinanceError, ValueError):
    """A goal contribution is larger than what is left to reach the target."""
    pass


class InsufficientBalanceError(FinanceError, ValueError):
    """An account does not hold enough money for the operation."""
    pass


class DuplicateError(FinanceError, ValueError):
    """An id or member that must be unique is already present."""
    pass


# =============================================================================
# LOOKUPS
# =============================================================================

class NotFoundError(FinanceError, LookupError):
    """A referenced id does not exist in the owning collection."""
    pass


__all__ = [
    "ContributionExceedsRemainingError",
    "CurrencyConversionNotSupportedError",
    "CurrencyMismatchError",
    "CustomAmountMismatchError",
    "DuplicateError",
    "FinanceError",
    "FixedAmountExceededError",
    "InsufficientBalanceError",
    "InvalidIncomeError",
    "InvalidInputError",
    "InvalidOperandError",
    "InvalidStateTransitionError",
    "MissingIncomeError",
    "NegativeAmountError",
    "NotFoundError",
    "SplitReconciliationError",
    "ZeroAmountError",
]
