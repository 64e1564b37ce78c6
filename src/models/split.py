"""
Split Models

The inputs and outputs of expense splitting: which partners take part in a
split and what each of them ends up owing.
"""

from collections.abc import Iterable
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from src.models.base import ValueObject
from src.models.money import Money


class SplitType(str, Enum):
    """How an amount is divided between partners."""
    EQUAL = "equal"                  # Same share for everyone
    PROPORTIONAL = "proportional"    # Weighted by partner income
    FIXED = "fixed"                  # Fixed amounts plus an equal share of the rest
    CUSTOM = "custom"                # Explicit amounts that must add up to the total


class SplitPartner(ValueObject):
    """
    One partner's configuration inside a split rule.

    Which optional amount is required depends on the rule's split type.
    """

    partner_id: str = Field(
        ...,
        min_length=1,
        description="Partner taking part in the split"
    )
    percentage: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Informational share (0-100); proportional shares come from income"
    )
    fixed_amount: Optional[Money] = Field(
        default=None,
        description="Amount always charged to this partner (FIXED)"
    )
    custom_amount: Optional[Money] = Field(
        default=None,
        description="Exact amount charged to this partner (CUSTOM)"
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "partnerId": self.partner_id,
            "percentage": self.percentage,
            "fixedAmount": self.fixed_amount.to_dict() if self.fixed_amount else None,
            "customAmount": self.custom_amount.to_dict() if self.custom_amount else None,
        }


class SplitResult(ValueObject):
    """What one partner owes after a split."""

    partner_id: str = Field(
        ...,
        min_length=1,
        description="Partner this share belongs to"
    )
    amount: Money = Field(
        ...,
        description="Allocated share, in the currency of the split amount"
    )
    percentage: float = Field(
        ...,
        description="Share of the total as a percentage (informational)"
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "partnerId": self.partner_id,
            "amount": self.amount.to_dict(),
            "percentage": self.percentage,
        }


def total_of(shares: Iterable[Any], currency: str) -> Money:
    """Sum of the ``amount`` of each share (SplitResult, TransactionSplit...)."""
    total = Money.zero(currency)
    for share in shares:
        total = total.add(share.amount)
    return total


def results_by_partner(results: list[SplitResult]) -> dict[str, Money]:
    """Map partner id to allocated amount."""
    return {result.partner_id: result.amount for result in results}


__all__ = [
    "SplitPartner",
    "SplitResult",
    "SplitType",
    "results_by_partner",
    "total_of",
]
