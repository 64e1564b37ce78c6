"""
Split Strategies

One strategy per SplitType. Each strategy checks the partner configuration
it needs when a rule is built, and turns an amount into per-partner shares
when the rule is applied.

DESIGN DECISION: Shares are produced with Money.allocate (largest
remainder), never by rounding each share on its own. The sum of the shares
always equals the amount being split, to the cent. ``SplitStrategy.split``
re-checks this after every allocation and fails loudly if it ever breaks.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import ClassVar, Optional

from src.models.errors import (
    CurrencyMismatchError,
    CustomAmountMismatchError,
    FixedAmountExceededError,
    InvalidIncomeError,
    InvalidInputError,
    MissingIncomeError,
    NegativeAmountError,
    SplitReconciliationError,
)
from src.models.money import Money
from src.models.split import SplitPartner, SplitResult, SplitType, total_of


def share_percentage(share: Money, total: Money) -> float:
    """Share of ``total`` as a 0-100 float."""
    return share.amount_in_cents / total.amount_in_cents * 100


def reconciles(total: Money, results: Sequence[SplitResult]) -> bool:
    """True when the shares add up exactly to ``total``."""
    if any(result.amount.currency != total.currency for result in results):
        return False
    return total_of(results, total.currency).equals(total)


class SplitStrategy(ABC):
    """Base class for split strategies."""

    split_type: ClassVar[SplitType]

    def validate_partners(self, partners: Sequence[SplitPartner]) -> None:
        """Construction-time checks on the partner list. Default: none."""

    @abstractmethod
    def allocate(
        self,
        amount: Money,
        partners: Sequence[SplitPartner],
        partner_incomes: Optional[Mapping[str, Money]] = None,
    ) -> list[SplitResult]:
        """Divide ``amount`` between ``partners``."""

    def split(
        self,
        amount: Money,
        partners: Sequence[SplitPartner],
        partner_incomes: Optional[Mapping[str, Money]] = None,
    ) -> list[SplitResult]:
        if not partners:
            raise InvalidInputError(f"No partners defined for {self.split_type.value} split")
        results = self.allocate(amount, partners, partner_incomes)
        if not reconciles(amount, results):
            raise SplitReconciliationError(
                f"{self.split_type.value} split does not add up to {amount}"
            )
        return results


class EqualSplitStrategy(SplitStrategy):
    """Everyone pays the same; leftover cents go to the first partners."""

    split_type = SplitType.EQUAL

    def allocate(self, amount, partners, partner_incomes=None):
        shares = amount.allocate([1] * len(partners))
        percentage = 100 / len(partners)
        return [
            SplitResult(partner_id=partner.partner_id, amount=share, percentage=percentage)
            for partner, share in zip(partners, shares)
        ]


class ProportionalSplitStrategy(SplitStrategy):
    """Shares weighted by each partner's income."""

    split_type = SplitType.PROPORTIONAL

    def allocate(self, amount, partners, partner_incomes=None):
        if partner_incomes is None:
            raise MissingIncomeError()

        incomes: list[Money] = []
        for partner in partners:
            income = partner_incomes.get(partner.partner_id)
            if income is None:
                raise MissingIncomeError(partner.partner_id)
            if income.currency != amount.currency:
                raise CurrencyMismatchError(
                    income.currency,
                    amount.currency,
                    f"Income currency mismatch for partner {partner.partner_id}",
                )
            if not income.is_positive():
                raise InvalidIncomeError(
                    f"Invalid income for partner {partner.partner_id}: {income}"
                )
            incomes.append(income)

        total_income = sum(income.amount_in_cents for income in incomes)
        if total_income == 0:
            raise InvalidIncomeError("Total income cannot be zero")

        shares = amount.allocate([income.amount_in_cents for income in incomes])
        return [
            SplitResult(
                partner_id=partner.partner_id,
                amount=share,
                percentage=income.amount_in_cents / total_income * 100,
            )
            for partner, income, share in zip(partners, incomes, shares)
        ]


class FixedSplitStrategy(SplitStrategy):
    """
    Fixed amount per partner, then the remainder divided equally.

    Fixed amounts [30, 20] on a total of 100 leave 50, so each partner
    gets 25 more: [55, 45].
    """

    split_type = SplitType.FIXED

    def validate_partners(self, partners):
        for partner in partners:
            if partner.fixed_amount is None:
                raise InvalidInputError(
                    f"Fixed amount required for partner {partner.partner_id}"
                )
            if partner.fixed_amount.is_negative():
                raise NegativeAmountError(
                    f"Fixed amount cannot be negative for partner {partner.partner_id}"
                )

    def allocate(self, amount, partners, partner_incomes=None):
        self.validate_partners(partners)
        total_fixed = Money.zero(amount.currency)
        for partner in partners:
            if partner.fixed_amount.currency != amount.currency:
                raise CurrencyMismatchError(
                    partner.fixed_amount.currency,
                    amount.currency,
                    f"Fixed amount currency mismatch for partner {partner.partner_id}",
                )
            total_fixed = total_fixed.add(partner.fixed_amount)

        if total_fixed.is_greater_than(amount):
            raise FixedAmountExceededError("Total fixed amounts exceed the transaction amount")

        extras = amount.subtract(total_fixed).allocate([1] * len(partners))
        results = []
        for partner, extra in zip(partners, extras):
            share = partner.fixed_amount.add(extra)
            results.append(
                SplitResult(
                    partner_id=partner.partner_id,
                    amount=share,
                    percentage=share_percentage(share, amount),
                )
            )
        return results


class CustomSplitStrategy(SplitStrategy):
    """Explicit per-partner amounts that must add up to the total."""

    split_type = SplitType.CUSTOM

    def validate_partners(self, partners):
        for partner in partners:
            if partner.custom_amount is None:
                raise InvalidInputError(
                    f"Custom amount required for partner {partner.partner_id}"
                )

    def allocate(self, amount, partners, partner_incomes=None):
        self.validate_partners(partners)
        for partner in partners:
            if partner.custom_amount.currency != amount.currency:
                raise CurrencyMismatchError(
                    partner.custom_amount.currency,
                    amount.currency,
                    f"Custom amount currency mismatch for partner {partner.partner_id}",
                )

        total_custom = Money.zero(amount.currency)
        for partner in partners:
            total_custom = total_custom.add(partner.custom_amount)
        if not total_custom.equals(amount):
            raise CustomAmountMismatchError(
                "Sum of custom amounts must equal the transaction amount"
            )

        return [
            SplitResult(
                partner_id=partner.partner_id,
                amount=partner.custom_amount,
                percentage=share_percentage(partner.custom_amount, amount),
            )
            for partner in partners
        ]


STRATEGIES: dict[SplitType, SplitStrategy] = {
    strategy.split_type: strategy
    for strategy in (
        EqualSplitStrategy(),
        ProportionalSplitStrategy(),
        FixedSplitStrategy(),
        CustomSplitStrategy(),
    )
}


def get_strategy(split_type: SplitType) -> SplitStrategy:
    return STRATEGIES[SplitType(split_type)]


__all__ = [
    "CustomSplitStrategy",
    "EqualSplitStrategy",
    "FixedSplitStrategy",
    "ProportionalSplitStrategy",
    "STRATEGIES",
    "SplitStrategy",
    "get_strategy",
    "reconciles",
    "share_percentage",
]
