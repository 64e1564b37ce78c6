"""
Tests for the household aggregate, partners and accounts.
"""

import pytest
from datetime import date

from src.models.account import Account, AccountType
from src.models.agreement import Agreement, AgreementStatus, AgreementType
from src.models.budget_envelope import BudgetEnvelope
from src.models.errors import (
    CurrencyConversionNotSupportedError,
    CurrencyMismatchError,
    DuplicateError,
    InsufficientBalanceError,
    InvalidInputError,
    NotFoundError,
    ZeroAmountError,
)
from src.models.goal import Goal
from src.models.household import Household, PrivacyLevel
from src.models.money import Money
from src.models.partner import IncomeFrequency, IncomeStream, Partner
from src.models.split import SplitPartner, SplitType
from src.models.split_rule import SplitRule


def brl(amount) -> Money:
    return Money(amount=amount, currency="BRL")


def make_partner(name="Ana", email="ana@example.com", income=None) -> Partner:
    partner = Partner(name=name, email=email)
    if income is not None:
        partner.add_income_stream(IncomeStream(name="Salary", amount=brl(income)))
    return partner


def make_agreement(household: Household, agreement_type=AgreementType.FIXED_EXPENSES) -> Agreement:
    return Agreement(
        household_id=household.id,
        type=agreement_type,
        name="Rent",
        split_rule=SplitRule(
            type=SplitType.EQUAL,
            partners=(SplitPartner(partner_id="a"), SplitPartner(partner_id="b")),
            effective_from=date(2024, 1, 1),
        ),
        effective_from=date(2024, 1, 1),
    )


class TestPartner:
    """Tests for partners and their income streams."""

    def test_email_is_normalized(self):
        """Test that emails are lower-cased."""
        assert make_partner(email=" Ana@Example.COM ").email == "ana@example.com"

    def test_invalid_email_rejected(self):
        """Test email format validation."""
        with pytest.raises(InvalidInputError, match="Invalid email format"):
            make_partner(email="not-an-email")

    def test_monthly_income(self):
        """Test that income streams are normalized to a month."""
        partner = make_partner(income=4000)
        partner.add_income_stream(
            IncomeStream(name="Bonus", amount=brl(12000), frequency=IncomeFrequency.YEARLY)
        )
        partner.add_income_stream(
            IncomeStream(name="Old job", amount=brl(9999), is_active=False)
        )
        assert partner.total_monthly_income().equals(brl(5000))

    def test_weekly_income(self):
        """Test weekly normalization (52 weeks over 12 months)."""
        stream = IncomeStream(name="Gig", amount=brl(300), frequency=IncomeFrequency.WEEKLY)
        assert stream.monthly_amount().equals(brl(1300))

    def test_other_currencies_skipped(self):
        """Test that incomes in other currencies are not converted."""
        partner = make_partner(income=1000)
        partner.add_income_stream(
            IncomeStream(name="Remote", amount=Money(amount=500, currency="USD"))
        )
        assert partner.total_monthly_income("BRL").equals(brl(1000))

    def test_duplicate_stream_rejected(self):
        """Test that stream ids are unique."""
        partner = make_partner()
        stream = IncomeStream(name="Salary", amount=brl(1000))
        partner.add_income_stream(stream)
        with pytest.raises(DuplicateError, match="already exists"):
            partner.add_income_stream(stream)

    def test_update_and_remove_stream(self):
        """Test changing and removing a stream."""
        partner = make_partner()
        stream = IncomeStream(name="Salary", amount=brl(1000))
        partner.add_income_stream(stream)

        updated = partner.update_income_stream(stream.id, amount=brl(1500))
        assert updated.id == stream.id
        assert partner.total_monthly_income().equals(brl(1500))

        partner.remove_income_stream(stream.id)
        assert partner.income_streams == []
        with pytest.raises(NotFoundError, match="Income stream not found"):
            partner.remove_income_stream(stream.id)


class TestAccount:
    """Tests for accounts and transfers."""

    def make_account(self, balance=100, currency="BRL", **kwargs) -> Account:
        return Account(
            household_id="household-1",
            name="Checking",
            currency=currency,
            balance=Money(amount=balance, currency=currency),
            **kwargs,
        )

    def test_defaults(self):
        """Test a new joint account."""
        account = self.make_account()
        assert account.type == AccountType.CHECKING
        assert account.is_shared()
        assert account.balance.equals(brl(100))

    def test_balance_currency_must_match(self):
        """Test that the opening balance uses the account currency."""
        with pytest.raises(CurrencyMismatchError):
            Account(household_id="household-1", name="Checking", balance=Money(amount=1, currency="USD"))

    def test_transfer(self):
        """Test moving money between accounts."""
        source = self.make_account(balance=100)
        target = self.make_account(balance=0, type=AccountType.SAVINGS)
        source.transfer_to(target, brl(40))
        assert source.balance.equals(brl(60))
        assert target.balance.equals(brl(40))

    def test_transfer_must_be_positive(self):
        """Test that transfers must be positive."""
        with pytest.raises(ZeroAmountError, match="must be positive"):
            self.make_account().transfer_to(self.make_account(), brl(0))

    def test_insufficient_balance(self):
        """Test that an account cannot transfer more than it holds."""
        with pytest.raises(InsufficientBalanceError, match="Insufficient balance"):
            self.make_account(balance=10).transfer_to(self.make_account(), brl(20))

    def test_transfer_across_currencies(self):
        """Test that currency conversion is not supported."""
        usd = self.make_account(currency="USD")
        with pytest.raises(CurrencyConversionNotSupportedError, match="not implemented"):
            self.make_account().transfer_to(usd, brl(10))

    def test_available_balance_with_credit(self):
        """Test the credit limit helper."""
        account = self.make_account(balance=-50, type=AccountType.CREDIT)
        assert account.available_balance(brl(500)).equals(brl(450))
        assert account.available_balance().equals(brl(-50))


class TestHousehold:
    """Tests for the household aggregate."""

    def test_defaults(self):
        """Test a new household."""
        household = Household(name="Silva-Souza")
        assert household.currency == "BRL"
        assert household.privacy_level == PrivacyLevel.PRIVATE
        assert household.is_empty()

    def test_name_limit(self):
        """Test the name length limit."""
        with pytest.raises(InvalidInputError, match="cannot exceed 100 characters"):
            Household(name="x" * 101)

    def test_blank_name_rejected(self):
        """Test that a household needs a name."""
        with pytest.raises(InvalidInputError, match="Household name cannot be empty"):
            Household(name="  ")

    def test_at_most_two_partners(self):
        """Test the two-partner limit."""
        household = Household(name="Home")
        household.add_partner(make_partner("Ana", "ana@example.com"))
        household.add_partner(make_partner("Bia", "bia@example.com"))
        assert household.is_complete()
        with pytest.raises(InvalidInputError, match="maximum 2 partners"):
            household.add_partner(make_partner("Cris", "cris@example.com"))

    def test_partner_incomes(self):
        """Test the income map used by proportional splits."""
        household = Household(name="Home")
        ana = make_partner("Ana", "ana@example.com", income=4500)
        bia = make_partner("Bia", "bia@example.com", income=3200)
        household.add_partner(ana)
        household.add_partner(bia)

        incomes = household.partner_incomes()
        assert incomes == {ana.id: brl(4500), bia.id: brl(3200)}
        assert household.total_income().equals(brl(7700))
        assert round(household.partner_income_percentage(ana.id), 2) == 58.44

    def test_one_active_agreement_per_type(self):
        """Test that a second active agreement of the same type is rejected."""
        household = Household(name="Home")
        household.add_agreement(make_agreement(household))
        with pytest.raises(DuplicateError, match="Active agreement of type fixed_expenses"):
            household.add_agreement(make_agreement(household))

        household.add_agreement(make_agreement(household, AgreementType.SAVINGS))
        assert len(household.agreements) == 2

    def test_suspended_agreement_can_be_replaced(self):
        """Test that suspending frees the type for a new agreement."""
        household = Household(name="Home")
        first = make_agreement(household)
        household.add_agreement(first)
        first.suspend("partner-a")

        second = make_agreement(household)
        household.add_agreement(second)
        assert household.active_agreement_for(AgreementType.FIXED_EXPENSES) is second

        with pytest.raises(DuplicateError):
            household.resume_agreement(first.id, "partner-a")
        assert first.status == AgreementStatus.SUSPENDED

    def test_agreement_from_other_household(self):
        """Test that agreements belong to one household."""
        household = Household(name="Home")
        other = Household(name="Other")
        with pytest.raises(InvalidInputError, match="another household"):
            household.add_agreement(make_agreement(other))

    def test_active_agreement_for_date(self):
        """Test picking the agreement in force on a date."""
        household = Household(name="Home")
        agreement = make_agreement(household)
        household.add_agreement(agreement)
        assert household.active_agreement_for(AgreementType.FIXED_EXPENSES, date(2024, 6, 1)) is agreement
        assert household.active_agreement_for(AgreementType.FIXED_EXPENSES, date(2023, 6, 1)) is None

    def test_goals_and_envelopes(self):
        """Test attaching goals and envelopes."""
        household = Household(name="Home")
        goal = Goal(
            household_id=household.id,
            name="Trip",
            target_amount=brl(1000),
            target_date=date(2030, 1, 1),
            owner_ids=["partner-a"],
        )
        envelope = BudgetEnvelope(household_id=household.id, name="Groceries", limit=brl(800))
        household.add_goal(goal)
        household.add_envelope(envelope)

        assert household.get_goal(goal.id) is goal
        assert household.active_goals() == [goal]
        assert household.get_envelope(envelope.id) is envelope

        stranger = BudgetEnvelope(household_id="elsewhere", name="Fun", limit=brl(10))
        with pytest.raises(InvalidInputError, match="another household"):
            household.add_envelope(stranger)

    def test_remove_missing_goal(self):
        """Test removing a goal that is not there."""
        with pytest.raises(NotFoundError):
            Household(name="Home").remove_goal("missing")

    def test_update_settings(self):
        """Test changing household settings."""
        household = Household(name="Home")
        household.update_settings(
            require_approval_for_large_transactions=True,
            large_transaction_threshold=brl(5000),
        )
        assert household.requires_approval(brl(6000))
        assert not household.requires_approval(brl(100))

    def test_to_dict(self):
        """Test the camelCase snapshot."""
        household = Household(name="Home")
        household.add_partner(make_partner())
        snapshot = household.to_dict()
        assert snapshot["name"] == "Home"
        assert len(snapshot["partners"]) == 1
        assert snapshot["settings"]["currency"] == "BRL"
        assert snapshot["isComplete"] is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
