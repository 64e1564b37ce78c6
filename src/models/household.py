"""
Household Aggregate

The couple and everything they share: partners, agreements, goals and
budget envelopes. The household enforces the rules that span several
entities, such as the two-partner limit and one active agreement per type.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import PrivateAttr, field_validator

from src.models.agreement import Agreement, AgreementStatus, AgreementType
from src.models.base import Entity, ValueObject, require_text
from src.models.budget_envelope import BudgetEnvelope
from src.models.errors import DuplicateError, InvalidInputError, NotFoundError
from src.models.goal import Goal
from src.models.money import DEFAULT_CURRENCY, Money, normalize_currency
from src.models.partner import Partner
from src.utils.datetime_utils import to_iso, utcnow

MAX_PARTNERS = 2
MAX_NAME_LENGTH = 100


class PrivacyLevel(str, Enum):
    PRIVATE = "private"    # Only the partners see the data
    SHARED = "shared"      # Partners may share with third parties
    PUBLIC = "public"


class HouseholdSettings(ValueObject):
    currency: str = DEFAULT_CURRENCY
    privacy_level: PrivacyLevel = PrivacyLevel.PRIVATE
    allow_retroactive_changes: bool = False
    require_approval_for_large_transactions: bool = False
    large_transaction_threshold: Optional[Money] = None
    monthly_review_reminder: bool = True
    budget_alerts: bool = True
    goal_alerts: bool = True

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return normalize_currency(v)

    def to_dict(self) -> dict[str, Any]:
        threshold = self.large_transaction_threshold
        return {
            "currency": self.currency,
            "privacyLevel": self.privacy_level.value,
            "allowRetroactiveChanges": self.allow_retroactive_changes,
            "requireApprovalForLargeTransactions": self.require_approval_for_large_transactions,
            "largeTransactionThreshold": threshold.to_dict() if threshold else None,
            "monthlyReviewReminder": self.monthly_review_reminder,
            "budgetAlerts": self.budget_alerts,
            "goalAlerts": self.goal_alerts,
        }


class Household(Entity):
    """
    Aggregate root for a couple's finances.

    Usage:
        household = Household(name="Silva-Souza")
        household.add_partner(alice)
        household.add_partner(bob)
        household.add_agreement(rent_agreement)
        incomes = household.partner_incomes()
    """

    _name: str = PrivateAttr()
    _settings: HouseholdSettings = PrivateAttr(default_factory=HouseholdSettings)
    _partners: list[Partner] = PrivateAttr(default_factory=list)
    _agreements: list[Agreement] = PrivateAttr(default_factory=list)
    _goals: list[Goal] = PrivateAttr(default_factory=list)
    _envelopes: list[BudgetEnvelope] = PrivateAttr(default_factory=list)

    def __init__(
        self,
        *,
        name: str,
        settings: Optional[HouseholdSettings] = None,
        **data: Any,
    ):
        name = self._check_name(name)
        super().__init__(**data)
        self._name = name
        if settings is not None:
            self._settings = settings

    @staticmethod
    def _check_name(name: str) -> str:
        name = require_text(name, "Household name")
        if len(name) > MAX_NAME_LENGTH:
            raise InvalidInputError(
                f"Household name cannot exceed {MAX_NAME_LENGTH} characters"
            )
        return name

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def settings(self) -> HouseholdSettings:
        return self._settings

    @property
    def currency(self) -> str:
        return self._settings.currency

    @property
    def privacy_level(self) -> PrivacyLevel:
        return self._settings.privacy_level

    @property
    def partners(self) -> list[Partner]:
        return list(self._partners)

    @property
    def agreements(self) -> list[Agreement]:
        return list(self._agreements)

    @property
    def goals(self) -> list[Goal]:
        return list(self._goals)

    @property
    def envelopes(self) -> list[BudgetEnvelope]:
        return list(self._envelopes)

    def is_complete(self) -> bool:
        return len(self._partners) == MAX_PARTNERS

    def is_empty(self) -> bool:
        return not self._partners

    def update_name(self, name: str) -> None:
        self._name = self._check_name(name)
        self._touch()

    def update_settings(self, **changes: Any) -> None:
        self._settings = HouseholdSettings(**{**self._settings.model_dump(), **changes})
        self._touch()

    # -------------------------------------------------------------------------
    # Partners
    # -------------------------------------------------------------------------

    def add_partner(self, partner: Partner) -> None:
        if len(self._partners) >= MAX_PARTNERS:
            raise InvalidInputError(f"Household can have maximum {MAX_PARTNERS} partners")
        if self.get_partner(partner.id) is not None:
            raise DuplicateError("Partner already exists in household")
        self._partners.append(partner)
        self._touch()

    def remove_partner(self, partner_id: str) -> None:
        partner = self._require(self._partners, partner_id, "Partner not found in household")
        self._partners.remove(partner)
        self._touch()

    def get_partner(self, partner_id: str) -> Optional[Partner]:
        return next((p for p in self._partners if p.id == partner_id), None)

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    def partner_incomes(self, currency: Optional[str] = None) -> dict[str, Money]:
        """Monthly income per partner id, in the form proportional splits consume."""
        currency = currency or self.currency
        return {p.id: p.total_monthly_income(currency) for p in self._partners}

    def total_income(self) -> Money:
        total = Money.zero(self.currency)
        for income in self.partner_incomes().values():
            total = total.add(income)
        return total

    def partner_income(self, partner_id: str) -> Money:
        partner = self._require(self._partners, partner_id, "Partner not found")
        return partner.total_monthly_income(self.currency)

    def partner_income_percentage(self, partner_id: str) -> float:
        total = self.total_income()
        income = self.partner_income(partner_id)
        if total.is_zero():
            return 0.0
        return income.amount_in_cents / total.amount_in_cents * 100

    def requires_approval(self, amount: Money) -> bool:
        threshold = self._settings.large_transaction_threshold
        if not self._settings.require_approval_for_large_transactions or threshold is None:
            return False
        return amount.is_greater_than(threshold)

    # -------------------------------------------------------------------------
    # Agreements
    # -------------------------------------------------------------------------

    def _active_of_type(self, agreement_type: AgreementType) -> Optional[Agreement]:
        return next(
            (
                a for a in self._agreements
                if a.type == agreement_type and a.status == AgreementStatus.ACTIVE
            ),
            None,
        )

    def add_agreement(self, agreement: Agreement) -> None:
        """Attach an agreement; only one ACTIVE agreement per type is allowed."""
        if agreement.household_id != self.id:
            raise InvalidInputError("Agreement belongs to another household")
        if self.get_agreement(agreement.id) is not None:
            raise DuplicateError("Agreement already exists in household")
        if (
            agreement.status == AgreementStatus.ACTIVE
            and self._active_of_type(agreement.type) is not None
        ):
            raise DuplicateError(
                f"Active agreement of type {agreement.type.value} already exists"
            )
        self._agreements.append(agreement)
        self._touch()

    def resume_agreement(
        self, agreement_id: str, changed_by: str, reason: Optional[str] = None
    ) -> Agreement:
        """Resume a suspended agreement unless another one of its type is active."""
        agreement = self._require(self._agreements, agreement_id, "Agreement not found")
        if self._active_of_type(agreement.type) is not None:
            raise DuplicateError(
                f"Active agreement of type {agreement.type.value} already exists"
            )
        agreement.resume(changed_by, reason)
        self._touch()
        return agreement

    def remove_agreement(self, agreement_id: str) -> None:
        agreement = self._require(self._agreements, agreement_id, "Agreement not found")
        self._agreements.remove(agreement)
        self._touch()

    def get_agreement(self, agreement_id: str) -> Optional[Agreement]:
        return next((a for a in self._agreements if a.id == agreement_id), None)

    def active_agreements(self, on: Optional[date | datetime] = None) -> list[Agreement]:
        on = on or utcnow()
        return [a for a in self._agreements if a.is_active_on(on)]

    def active_agreement_for(
        self, agreement_type: AgreementType, on: Optional[date | datetime] = None
    ) -> Optional[Agreement]:
        return next(
            (a for a in self.active_agreements(on) if a.type == agreement_type), None
        )

    # -------------------------------------------------------------------------
    # Goals and envelopes
    # -------------------------------------------------------------------------

    def add_goal(self, goal: Goal) -> None:
        if goal.household_id != self.id:
            raise InvalidInputError("Goal belongs to another household")
        if self.get_goal(goal.id) is not None:
            raise DuplicateError("Goal already exists in household")
        self._goals.append(goal)
        self._touch()

    def remove_goal(self, goal_id: str) -> None:
        goal = self._require(self._goals, goal_id, "Goal not found")
        self._goals.remove(goal)
        self._touch()

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self._goals if g.id == goal_id), None)

    def active_goals(self) -> list[Goal]:
        return [g for g in self._goals if g.is_active()]

    def add_envelope(self, envelope: BudgetEnvelope) -> None:
        if envelope.household_id != self.id:
            raise InvalidInputError("Envelope belongs to another household")
        if self.get_envelope(envelope.id) is not None:
            raise DuplicateError("Envelope already exists in household")
        self._envelopes.append(envelope)
        self._touch()

    def remove_envelope(self, envelope_id: str) -> None:
        envelope = self._require(self._envelopes, envelope_id, "Envelope not found")
        self._envelopes.remove(envelope)
        self._touch()

    def get_envelope(self, envelope_id: str) -> Optional[BudgetEnvelope]:
        return next((e for e in self._envelopes if e.id == envelope_id), None)

    @staticmethod
    def _require(items: list, item_id: str, message: str):
        for item in items:
            if item.id == item_id:
                return item
        raise NotFoundError(message)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self._name,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "partners": [p.to_dict() for p in self._partners],
            "agreements": [a.to_dict() for a in self._agreements],
            "goals": [g.to_dict() for g in self._goals],
            "envelopes": [e.to_dict() for e in self._envelopes],
            "settings": self._settings.to_dict(),
            "isComplete": self.is_complete(),
            "isEmpty": self.is_empty(),
        }


__all__ = [
    "Household",
    "HouseholdSettings",
    "MAX_NAME_LENGTH",
    "MAX_PARTNERS",
    "PrivacyLevel",
]
