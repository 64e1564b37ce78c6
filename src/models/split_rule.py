"""
Split Rule

An immutable description of how expenses are divided: the split type, the
partners involved and the period the rule applies to. The per-type
arithmetic lives in ``split_strategies``.
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from src.models.base import ValueObject
from src.models.errors import NegativeAmountError, ZeroAmountError
from src.models.money import Money
from src.models.split import SplitPartner, SplitResult, SplitType
from src.models.split_strategies import get_strategy, reconciles
from src.utils.datetime_utils import ensure_utc, parse_moment, to_iso


class SplitRule(ValueObject):
    """
    How an amount is divided between partners.

    Every structural problem (no partners, duplicate partners, missing
    fixed or custom amounts) is rejected here, at construction, so that
    ``split`` only ever fails on problems with its own inputs.
    """

    type: SplitType = Field(
        ...,
        description="Split strategy"
    )
    partners: tuple[SplitPartner, ...] = Field(
        ...,
        description="Ordered partner configurations"
    )
    effective_from: datetime = Field(
        ...,
        description="First moment the rule applies (UTC)"
    )
    effective_until: Optional[datetime] = Field(
        default=None,
        description="Last moment the rule applies; open-ended when None"
    )

    @field_validator("effective_from", "effective_until", mode="before")
    @classmethod
    def normalize_moment(cls, v: Any) -> Any:
        return parse_moment(v)

    @field_validator("partners")
    @classmethod
    def require_partners(cls, v: tuple[SplitPartner, ...]) -> tuple[SplitPartner, ...]:
        if not v:
            raise ValueError("At least one partner is required")
        ids = [partner.partner_id for partner in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate partner IDs are not allowed")
        return v

    @model_validator(mode="after")
    def validate_rule(self) -> "SplitRule":
        if self.effective_until is not None and self.effective_until < self.effective_from:
            raise ValueError("Effective until cannot be before effective from")
        get_strategy(self.type).validate_partners(self.partners)
        return self

    @property
    def partner_ids(self) -> list[str]:
        return [partner.partner_id for partner in self.partners]

    def is_active_on(self, on: date | datetime) -> bool:
        """True when ``on`` falls inside [effective_from, effective_until]."""
        moment = ensure_utc(on)
        if moment < self.effective_from:
            return False
        return self.effective_until is None or moment <= self.effective_until

    def split(
        self,
        amount: Money,
        partner_incomes: Optional[dict[str, Money]] = None,
    ) -> list[SplitResult]:
        """
        Divide ``amount`` between the rule's partners.

        ``partner_incomes`` is required for PROPORTIONAL rules and must
        cover every partner. The returned shares always add up to
        ``amount`` exactly.
        """
        if amount.is_negative():
            raise NegativeAmountError("Cannot split negative amounts")
        if amount.is_zero():
            raise ZeroAmountError("Cannot split zero amounts")
        return get_strategy(self.type).split(amount, self.partners, partner_incomes)

    def validate_split(self, total: Money, results: list[SplitResult]) -> bool:
        """True when ``results`` add up exactly to ``total``."""
        return reconciles(total, results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "partners": [partner.to_dict() for partner in self.partners],
            "effectiveFrom": to_iso(self.effective_from),
            "effectiveUntil": to_iso(self.effective_until),
        }


__all__ = ["SplitRule"]
