"""
Transaction Entity

A single movement of money on an account. Expenses are split between the
partners by applying an agreement's SplitRule; the resulting shares are
stored on the transaction and tracked until each partner has paid.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, PrivateAttr

from src.models.base import TaggedEntity, ValueObject, normalize_tag, require_text
from src.models.errors import InvalidStateTransitionError, NotFoundError, SplitReconciliationError
from src.models.money import Money
from src.models.split import SplitResult, total_of
from src.models.split_rule import SplitRule
from src.utils.datetime_utils import ensure_utc, parse_moment, to_iso, utcnow


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class TransactionCategory(ValueObject):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    parent_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "parentId": self.parent_id}


class TransactionSplit(ValueObject):
    """One partner's share of a transaction and whether it has been settled."""

    partner_id: str = Field(..., min_length=1)
    amount: Money
    percentage: float
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_result(cls, result: SplitResult) -> "TransactionSplit":
        return cls(
            partner_id=result.partner_id,
            amount=result.amount,
            percentage=result.percentage,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "partnerId": self.partner_id,
            "amount": self.amount.to_dict(),
            "percentage": self.percentage,
            "isPaid": self.is_paid,
            "paidAt": to_iso(self.paid_at),
            "notes": self.notes,
        }


class Transaction(TaggedEntity):
    """A transaction on one account."""

    account_id: str = Field(..., min_length=1)
    type: TransactionType = Field(default=TransactionType.EXPENSE)

    _amount: Money = PrivateAttr()
    _status: TransactionStatus = PrivateAttr(default=TransactionStatus.PENDING)
    _description: str = PrivateAttr()
    _occurred_at: datetime = PrivateAttr()
    _category: Optional[TransactionCategory] = PrivateAttr(default=None)
    _split_details: list[TransactionSplit] = PrivateAttr(default_factory=list)
    _notes: Optional[str] = PrivateAttr(default=None)
    _external_id: Optional[str] = PrivateAttr(default=None)

    def __init__(
        self,
        *,
        amount: Money,
        description: str,
        occurred_at: Optional[date | datetime | str] = None,
        category: Optional[TransactionCategory] = None,
        **data: Any,
    ):
        description = require_text(description, "Transaction description")
        super().__init__(**data)
        self._amount = amount
        self._description = description
        self._occurred_at = parse_moment(occurred_at) if occurred_at else utcnow()
        self._category = category

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def amount(self) -> Money:
        return self._amount

    @property
    def status(self) -> TransactionStatus:
        return self._status

    @property
    def description(self) -> str:
        return self._description

    @property
    def occurred_at(self) -> datetime:
        return self._occurred_at

    @property
    def category(self) -> Optional[TransactionCategory]:
        return self._category

    @property
    def split_details(self) -> list[TransactionSplit]:
        return list(self._split_details)

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    @property
    def external_id(self) -> Optional[str]:
        return self._external_id

    def is_pending(self) -> bool:
        return self._status == TransactionStatus.PENDING

    def is_confirmed(self) -> bool:
        return self._status == TransactionStatus.CONFIRMED

    def is_cancelled(self) -> bool:
        return self._status == TransactionStatus.CANCELLED

    def is_disputed(self) -> bool:
        return self._status == TransactionStatus.DISPUTED

    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    def is_transfer(self) -> bool:
        return self.type == TransactionType.TRANSFER

    def is_adjustment(self) -> bool:
        return self.type == TransactionType.ADJUSTMENT

    def absolute_amount(self) -> Money:
        return -self._amount if self._amount.is_negative() else self._amount

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update_amount(self, amount: Money) -> None:
        """Change the amount. Existing split details are dropped since they no longer add up."""
        if self.is_confirmed():
            raise InvalidStateTransitionError("Cannot update amount of confirmed transaction")
        self._amount = amount
        self._split_details = []
        self._touch()

    def update_description(self, description: str) -> None:
        self._description = require_text(description, "Transaction description")
        self._touch()

    def update_occurred_at(self, occurred_at: date | datetime | str) -> None:
        self._occurred_at = parse_moment(occurred_at)
        self._touch()

    def update_category(self, category: Optional[TransactionCategory]) -> None:
        self._category = category
        self._touch()

    def update_tags(self, tags: list[str]) -> None:
        """Replace all tags (lower-cased, duplicates dropped)."""
        normalized: list[str] = []
        for tag in tags:
            value = normalize_tag(require_text(tag, "Tag"))
            if value not in normalized:
                normalized.append(value)
        self._tags = normalized
        self._touch()

    def update_notes(self, notes: Optional[str]) -> None:
        self._notes = notes
        self._touch()

    def set_external_id(self, external_id: str) -> None:
        self._external_id = require_text(external_id, "External id")
        self._touch()

    def confirm(self) -> None:
        if self.is_cancelled():
            raise InvalidStateTransitionError("Cannot confirm a cancelled transaction")
        self._set_status(TransactionStatus.CONFIRMED)

    def cancel(self) -> None:
        self._set_status(TransactionStatus.CANCELLED)

    def dispute(self) -> None:
        self._set_status(TransactionStatus.DISPUTED)

    def _set_status(self, status: TransactionStatus) -> None:
        self._status = status
        self._touch()

    # -------------------------------------------------------------------------
    # Splitting
    # -------------------------------------------------------------------------

    def apply_split(
        self,
        split_rule: SplitRule,
        partner_incomes: Optional[dict[str, Money]] = None,
    ) -> list[SplitResult]:
        """Split the amount with ``split_rule`` and store the shares as unpaid."""
        results = split_rule.split(self._amount, partner_incomes)
        self._split_details = [TransactionSplit.from_result(result) for result in results]
        self._touch()
        return results

    def update_split_details(self, split_details: list[TransactionSplit]) -> None:
        """Replace the split by hand; the shares must add up to the amount."""
        if not total_of(split_details, self._amount.currency).equals(self._amount):
            raise SplitReconciliationError("Split details sum must equal transaction amount")
        self._split_details = list(split_details)
        self._touch()

    def _split_index(self, partner_id: str) -> int:
        for index, detail in enumerate(self._split_details):
            if detail.partner_id == partner_id:
                return index
        raise NotFoundError(f"Split detail not found for partner {partner_id}")

    def mark_split_paid(self, partner_id: str, paid_at: Optional[date | datetime] = None) -> None:
        index = self._split_index(partner_id)
        self._split_details[index] = self._split_details[index].model_copy(
            update={"is_paid": True, "paid_at": ensure_utc(paid_at) if paid_at else utcnow()}
        )
        self._touch()

    def mark_split_unpaid(self, partner_id: str) -> None:
        index = self._split_index(partner_id)
        self._split_details[index] = self._split_details[index].model_copy(
            update={"is_paid": False, "paid_at": None}
        )
        self._touch()

    def are_all_splits_paid(self) -> bool:
        return bool(self._split_details) and all(d.is_paid for d in self._split_details)

    def paid_splits_total(self) -> Money:
        return total_of([d for d in self._split_details if d.is_paid], self._amount.currency)

    def unpaid_splits_total(self) -> Money:
        return total_of([d for d in self._split_details if not d.is_paid], self._amount.currency)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "amount": self._amount.to_dict(),
            "type": self.type.value,
            "status": self._status.value,
            "description": self._description,
            "occurredAt": to_iso(self._occurred_at),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "category": self._category.to_dict() if self._category else None,
            "tags": self.tags,
            "splitDetails": [detail.to_dict() for detail in self._split_details],
            "notes": self._notes,
            "externalId": self._external_id,
            "metadata": self.metadata,
            "isConfirmed": self.is_confirmed(),
            "isPending": self.is_pending(),
            "isCancelled": self.is_cancelled(),
            "isDisputed": self.is_disputed(),
            "isIncome": self.is_income(),
            "isExpense": self.is_expense(),
            "isTransfer": self.is_transfer(),
            "isAdjustment": self.is_adjustment(),
            "absoluteAmount": self.absolute_amount().to_dict(),
            "areAllSplitsPaid": self.are_all_splits_paid(),
            "paidSplitsTotal": self.paid_splits_total().to_dict(),
            "unpaidSplitsTotal": self.unpaid_splits_total().to_dict(),
        }


__all__ = [
    "Transaction",
    "TransactionCategory",
    "TransactionSplit",
    "TransactionStatus",
    "TransactionType",
]
