"""
Account Entity

A bank account, card, wallet or investment the household tracks balances
for. Accounts with no owner are joint accounts.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import Field, PrivateAttr, field_validator

from src.models.base import Entity, require_text
from src.models.errors import (
    CurrencyConversionNotSupportedError,
    CurrencyMismatchError,
    InsufficientBalanceError,
    ZeroAmountError,
)
from src.models.money import DEFAULT_CURRENCY, Money, normalize_currency
from src.utils.datetime_utils import to_iso


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"
    CASH = "cash"


class Account(Entity):
    """
    An account and its balance.

    The currency is fixed at creation; every balance change must use it.
    """

    household_id: str = Field(..., min_length=1)
    currency: str = Field(default=DEFAULT_CURRENCY)
    owner_id: Optional[str] = Field(
        default=None,
        description="Owning partner; None means the account is joint"
    )

    _name: str = PrivateAttr()
    _type: AccountType = PrivateAttr()
    _balance: Money = PrivateAttr()
    _description: Optional[str] = PrivateAttr(default=None)
    _is_active: bool = PrivateAttr(default=True)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return normalize_currency(v)

    def __init__(
        self,
        *,
        name: str,
        type: AccountType = AccountType.CHECKING,
        balance: Optional[Money] = None,
        description: Optional[str] = None,
        **data: Any,
    ):
        name = require_text(name, "Account name")
        super().__init__(**data)
        if balance is not None:
            self._check_currency(balance, "Balance currency must match account currency")
        self._name = name
        self._type = AccountType(type)
        self._balance = balance if balance is not None else Money.zero(self.currency)
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> AccountType:
        return self._type

    @property
    def balance(self) -> Money:
        return self._balance

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def is_active(self) -> bool:
        return self._is_active

    def is_shared(self) -> bool:
        return self.owner_id is None

    def is_individual(self) -> bool:
        return self.owner_id is not None

    def belongs_to(self, partner_id: str) -> bool:
        return self.owner_id == partner_id

    def _check_currency(self, amount: Money, message: str) -> None:
        if amount.currency != self.currency:
            raise CurrencyMismatchError(amount.currency, self.currency, message)

    # -------------------------------------------------------------------------
    # Balance
    # -------------------------------------------------------------------------

    def update_balance(self, balance: Money) -> None:
        self._check_currency(balance, "Balance currency must match account currency")
        self._balance = balance
        self._touch()

    def add_to_balance(self, amount: Money) -> None:
        self._check_currency(amount, "Amount currency must match account currency")
        self._balance = self._balance.add(amount)
        self._touch()

    def subtract_from_balance(self, amount: Money) -> None:
        self._check_currency(amount, "Amount currency must match account currency")
        self._balance = self._balance.subtract(amount)
        self._touch()

    def available_balance(self, credit_limit: Optional[Money] = None) -> Money:
        """Balance plus the credit limit, when one is given."""
        if credit_limit is None:
            return self._balance
        return self._balance.add(credit_limit)

    def has_sufficient_balance(self, amount: Money) -> bool:
        return self._balance.is_greater_than_or_equal(amount)

    def transfer_to(self, target: "Account", amount: Money) -> None:
        """Move ``amount`` from this account to ``target``; both must share a currency."""
        self._check_currency(amount, "Amount currency must match account currency")
        if not amount.is_positive():
            raise ZeroAmountError("Transfer amount must be positive")
        if not self.has_sufficient_balance(amount):
            raise InsufficientBalanceError("Insufficient balance for transfer")
        if target.currency != self.currency:
            raise CurrencyConversionNotSupportedError("Currency conversion not implemented")

        self.subtract_from_balance(amount)
        target.add_to_balance(amount)

    # -------------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------------

    def update_name(self, name: str) -> None:
        self._name = require_text(name, "Account name")
        self._touch()

    def update_type(self, type: AccountType) -> None:
        self._type = AccountType(type)
        self._touch()

    def update_description(self, description: Optional[str]) -> None:
        self._description = description
        self._touch()

    def activate(self) -> None:
        self._is_active = True
        self._touch()

    def deactivate(self) -> None:
        self._is_active = False
        self._touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "householdId": self.household_id,
            "name": self._name,
            "type": self._type.value,
            "currency": self.currency,
            "balance": self._balance.to_dict(),
            "ownerId": self.owner_id,
            "description": self._description,
            "isActive": self._is_active,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "isShared": self.is_shared(),
            "isIndividual": self.is_individual(),
        }


__all__ = ["Account", "AccountType"]
