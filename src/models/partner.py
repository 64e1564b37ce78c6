"""
Partner Entity

A member of a household, with the income streams used to weigh
proportional splits.
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import Field, PrivateAttr

from src.models.base import Entity, ValueObject, new_id, require_text
from src.models.errors import DuplicateError, InvalidInputError, NotFoundError
from src.models.money import DEFAULT_CURRENCY, Money
from src.utils.datetime_utils import to_iso

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class IncomeFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class IncomeStream(ValueObject):
    """A recurring source of income (salary, freelance work, rent received)."""

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1)
    amount: Money
    frequency: IncomeFrequency = IncomeFrequency.MONTHLY
    is_active: bool = True
    notes: Optional[str] = None

    def monthly_amount(self) -> Money:
        """Amount normalized to one month."""
        if self.frequency == IncomeFrequency.WEEKLY:
            return self.amount.multiply(52).divide(12)
        if self.frequency == IncomeFrequency.BIWEEKLY:
            return self.amount.multiply(26).divide(12)
        if self.frequency == IncomeFrequency.YEARLY:
            return self.amount.divide(12)
        return self.amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount.to_dict(),
            "frequency": self.frequency.value,
            "isActive": self.is_active,
            "notes": self.notes,
        }


class NotificationPreferences(ValueObject):
    email: bool = True
    push: bool = True
    budget_alerts: bool = True
    goal_alerts: bool = True
    agreement_alerts: bool = True
    monthly_review: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "push": self.push,
            "budgetAlerts": self.budget_alerts,
            "goalAlerts": self.goal_alerts,
            "agreementAlerts": self.agreement_alerts,
            "monthlyReview": self.monthly_review,
        }


def normalize_email(email: str) -> str:
    value = require_text(email, "Email").lower()
    if not EMAIL_PATTERN.match(value):
        raise InvalidInputError("Invalid email format")
    return value


class Partner(Entity):
    """One of the (at most two) people in a household."""

    _name: str = PrivateAttr()
    _email: str = PrivateAttr()
    _income_streams: list[IncomeStream] = PrivateAttr(default_factory=list)
    _notifications: NotificationPreferences = PrivateAttr(
        default_factory=NotificationPreferences
    )
    _is_active: bool = PrivateAttr(default=True)

    def __init__(self, *, name: str, email: str, **data: Any):
        name = require_text(name, "Partner name")
        email = normalize_email(email)
        super().__init__(**data)
        self._name = name
        self._email = email

    @property
    def name(self) -> str:
        return self._name

    @property
    def email(self) -> str:
        return self._email

    @property
    def income_streams(self) -> list[IncomeStream]:
        return list(self._income_streams)

    @property
    def notification_preferences(self) -> NotificationPreferences:
        return self._notifications

    @property
    def is_active(self) -> bool:
        return self._is_active

    def update_name(self, name: str) -> None:
        self._name = require_text(name, "Partner name")
        self._touch()

    def update_email(self, email: str) -> None:
        self._email = normalize_email(email)
        self._touch()

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    def add_income_stream(self, stream: IncomeStream) -> None:
        if any(existing.id == stream.id for existing in self._income_streams):
            raise DuplicateError("Income stream with this ID already exists")
        self._income_streams.append(stream)
        self._touch()

    def _stream_index(self, stream_id: str) -> int:
        for index, stream in enumerate(self._income_streams):
            if stream.id == stream_id:
                return index
        raise NotFoundError(f"Income stream not found: {stream_id}")

    def remove_income_stream(self, stream_id: str) -> None:
        del self._income_streams[self._stream_index(stream_id)]
        self._touch()

    def update_income_stream(self, stream_id: str, **changes: Any) -> IncomeStream:
        index = self._stream_index(stream_id)
        current = self._income_streams[index]
        updated = IncomeStream(**{**current.model_dump(), **changes, "id": current.id})
        self._income_streams[index] = updated
        self._touch()
        return updated

    def active_income_streams(self) -> list[IncomeStream]:
        return [stream for stream in self._income_streams if stream.is_active]

    def total_monthly_income(self, currency: str = DEFAULT_CURRENCY) -> Money:
        """
        Sum of the active streams in ``currency``, normalized to a month.

        Streams in other currencies are skipped; there is no conversion.
        """
        total = Money.zero(currency)
        for stream in self.active_income_streams():
            if stream.amount.currency != total.currency:
                continue
            total = total.add(stream.monthly_amount())
        return total

    # -------------------------------------------------------------------------
    # Preferences and status
    # -------------------------------------------------------------------------

    def update_notification_preferences(self, **changes: Any) -> None:
        self._notifications = NotificationPreferences(
            **{**self._notifications.model_dump(), **changes}
        )
        self._touch()

    def has_notification_enabled(self, name: str) -> bool:
        return bool(getattr(self._notifications, name))

    def activate(self) -> None:
        self._is_active = True
        self._touch()

    def deactivate(self) -> None:
        self._is_active = False
        self._touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self._name,
            "email": self._email,
            "incomeStreams": [stream.to_dict() for stream in self._income_streams],
            "notificationPreferences": self._notifications.to_dict(),
            "isActive": self._is_active,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "totalIncome": self.total_monthly_income().to_dict(),
        }


__all__ = [
    "IncomeFrequency",
    "IncomeStream",
    "NotificationPreferences",
    "Partner",
    "normalize_email",
]
