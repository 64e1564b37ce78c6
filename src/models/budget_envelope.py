"""
Budget Envelope Entity

An envelope is a spending limit for one category over one budget period.
Spending accumulates into it; at the end of the period it is reset and
whatever was left over may roll over into the next period.

DESIGN DECISION: ``reset_for_new_period`` returns the rollover amount
instead of crediting it anywhere. Where the money goes (this envelope's
next limit, another envelope, savings) is the caller's decision.
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, PrivateAttr, field_validator, model_validator

from src.models.base import TaggedEntity, ValueObject, require_text
from src.models.errors import CurrencyMismatchError, InvalidInputError, NegativeAmountError
from src.models.money import Money
from src.utils.datetime_utils import add_months, end_of_month, to_iso, utcnow

DEFAULT_CUSTOM_PERIOD_DAYS = 30


class EnvelopeType(str, Enum):
    SHARED = "shared"
    PERSONAL = "personal"
    GOAL = "goal"
    EMERGENCY = "emergency"


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    CUSTOM = "custom"


def period_bounds(
    period: BudgetPeriod,
    today: date,
    custom_days: int = DEFAULT_CUSTOM_PERIOD_DAYS,
) -> tuple[date, date]:
    """
    First and last day of the budget period containing ``today``.

    MONTHLY    first to last day of the month
    QUARTERLY  first day of the calendar quarter, through the last day
               three months later
    YEARLY     Jan 1 to Dec 31
    CUSTOM     today through ``custom_days`` days later, used only when no
               explicit range was supplied
    """
    if period == BudgetPeriod.MONTHLY:
        return date(today.year, today.month, 1), end_of_month(today.year, today.month)
    if period == BudgetPeriod.QUARTERLY:
        start = date(today.year, (today.month - 1) // 3 * 3 + 1, 1)
        last = add_months(start, 2)
        return start, end_of_month(last.year, last.month)
    if period == BudgetPeriod.YEARLY:
        return date(today.year, 1, 1), date(today.year, 12, 31)
    return today, today + timedelta(days=custom_days)


class RolloverSettings(ValueObject):
    """How much unspent money may be carried into the next period."""

    enabled: bool = False
    max_amount: Optional[Money] = Field(
        default=None,
        description="Absolute ceiling on the rollover"
    )
    percentage: Optional[float] = Field(
        default=None,
        gt=0,
        le=100,
        description="Ceiling as a percentage of the unspent amount"
    )

    @field_validator("max_amount")
    @classmethod
    def validate_max_amount(cls, v: Optional[Money]) -> Optional[Money]:
        if v is not None and v.is_negative():
            raise ValueError("Rollover max amount cannot be negative")
        return v

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "maxAmount": self.max_amount.to_dict() if self.max_amount else None,
            "percentage": self.percentage,
        }


class EnvelopeAlerts(ValueObject):
    """Spending thresholds, as percentages of the limit."""

    enabled: bool = True
    warn_at_percentage: float = Field(default=80, ge=0)
    critical_at_percentage: float = Field(default=95, ge=0)
    email_notification: bool = True
    push_notification: bool = True

    @model_validator(mode="after")
    def validate_bands(self) -> "EnvelopeAlerts":
        if self.warn_at_percentage > self.critical_at_percentage:
            raise ValueError("Warn percentage cannot be above critical percentage")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "warnAtPercentage": self.warn_at_percentage,
            "criticalAtPercentage": self.critical_at_percentage,
            "emailNotification": self.email_notification,
            "pushNotification": self.push_notification,
        }


class BudgetEnvelope(TaggedEntity):
    """
    A spending limit for one period.

    The alert bands are mutually exclusive: below the warn percentage
    nothing fires, from warn up to (not including) critical ``should_warn``
    fires, and from critical upwards only ``should_alert_critical`` does.
    """

    household_id: str = Field(..., min_length=1)
    type: EnvelopeType = Field(default=EnvelopeType.SHARED)
    period: BudgetPeriod = Field(default=BudgetPeriod.MONTHLY)
    owner_id: Optional[str] = Field(
        default=None,
        description="Owning partner; None means the envelope is joint"
    )

    _name: str = PrivateAttr()
    _description: Optional[str] = PrivateAttr(default=None)
    _category_id: Optional[str] = PrivateAttr(default=None)
    _limit: Money = PrivateAttr()
    _spent: Money = PrivateAttr()
    _rollover: RolloverSettings = PrivateAttr(default_factory=RolloverSettings)
    _alerts: EnvelopeAlerts = PrivateAttr(default_factory=EnvelopeAlerts)
    _is_active: bool = PrivateAttr(default=True)
    _start_date: date = PrivateAttr()
    _end_date: date = PrivateAttr()

    def __init__(
        self,
        *,
        name: str,
        limit: Money,
        custom_range: Optional[tuple[date, date]] = None,
        today: Optional[date] = None,
        description: Optional[str] = None,
        category_id: Optional[str] = None,
        **data: Any,
    ):
        name = require_text(name, "Envelope name")
        if limit.is_negative():
            raise NegativeAmountError("Envelope limit cannot be negative")
        super().__init__(**data)
        self._name = name
        self._description = description
        self._category_id = category_id
        self._limit = limit
        self._spent = Money.zero(limit.currency)
        self._start_date, self._end_date = self._next_bounds(
            today or utcnow().date(), custom_range
        )

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def category_id(self) -> Optional[str]:
        return self._category_id

    @property
    def currency(self) -> str:
        return self._limit.currency

    @property
    def limit(self) -> Money:
        return self._limit

    @property
    def spent(self) -> Money:
        return self._spent

    @property
    def rollover_settings(self) -> RolloverSettings:
        return self._rollover

    @property
    def alerts(self) -> EnvelopeAlerts:
        return self._alerts

    @property
    def is_active(self) -> bool:
        return self._is_active

    @property
    def start_date(self) -> date:
        return self._start_date

    @property
    def end_date(self) -> date:
        return self._end_date

    def is_shared(self) -> bool:
        return self.type == EnvelopeType.SHARED or self.owner_id is None

    def is_personal(self) -> bool:
        return self.type == EnvelopeType.PERSONAL and self.owner_id is not None

    def belongs_to(self, partner_id: str) -> bool:
        return self.owner_id == partner_id

    # -------------------------------------------------------------------------
    # Utilization
    # -------------------------------------------------------------------------

    def available(self) -> Money:
        """Limit minus spent. Negative once the envelope is overspent."""
        return self._limit.subtract(self._spent)

    def _spent_ratio(self) -> Decimal:
        if self._limit.is_zero():
            return Decimal(0)
        return Decimal(self._spent.amount_in_cents) * 100 / Decimal(self._limit.amount_in_cents)

    def spent_percentage(self) -> float:
        return float(self._spent_ratio())

    def available_percentage(self) -> float:
        return float(100 - self._spent_ratio())

    def is_under_budget(self) -> bool:
        return self._spent.is_less_than_or_equal(self._limit)

    def is_over_budget(self) -> bool:
        return self._spent.is_greater_than(self._limit)

    def should_warn(self) -> bool:
        if not self._alerts.enabled:
            return False
        ratio = self._spent_ratio()
        return (
            Decimal(str(self._alerts.warn_at_percentage))
            <= ratio
            < Decimal(str(self._alerts.critical_at_percentage))
        )

    def should_alert_critical(self) -> bool:
        if not self._alerts.enabled:
            return False
        return self._spent_ratio() >= Decimal(str(self._alerts.critical_at_percentage))

    def is_in_current_period(self, today: Optional[date] = None) -> bool:
        today = today or utcnow().date()
        return self._start_date <= today <= self._end_date

    # -------------------------------------------------------------------------
    # Spending
    # -------------------------------------------------------------------------

    def _check_spending(self, amount: Money) -> None:
        if amount.currency != self.currency:
            raise CurrencyMismatchError(
                amount.currency,
                self.currency,
                "Spending amount currency must match envelope currency",
            )
        if amount.is_negative():
            raise NegativeAmountError("Spending amount cannot be negative")

    def add_spending(self, amount: Money) -> None:
        self._check_spending(amount)
        self._spent = self._spent.add(amount)
        self._touch()

    def remove_spending(self, amount: Money) -> None:
        """Correct previously recorded spending."""
        self._check_spending(amount)
        self._spent = self._spent.subtract(amount)
        self._touch()

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update_name(self, name: str) -> None:
        self._name = require_text(name, "Envelope name")
        self._touch()

    def update_description(self, description: Optional[str]) -> None:
        self._description = description
        self._touch()

    def update_category(self, category_id: Optional[str]) -> None:
        self._category_id = category_id
        self._touch()

    def update_limit(self, limit: Money) -> None:
        if limit.currency != self.currency:
            raise CurrencyMismatchError(
                limit.currency, self.currency, "New limit currency must match envelope currency"
            )
        if limit.is_negative():
            raise NegativeAmountError("Envelope limit cannot be negative")
        self._limit = limit
        self._touch()

    def update_rollover_settings(self, **changes: Any) -> None:
        updated = RolloverSettings(**{**self._rollover.model_dump(), **changes})
        if updated.max_amount is not None and updated.max_amount.currency != self.currency:
            raise CurrencyMismatchError(
                updated.max_amount.currency,
                self.currency,
                "Rollover max amount currency must match envelope currency",
            )
        self._rollover = updated
        self._touch()

    def update_alerts(self, **changes: Any) -> None:
        self._alerts = EnvelopeAlerts(**{**self._alerts.model_dump(), **changes})
        self._touch()

    def activate(self) -> None:
        self._is_active = True
        self._touch()

    def deactivate(self) -> None:
        self._is_active = False
        self._touch()

    # -------------------------------------------------------------------------
    # Period rollover
    # -------------------------------------------------------------------------

    def rollover_amount(self) -> Money:
        """
        What would carry into the next period if it closed now.

        Zero unless rollover is enabled and money is left. Otherwise the
        unspent amount, capped by ``max_amount`` and by ``percentage`` of the
        unspent amount, whichever are configured and smaller.
        """
        zero = Money.zero(self.currency)
        if not self._rollover.enabled:
            return zero
        available = self.available()
        if not available.is_positive():
            return zero

        amount = available
        if self._rollover.max_amount is not None:
            amount = amount.min(self._rollover.max_amount)
        if self._rollover.percentage is not None:
            capped = available.multiply(Decimal(str(self._rollover.percentage)) / 100)
            amount = amount.min(capped)
        return amount

    def reset_for_new_period(
        self,
        today: Optional[date] = None,
        custom_range: Optional[tuple[date, date]] = None,
    ) -> Money:
        """
        Close the current period and open the next one.

        Zeroes spending, recomputes the period boundaries and returns the
        rollover amount for the caller to credit.
        """
        rollover = self.rollover_amount()
        today = today or utcnow().date()
        if self.period == BudgetPeriod.CUSTOM and custom_range is None:
            length = self._end_date - self._start_date
            next_start = max(self._end_date + timedelta(days=1), today)
            custom_range = (next_start, next_start + length)
        self._start_date, self._end_date = self._next_bounds(today, custom_range)
        self._spent = Money.zero(self.currency)
        self._touch()
        return rollover

    def _next_bounds(
        self, today: date, custom_range: Optional[tuple[date, date]]
    ) -> tuple[date, date]:
        if custom_range is not None:
            if self.period != BudgetPeriod.CUSTOM:
                raise InvalidInputError("Explicit ranges are only allowed for custom periods")
            start, end = custom_range
            if end < start:
                raise InvalidInputError("Custom period cannot end before it starts")
            return start, end
        return period_bounds(self.period, today)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "householdId": self.household_id,
            "name": self._name,
            "description": self._description,
            "type": self.type.value,
            "categoryId": self._category_id,
            "ownerId": self.owner_id,
            "period": self.period.value,
            "limit": self._limit.to_dict(),
            "spent": self._spent.to_dict(),
            "available": self.available().to_dict(),
            "spentPercentage": self.spent_percentage(),
            "availablePercentage": self.available_percentage(),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "rolloverSettings": self._rollover.to_dict(),
            "alerts": self._alerts.to_dict(),
            "isActive": self._is_active,
            "startDate": to_iso(self._start_date),
            "endDate": to_iso(self._end_date),
            "tags": self.tags,
            "metadata": self.metadata,
            "isShared": self.is_shared(),
            "isPersonal": self.is_personal(),
            "isUnderBudget": self.is_under_budget(),
            "isOverBudget": self.is_over_budget(),
            "shouldWarn": self.should_warn(),
            "shouldAlertCritical": self.should_alert_critical(),
            "isInCurrentPeriod": self.is_in_current_period(),
        }


__all__ = [
    "BudgetEnvelope",
    "BudgetPeriod",
    "DEFAULT_CUSTOM_PERIOD_DAYS",
    "EnvelopeAlerts",
    "EnvelopeType",
    "RolloverSettings",
    "period_bounds",
]
