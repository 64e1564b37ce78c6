"""
Goal Entity

A savings target (a trip, a house, an emergency fund) that partners fill up
with contributions until the target amount is reached.

Status transitions:

    ACTIVE <-> PAUSED
    ACTIVE -> COMPLETED        explicit, or automatic once the target is met
    ACTIVE | PAUSED -> CANCELLED
    COMPLETED -> ACTIVE        only when a removed contribution drops the
                               current amount below the target

DESIGN DECISION: Contributions never overshoot. A contribution larger than
what is still missing is rejected, so callers clamp before contributing.
"""

from collections.abc import Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, PrivateAttr, field_validator

from src.models.base import TaggedEntity, ValueObject, new_id, require_text
from src.models.errors import (
    ContributionExceedsRemainingError,
    CurrencyMismatchError,
    DuplicateError,
    InvalidInputError,
    InvalidStateTransitionError,
    NotFoundError,
    ZeroAmountError,
)
from src.models.money import Money
from src.utils.datetime_utils import ensure_utc, parse_moment, to_iso, utcnow

DEFAULT_ON_TRACK_TOLERANCE = 0.9


class GoalType(str, Enum):
    TRAVEL = "travel"
    FERTILIZATION = "fertilization"
    ADOPTION = "adoption"
    HOME_PURCHASE = "home_purchase"
    EDUCATION = "education"
    EMERGENCY_FUND = "emergency_fund"
    RETIREMENT = "retirement"
    CUSTOM = "custom"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ContributionFrequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class AutoContributionRule(ValueObject):
    """Recurring contribution the household has scheduled for a goal."""

    enabled: bool = False
    frequency: ContributionFrequency = ContributionFrequency.MONTHLY
    amount: Money
    start_date: datetime = Field(default_factory=utcnow)
    end_date: Optional[datetime] = None
    is_shared: bool = Field(
        default=True,
        description="Shared between the owners, or paid by one partner"
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_dates(cls, v: Any) -> Any:
        return parse_moment(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Money) -> Money:
        if v.is_negative():
            raise ValueError("Auto-contribution amount cannot be negative")
        return v

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "frequency": self.frequency.value,
            "amount": self.amount.to_dict(),
            "startDate": to_iso(self.start_date),
            "endDate": to_iso(self.end_date),
            "isShared": self.is_shared,
        }


class Contribution(ValueObject):
    """One recorded contribution to a goal."""

    id: str = Field(default_factory=new_id)
    date: datetime = Field(default_factory=utcnow)
    amount: Money
    contributor_id: str = Field(..., min_length=1)
    contributor_name: Optional[str] = None
    is_auto_contribution: bool = False
    notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": to_iso(self.date),
            "amount": self.amount.to_dict(),
            "contributorId": self.contributor_id,
            "contributorName": self.contributor_name,
            "isAutoContribution": self.is_auto_contribution,
            "notes": self.notes,
        }


class GoalProgress(ValueObject):
    """Point-in-time progress report."""

    current_amount: Money
    target_amount: Money
    percentage: float
    expected_completion_date: Optional[datetime] = None
    is_on_track: bool
    last_updated: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentAmount": self.current_amount.to_dict(),
            "targetAmount": self.target_amount.to_dict(),
            "percentage": self.percentage,
            "expectedCompletionDate": to_iso(self.expected_completion_date),
            "isOnTrack": self.is_on_track,
            "lastUpdated": to_iso(self.last_updated),
        }


class Goal(TaggedEntity):
    """
    A savings goal owned by one or more partners.

    Usage:
        goal = Goal(
            household_id=household.id,
            name="Lisbon trip",
            type=GoalType.TRAVEL,
            target_amount=Money(amount=12000),
            target_date=date(2025, 12, 1),
            owner_ids=[alice.id, bob.id],
        )
        goal.add_contribution(Money(amount=500), alice.id)
    """

    household_id: str = Field(..., min_length=1)
    type: GoalType = Field(default=GoalType.CUSTOM)

    _name: str = PrivateAttr()
    _description: Optional[str] = PrivateAttr(default=None)
    _target_amount: Money = PrivateAttr()
    _current_amount: Money = PrivateAttr()
    _target_date: datetime = PrivateAttr()
    _status: GoalStatus = PrivateAttr(default=GoalStatus.ACTIVE)
    _owner_ids: list[str] = PrivateAttr(default_factory=list)
    _auto_contribution: AutoContributionRule = PrivateAttr()
    _contributions: list[Contribution] = PrivateAttr(default_factory=list)

    def __init__(
        self,
        *,
        name: str,
        target_amount: Money,
        target_date: date | datetime | str,
        owner_ids: Sequence[str],
        description: Optional[str] = None,
        **data: Any,
    ):
        name = require_text(name, "Goal name")
        self._check_target(target_amount)
        owners = [require_text(owner, "Owner id") for owner in owner_ids]
        if not owners:
            raise InvalidInputError("Goal must have at least one owner")
        if len(owners) != len(set(owners)):
            raise DuplicateError("Duplicate owner ids are not allowed")
        super().__init__(**data)
        self._name = name
        self._description = description
        self._target_amount = target_amount
        self._current_amount = Money.zero(target_amount.currency)
        self._target_date = parse_moment(target_date)
        self._owner_ids = owners
        self._auto_contribution = AutoContributionRule(
            amount=Money.zero(target_amount.currency)
        )

    @staticmethod
    def _check_target(target_amount: Money) -> None:
        if not target_amount.is_positive():
            raise InvalidInputError("Target amount must be positive")

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
    def currency(self) -> str:
        return self._target_amount.currency

    @property
    def target_amount(self) -> Money:
        return self._target_amount

    @property
    def current_amount(self) -> Money:
        return self._current_amount

    @property
    def target_date(self) -> datetime:
        return self._target_date

    @property
    def status(self) -> GoalStatus:
        return self._status

    @property
    def owner_ids(self) -> list[str]:
        return list(self._owner_ids)

    @property
    def auto_contribution(self) -> AutoContributionRule:
        return self._auto_contribution

    @property
    def contributions(self) -> list[Contribution]:
        return list(self._contributions)

    def is_active(self) -> bool:
        return self._status == GoalStatus.ACTIVE

    def is_paused(self) -> bool:
        return self._status == GoalStatus.PAUSED

    def is_completed(self) -> bool:
        return self._status == GoalStatus.COMPLETED

    def is_cancelled(self) -> bool:
        return self._status == GoalStatus.CANCELLED

    def is_shared(self) -> bool:
        return len(self._owner_ids) > 1

    def belongs_to(self, partner_id: str) -> bool:
        return partner_id in self._owner_ids

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def remaining_amount(self) -> Money:
        return self._target_amount.subtract(self._current_amount)

    def progress_percentage(self) -> float:
        """current / target x 100, capped at 100."""
        if self._target_amount.is_zero():
            return 0.0
        percentage = self._current_amount.amount_in_cents / self._target_amount.amount_in_cents * 100
        return min(percentage, 100.0)

    def is_on_track(
        self,
        now: Optional[datetime] = None,
        tolerance: float = DEFAULT_ON_TRACK_TOLERANCE,
    ) -> bool:
        """
        Compare progress with the share of the time window already elapsed.

        On track while progress is at least ``tolerance`` times the
        elapsed share. A target date at or before creation is never on
        track; a completed goal always is.
        """
        if self.is_completed():
            return True
        now = ensure_utc(now) if now else utcnow()
        total = (self._target_date - self.created_at).total_seconds()
        if total <= 0:
            return False
        elapsed = (now - self.created_at).total_seconds()
        expected = elapsed / total * 100
        return self.progress_percentage() >= expected * tolerance

    def projected_completion_date(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """
        Linear extrapolation from progress so far.

        None until progress > 0, and None when the projection lies beyond
        the range ``datetime`` can represent.
        """
        if self.is_completed():
            return self._target_date
        progress = self.progress_percentage()
        if progress == 0:
            return None
        now = ensure_utc(now) if now else utcnow()
        elapsed = now - self.created_at
        try:
            return self.created_at + elapsed * (100 / progress)
        except OverflowError:
            return None

    def progress(
        self,
        now: Optional[datetime] = None,
        tolerance: float = DEFAULT_ON_TRACK_TOLERANCE,
    ) -> GoalProgress:
        now = ensure_utc(now) if now else utcnow()
        return GoalProgress(
            current_amount=self._current_amount,
            target_amount=self._target_amount,
            percentage=self.progress_percentage(),
            expected_completion_date=self.projected_completion_date(now),
            is_on_track=self.is_on_track(now, tolerance),
            last_updated=now,
        )

    # -------------------------------------------------------------------------
    # Contributions
    # -------------------------------------------------------------------------

    def add_contribution(
        self,
        amount: Money,
        contributor_id: str,
        contributor_name: Optional[str] = None,
        is_auto_contribution: bool = False,
        notes: Optional[str] = None,
        on: Optional[datetime] = None,
    ) -> Contribution:
        """
        Record a contribution.

        Completes the goal when the target is reached. Fails on completed or
        cancelled goals, on non-positive amounts and on amounts larger than
        what is still missing.
        """
        if self.is_completed():
            raise InvalidStateTransitionError("Cannot add contribution to completed goal")
        if self.is_cancelled():
            raise InvalidStateTransitionError("Cannot add contribution to cancelled goal")
        if amount.currency != self.currency:
            raise CurrencyMismatchError(
                amount.currency, self.currency, "Contribution currency must match goal currency"
            )
        if not amount.is_positive():
            raise ZeroAmountError("Contribution amount must be positive")
        if amount.is_greater_than(self.remaining_amount()):
            raise ContributionExceedsRemainingError("Contribution exceeds remaining amount needed")

        contribution = Contribution(
            date=ensure_utc(on) if on else utcnow(),
            amount=amount,
            contributor_id=require_text(contributor_id, "Contributor id"),
            contributor_name=contributor_name,
            is_auto_contribution=is_auto_contribution,
            notes=notes,
        )
        self._current_amount = self._current_amount.add(amount)
        self._contributions.append(contribution)
        self._touch()
        self._complete_if_reached()
        return contribution

    def remove_contribution(self, contribution_id: str) -> Contribution:
        """
        Reverse a recorded contribution.

        A completed goal goes back to ACTIVE only if the current amount is
        now below the target.
        """
        for index, contribution in enumerate(self._contributions):
            if contribution.id == contribution_id:
                break
        else:
            raise NotFoundError(f"Contribution not found: {contribution_id}")

        self._current_amount = self._current_amount.subtract(contribution.amount)
        del self._contributions[index]
        if self.is_completed() and self._current_amount.is_less_than(self._target_amount):
            self._status = GoalStatus.ACTIVE
        self._touch()
        return contribution

    def contributions_in_period(
        self, start: date | datetime, end: date | datetime
    ) -> list[Contribution]:
        start_at, end_at = ensure_utc(start), ensure_utc(end)
        return [c for c in self._contributions if start_at <= c.date <= end_at]

    def recent_contributions(self, limit: int = 10) -> list[Contribution]:
        """The ``limit`` most recent contributions, newest first."""
        newest_first = sorted(reversed(self._contributions), key=lambda c: c.date, reverse=True)
        return newest_first[:max(limit, 0)]

    def partner_contributions(self, partner_id: str) -> Money:
        total = Money.zero(self.currency)
        for contribution in self._contributions:
            if contribution.contributor_id == partner_id:
                total = total.add(contribution.amount)
        return total

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update_name(self, name: str) -> None:
        self._name = require_text(name, "Goal name")
        self._touch()

    def update_description(self, description: Optional[str]) -> None:
        self._description = description
        self._touch()

    def update_target_amount(self, target_amount: Money) -> None:
        """Change the target; completes the goal if it is already met."""
        if target_amount.currency != self.currency:
            raise CurrencyMismatchError(
                target_amount.currency, self.currency,
                "Target amount currency must match goal currency",
            )
        self._check_target(target_amount)
        self._target_amount = target_amount
        self._touch()
        if not self.is_cancelled():
            self._complete_if_reached()

    def update_target_date(self, target_date: date | datetime | str) -> None:
        self._target_date = parse_moment(target_date)
        self._touch()

    def add_owner(self, partner_id: str) -> None:
        partner_id = require_text(partner_id, "Owner id")
        if partner_id in self._owner_ids:
            raise DuplicateError("Partner is already an owner of this goal")
        self._owner_ids.append(partner_id)
        self._touch()

    def remove_owner(self, partner_id: str) -> None:
        if partner_id not in self._owner_ids:
            raise NotFoundError("Partner is not an owner of this goal")
        if len(self._owner_ids) == 1:
            raise InvalidInputError("Goal must have at least one owner")
        self._owner_ids.remove(partner_id)
        self._touch()

    def update_auto_contribution(self, **changes: Any) -> None:
        updated = AutoContributionRule(**{**self._auto_contribution.model_dump(), **changes})
        if updated.amount.currency != self.currency:
            raise CurrencyMismatchError(
                updated.amount.currency, self.currency,
                "Auto-contribution currency must match goal currency",
            )
        self._auto_contribution = updated
        self._touch()

    def enable_auto_contribution(self) -> None:
        self.update_auto_contribution(enabled=True)

    def disable_auto_contribution(self) -> None:
        self.update_auto_contribution(enabled=False)

    # -------------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------------

    def pause(self) -> None:
        if not self.is_active():
            raise InvalidStateTransitionError("Only active goals can be paused")
        self._status = GoalStatus.PAUSED
        self._touch()

    def resume(self) -> None:
        if not self.is_paused():
            raise InvalidStateTransitionError("Only paused goals can be resumed")
        self._status = GoalStatus.ACTIVE
        self._touch()

    def cancel(self) -> None:
        if self.is_completed():
            raise InvalidStateTransitionError("Cannot cancel completed goal")
        if self.is_cancelled():
            raise InvalidStateTransitionError("Goal is already cancelled")
        self._status = GoalStatus.CANCELLED
        self._touch()

    def complete(self) -> None:
        """Mark the goal reached, filling the current amount up to the target."""
        if not self.is_active():
            raise InvalidStateTransitionError("Only active goals can be completed")
        self._status = GoalStatus.COMPLETED
        self._current_amount = self._target_amount
        self._touch()

    def _complete_if_reached(self) -> None:
        if self._current_amount.is_greater_than_or_equal(self._target_amount):
            self._status = GoalStatus.COMPLETED
            self._current_amount = self._target_amount

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
            "targetAmount": self._target_amount.to_dict(),
            "currentAmount": self._current_amount.to_dict(),
            "targetDate": to_iso(self._target_date),
            "status": self._status.value,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "ownerIds": self.owner_ids,
            "autoContribution": self._auto_contribution.to_dict(),
            "contributionHistory": [c.to_dict() for c in self._contributions],
            "tags": self.tags,
            "metadata": self.metadata,
            "progress": self.progress().to_dict(),
            "remainingAmount": self.remaining_amount().to_dict(),
            "progressPercentage": self.progress_percentage(),
            "isActive": self.is_active(),
            "isPaused": self.is_paused(),
            "isCompleted": self.is_completed(),
            "isCancelled": self.is_cancelled(),
            "isShared": self.is_shared(),
        }


__all__ = [
    "AutoContributionRule",
    "Contribution",
    "ContributionFrequency",
    "DEFAULT_ON_TRACK_TOLERANCE",
    "Goal",
    "GoalProgress",
    "GoalStatus",
    "GoalType",
]
