"""
Agreement Entity

An agreement is the durable policy a household uses to split one category
of expenses (rent, groceries, savings...). It wraps a SplitRule with a
status lifecycle, an effective window and deviation alerts.

DESIGN DECISION: The change history is append-only. Every mutation,
including status transitions, records who changed what, when and why.
Entries are never edited or removed.

Lifecycle:

    ACTIVE --suspend--> SUSPENDED --resume--> ACTIVE
    ACTIVE | SUSPENDED --terminate--> TERMINATED   (terminal)
"""

import copy
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, PrivateAttr

from src.models.base import TaggedEntity, ValueObject, new_id, require_text
from src.models.errors import InvalidInputError, InvalidStateTransitionError
from src.models.money import Money
from src.models.split import SplitResult
from src.models.split_rule import SplitRule
from src.utils.datetime_utils import ensure_utc, parse_moment, to_iso, utcnow

SYSTEM_ACTOR = "system"
ACTOR_LABEL = "Actor id"


class AgreementType(str, Enum):
    """Category of expenses an agreement governs."""
    FIXED_EXPENSES = "fixed_expenses"          # Rent, utilities
    VARIABLE_EXPENSES = "variable_expenses"    # Groceries, leisure
    SAVINGS = "savings"
    DEBT_PAYMENT = "debt_payment"
    EMERGENCY_FUND = "emergency_fund"
    GOAL_CONTRIBUTION = "goal_contribution"


class AgreementStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class HistoryChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SUSPENDED = "suspended"
    RESUMED = "resumed"
    TERMINATED = "terminated"


class AgreementAlerts(ValueObject):
    """When and how to warn partners that a split drifted from the agreement."""

    enabled: bool = True
    threshold_percentage: float = Field(
        default=10,
        ge=0,
        le=100,
        description="Alert when any partner's share deviates by more than this percentage"
    )
    email_notification: bool = True
    push_notification: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "thresholdPercentage": self.threshold_percentage,
            "emailNotification": self.email_notification,
            "pushNotification": self.push_notification,
        }


class AgreementHistoryEntry(ValueObject):
    """One immutable line of an agreement's change log."""

    id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(default_factory=utcnow)
    changed_by: str = Field(
        ...,
        min_length=1,
        description="Partner id (or 'system') that made the change"
    )
    change_type: HistoryChangeType
    previous_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": to_iso(self.timestamp),
            "changedBy": self.changed_by,
            "changeType": self.change_type.value,
            "previousValues": copy.deepcopy(self.previous_values),
            "newValues": copy.deepcopy(self.new_values),
            "reason": self.reason,
        }


class Agreement(TaggedEntity):
    """
    A financial agreement between the partners of a household.

    The household id and agreement type never change. Everything else is
    reached through mutators that record a history entry.

    Usage:
        agreement = Agreement(
            household_id=household.id,
            type=AgreementType.FIXED_EXPENSES,
            name="Rent",
            split_rule=rule,
        )
        agreement.suspend("partner-1", reason="Between jobs")
    """

    household_id: str = Field(
        ...,
        min_length=1,
        description="Owning household"
    )
    type: AgreementType = Field(
        ...,
        description="Expense category the agreement governs"
    )

    _name: str = PrivateAttr()
    _description: Optional[str] = PrivateAttr(default=None)
    _split_rule: SplitRule = PrivateAttr()
    _status: AgreementStatus = PrivateAttr(default=AgreementStatus.ACTIVE)
    _effective_from: datetime = PrivateAttr()
    _effective_until: Optional[datetime] = PrivateAttr(default=None)
    _alerts: AgreementAlerts = PrivateAttr(default_factory=AgreementAlerts)
    _history: list[AgreementHistoryEntry] = PrivateAttr(default_factory=list)

    def __init__(
        self,
        *,
        name: str,
        split_rule: SplitRule,
        effective_from: Optional[date | datetime | str] = None,
        description: Optional[str] = None,
        created_by: str = SYSTEM_ACTOR,
        **data: Any,
    ):
        name = require_text(name, "Agreement name")
        created_by = require_text(created_by, ACTOR_LABEL)
        super().__init__(**data)
        self._name = name
        self._description = description
        self._split_rule = split_rule
        self._effective_from = parse_moment(effective_from) if effective_from else utcnow()
        self._updated_at = self.created_at
        self._record(
            HistoryChangeType.CREATED, created_by, "Agreement created", timestamp=self.created_at
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
    def split_rule(self) -> SplitRule:
        return self._split_rule

    @property
    def status(self) -> AgreementStatus:
        return self._status

    @property
    def effective_from(self) -> datetime:
        return self._effective_from

    @property
    def effective_until(self) -> Optional[datetime]:
        return self._effective_until

    @property
    def alerts(self) -> AgreementAlerts:
        return self._alerts

    @property
    def history(self) -> list[AgreementHistoryEntry]:
        return [entry.model_copy(deep=True) for entry in self._history]

    def is_active_on(self, on: date | datetime) -> bool:
        """ACTIVE and ``on`` inside [effective_from, effective_until]."""
        if self._status != AgreementStatus.ACTIVE:
            return False
        moment = ensure_utc(on)
        if moment < self._effective_from:
            return False
        return self._effective_until is None or moment <= self._effective_until

    def is_active(self) -> bool:
        return self.is_active_on(utcnow())

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def update_name(self, name: str, changed_by: str, reason: Optional[str] = None) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        new_name = require_text(name, "Agreement name")
        previous = self._name
        self._name = new_name
        self._changed(reason or "Name updated", changed_by, {"name": previous}, {"name": new_name})

    def update_description(
        self, description: Optional[str], changed_by: str, reason: Optional[str] = None
    ) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        previous = self._description
        self._description = description
        self._changed(
            reason or "Description updated",
            changed_by,
            {"description": previous},
            {"description": description},
        )

    def update_split_rule(
        self, split_rule: SplitRule, changed_by: str, reason: Optional[str] = None
    ) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        previous = self._split_rule.to_dict()
        self._split_rule = split_rule
        self._changed(
            reason or "Split rule updated",
            changed_by,
            {"splitRule": previous},
            {"splitRule": split_rule.to_dict()},
        )

    def update_effective_period(
        self,
        effective_from: date | datetime | str,
        effective_until: Optional[date | datetime | str],
        changed_by: str,
        reason: Optional[str] = None,
    ) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        new_from = parse_moment(effective_from)
        new_until = parse_moment(effective_until) if effective_until else None
        if new_until is not None and new_until < new_from:
            raise InvalidInputError("Effective until cannot be before effective from")

        previous = self._period_snapshot()
        self._effective_from = new_from
        self._effective_until = new_until
        self._changed(
            reason or "Effective period updated", changed_by, previous, self._period_snapshot()
        )

    def update_alerts(
        self, changed_by: str, reason: Optional[str] = None, **changes: Any
    ) -> None:
        """Replace some alert settings, e.g. ``update_alerts("p1", threshold_percentage=5)``."""
        changed_by = require_text(changed_by, ACTOR_LABEL)
        updated = AgreementAlerts(**{**self._alerts.model_dump(), **changes})
        previous = self._alerts.to_dict()
        self._alerts = updated
        self._changed(
            reason or "Alerts updated",
            changed_by,
            {"alerts": previous},
            {"alerts": updated.to_dict()},
        )

    # -------------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------------

    def suspend(self, changed_by: str, reason: Optional[str] = None) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        if self._status != AgreementStatus.ACTIVE:
            raise InvalidStateTransitionError("Only active agreements can be suspended")
        self._transition(
            AgreementStatus.SUSPENDED, HistoryChangeType.SUSPENDED,
            changed_by, reason or "Agreement suspended",
        )

    def resume(self, changed_by: str, reason: Optional[str] = None) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        if self._status != AgreementStatus.SUSPENDED:
            raise InvalidStateTransitionError("Only suspended agreements can be resumed")
        self._transition(
            AgreementStatus.ACTIVE, HistoryChangeType.RESUMED,
            changed_by, reason or "Agreement resumed",
        )

    def terminate(self, changed_by: str, reason: Optional[str] = None) -> None:
        changed_by = require_text(changed_by, ACTOR_LABEL)
        if self._status == AgreementStatus.TERMINATED:
            raise InvalidStateTransitionError("Agreement is already terminated")
        self._effective_until = utcnow()
        self._transition(
            AgreementStatus.TERMINATED, HistoryChangeType.TERMINATED,
            changed_by, reason or "Agreement terminated",
        )

    # -------------------------------------------------------------------------
    # Deviation alerts
    # -------------------------------------------------------------------------

    def deviations(
        self, actual: Mapping[str, Money], expected: Mapping[str, Money]
    ) -> dict[str, Decimal]:
        """
        Percentage deviation of each partner's actual share from the expected one.

        Partners missing from ``actual`` and partners expected to pay zero
        are skipped.
        """
        return dict(self._iter_deviations(actual, expected))

    def should_alert(
        self, actual: Mapping[str, Money], expected: Mapping[str, Money]
    ) -> bool:
        """True as soon as one partner deviates by more than the threshold."""
        if not self._alerts.enabled:
            return False
        threshold = Decimal(str(self._alerts.threshold_percentage))
        return any(
            deviation > threshold
            for _, deviation in self._iter_deviations(actual, expected)
        )

    @staticmethod
    def _iter_deviations(actual: Mapping[str, Money], expected: Mapping[str, Money]):
        for partner_id, expected_amount in expected.items():
            actual_amount = actual.get(partner_id)
            if actual_amount is None or expected_amount.is_zero():
                continue
            difference = actual_amount.subtract(expected_amount)
            yield partner_id, abs(
                Decimal(difference.amount_in_cents)
                / Decimal(expected_amount.amount_in_cents)
                * 100
            )

    def expected_split(
        self, amount: Money, partner_incomes: Optional[dict[str, Money]] = None
    ) -> list[SplitResult]:
        """Apply the agreement's split rule to ``amount``."""
        return self._split_rule.split(amount, partner_incomes)

    # -------------------------------------------------------------------------
    # History queries
    # -------------------------------------------------------------------------

    def history_in_period(
        self, start: date | datetime, end: date | datetime
    ) -> list[AgreementHistoryEntry]:
        """Entries with start <= timestamp <= end, oldest first."""
        start_at, end_at = ensure_utc(start), ensure_utc(end)
        return [
            entry.model_copy(deep=True)
            for entry in self._history
            if start_at <= entry.timestamp <= end_at
        ]

    def recent_history(self, limit: int = 10) -> list[AgreementHistoryEntry]:
        """The ``limit`` most recent entries, newest first."""
        newest_first = sorted(
            reversed(self._history), key=lambda entry: entry.timestamp, reverse=True
        )
        return [entry.model_copy(deep=True) for entry in newest_first[:max(limit, 0)]]

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        is_active = self.is_active()
        return {
            "id": self.id,
            "householdId": self.household_id,
            "type": self.type.value,
            "name": self._name,
            "description": self._description,
            "splitRule": self._split_rule.to_dict(),
            "status": self._status.value,
            "effectiveFrom": to_iso(self._effective_from),
            "effectiveUntil": to_iso(self._effective_until),
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "alerts": self._alerts.to_dict(),
            "history": [entry.to_dict() for entry in self.history],
            "tags": self.tags,
            "metadata": self.metadata,
            "isActive": is_active,
            "isActiveOn": is_active,
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _period_snapshot(self) -> dict[str, Optional[str]]:
        return {
            "effectiveFrom": to_iso(self._effective_from),
            "effectiveUntil": to_iso(self._effective_until),
        }

    def _changed(
        self,
        reason: str,
        changed_by: str,
        previous_values: dict[str, Any],
        new_values: dict[str, Any],
    ) -> None:
        self._touch()
        self._record(
            HistoryChangeType.UPDATED, changed_by, reason,
            previous_values=previous_values, new_values=new_values,
        )

    def _transition(
        self,
        status: AgreementStatus,
        change_type: HistoryChangeType,
        changed_by: str,
        reason: str,
    ) -> None:
        previous = self._status
        self._status = status
        self._touch()
        self._record(
            change_type, changed_by, reason,
            previous_values={"status": previous.value},
            new_values={"status": status.value},
        )

    def _record(
        self,
        change_type: HistoryChangeType,
        changed_by: str,
        reason: Optional[str],
        previous_values: Optional[dict[str, Any]] = None,
        new_values: Optional[dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        self._history.append(
            AgreementHistoryEntry(
                timestamp=timestamp or self.updated_at,
                changed_by=changed_by,
                change_type=change_type,
                previous_values=previous_values,
                new_values=new_values,
                reason=reason,
            )
        )


__all__ = [
    "Agreement",
    "AgreementAlerts",
    "AgreementHistoryEntry",
    "AgreementStatus",
    "AgreementType",
    "HistoryChangeType",
    "SYSTEM_ACTOR",
]
