"""
Audit Models for Household Finance

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every split, contribution and budget change
2. Debugging information when things go wrong
3. A record partners can go back to when they disagree about money

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.utils.datetime_utils import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every application flow has its own event types.
    """
    # Household
    HOUSEHOLD_CREATED = "household_created"

    # Splitting
    SPLIT_APPLIED = "split_applied"
    SPLIT_REJECTED = "split_rejected"
    SCHEMA_VALIDATION_FAILED = "schema_validation_failed"
    SEMANTIC_VALIDATION_FAILED = "semantic_validation_failed"
    AGREEMENT_DEVIATION = "agreement_deviation"

    # Budget envelopes
    ENVELOPE_SPENDING_RECORDED = "envelope_spending_recorded"
    ENVELOPE_WARNING = "envelope_warning"
    ENVELOPE_CRITICAL = "envelope_critical"
    ENVELOPE_PERIOD_CLOSED = "envelope_period_closed"

    # Goals
    GOAL_CONTRIBUTION_ADDED = "goal_contribution_added"
    GOAL_COMPLETED = "goal_completed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'household', 'transaction', 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one split)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    # User action tracking
    actor_id: Optional[str] = Field(
        default=None,
        description="Partner who triggered the event, when a partner did"
    )

    @property
    def is_user_action(self) -> bool:
        return self.actor_id is not None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "actor_id": self.actor_id,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.household_created(household_id, name, currency, correlation_id)
        event = AuditEventBuilder.goal_completed(goal_id, name, target, correlation_id)
    """

    @staticmethod
    def household_created(
        household_id: str,
        name: str,
        currency: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_CREATED,
            entity_type="household",
            entity_id=household_id,
            correlation_id=correlation_id,
            description=f"Household created: {name}",
            details={
                "name": name,
                "currency": currency,
            },
        )

    @staticmethod
    def split_applied(
        transaction_id: str,
        agreement_id: Optional[str],
        split_type: str,
        shares: list[dict],
        correlation_id: UUID,
        actor_id: Optional[str] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_APPLIED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{split_type.capitalize()} split applied to {len(shares)} partners",
            details={
                "agreement_id": agreement_id,
                "split_type": split_type,
                "shares": shares,
            },
            actor_id=actor_id,
        )

    @staticmethod
    def split_rejected(
        transaction_id: str,
        reason: str,
        error_code: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Split rejected",
            error_code=error_code,
            error_message=reason,
        )

    @staticmethod
    def validation_failed(
        transaction_id: str,
        stage: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        event_type = (
            AuditEventType.SCHEMA_VALIDATION_FAILED
            if stage == "schema"
            else AuditEventType.SEMANTIC_VALIDATION_FAILED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{stage.capitalize()} validation failed with {len(issues)} issues",
            details={
                "stage": stage,
                "issues": issues,
            },
        )

    @staticmethod
    def agreement_deviation(
        agreement_id: str,
        transaction_id: str,
        deviations: dict[str, float],
        threshold: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AGREEMENT_DEVIATION,
            severity=AuditSeverity.WARNING,
            entity_type="agreement",
            entity_id=agreement_id,
            correlation_id=correlation_id,
            description=f"Split deviates from agreement by more than {threshold:g}%",
            details={
                "transaction_id": transaction_id,
                "deviations": deviations,
                "threshold_percentage": threshold,
            },
        )

    @staticmethod
    def envelope_spending_recorded(
        envelope_id: str,
        amount: str,
        spent_percentage: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPE_SPENDING_RECORDED,
            severity=AuditSeverity.DEBUG,
            entity_type="envelope",
            entity_id=envelope_id,
            correlation_id=correlation_id,
            description=f"Spending recorded: {amount}",
            details={
                "amount": amount,
                "spent_percentage": spent_percentage,
            },
        )

    @staticmethod
    def envelope_alert(
        envelope_id: str,
        name: str,
        spent_percentage: float,
        critical: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.ENVELOPE_CRITICAL if critical else AuditEventType.ENVELOPE_WARNING
            ),
            severity=AuditSeverity.ERROR if critical else AuditSeverity.WARNING,
            entity_type="envelope",
            entity_id=envelope_id,
            correlation_id=correlation_id,
            description=f"Envelope {name} at {spent_percentage:.0f}% of its limit",
            details={
                "spent_percentage": spent_percentage,
            },
        )

    @staticmethod
    def envelope_period_closed(
        envelope_id: str,
        rollover: str,
        carried_into: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPE_PERIOD_CLOSED,
            entity_type="envelope",
            entity_id=envelope_id,
            correlation_id=correlation_id,
            description=f"Budget period closed with rollover {rollover}",
            details={
                "rollover": rollover,
                "carried_into": carried_into,
            },
        )

    @staticmethod
    def goal_contribution_added(
        goal_id: str,
        contribution_id: str,
        amount: str,
        contributor_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CONTRIBUTION_ADDED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Contribution of {amount} added",
            details={
                "contribution_id": contribution_id,
                "amount": amount,
            },
            actor_id=contributor_id,
        )

    @staticmethod
    def goal_completed(
        goal_id: str,
        name: str,
        target: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_COMPLETED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal completed: {name}",
            details={
                "target_amount": target,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
