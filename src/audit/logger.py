"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of splits, contributions and budget changes
2. Debugging capability
3. Partners can see the history of their shared money

The audit logger:
- Is async so the flows can await storage without blocking
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and partner visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_household_created(
        self,
        household_id: str,
        name: str,
        currency: str,
        correlation_id: UUID,
    ) -> None:
        """Log household creation."""
        event = AuditEventBuilder.household_created(
            household_id=household_id,
            name=name,
            currency=currency,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_split_applied(
        self,
        transaction_id: str,
        agreement_id: Optional[str],
        split_type: str,
        shares: list[dict],
        correlation_id: UUID,
        actor_id: Optional[str] = None,
    ) -> None:
        """Log a split written back onto a transaction."""
        event = AuditEventBuilder.split_applied(
            transaction_id=transaction_id,
            agreement_id=agreement_id,
            split_type=split_type,
            shares=shares,
            correlation_id=correlation_id,
            actor_id=actor_id,
        )
        await self.log(event)

    async def log_split_rejected(
        self,
        transaction_id: str,
        reason: str,
        error_code: str,
        correlation_id: UUID,
    ) -> None:
        """Log a split that could not be applied."""
        event = AuditEventBuilder.split_rejected(
            transaction_id=transaction_id,
            reason=reason,
            error_code=error_code,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        transaction_id: str,
        stage: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            transaction_id=transaction_id,
            stage=stage,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_agreement_deviation(
        self,
        agreement_id: str,
        transaction_id: str,
        deviations: dict[str, float],
        threshold: float,
        correlation_id: UUID,
    ) -> None:
        """Log a split that strays too far from its agreement."""
        event = AuditEventBuilder.agreement_deviation(
            agreement_id=agreement_id,
            transaction_id=transaction_id,
            deviations=deviations,
            threshold=threshold,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_envelope_spending(
        self,
        envelope_id: str,
        amount: str,
        spent_percentage: float,
        correlation_id: UUID,
    ) -> None:
        """Log spending recorded against an envelope."""
        event = AuditEventBuilder.envelope_spending_recorded(
            envelope_id=envelope_id,
            amount=amount,
            spent_percentage=spent_percentage,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_envelope_alert(
        self,
        envelope_id: str,
        name: str,
        spent_percentage: float,
        critical: bool,
        correlation_id: UUID,
    ) -> None:
        """Log an envelope entering its warn or critical band."""
        event = AuditEventBuilder.envelope_alert(
            envelope_id=envelope_id,
            name=name,
            spent_percentage=spent_percentage,
            critical=critical,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_envelope_period_closed(
        self,
        envelope_id: str,
        rollover: str,
        carried_into: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log the end of a budget period."""
        event = AuditEventBuilder.envelope_period_closed(
            envelope_id=envelope_id,
            rollover=rollover,
            carried_into=carried_into,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_contribution(
        self,
        goal_id: str,
        contribution_id: str,
        amount: str,
        contributor_id: str,
        correlation_id: UUID,
    ) -> None:
        """Log a goal contribution."""
        event = AuditEventBuilder.goal_contribution_added(
            goal_id=goal_id,
            contribution_id=contribution_id,
            amount=amount,
            contributor_id=contributor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_completed(
        self,
        goal_id: str,
        name: str,
        target: str,
        correlation_id: UUID,
    ) -> None:
        """Log goal completion."""
        event = AuditEventBuilder.goal_completed(
            goal_id=goal_id,
            name=name,
            target=target,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., splitting an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
