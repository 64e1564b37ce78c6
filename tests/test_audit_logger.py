"""
Tests for the audit logger.

The logger must persist events when storage works and must never raise
when storage fails.
"""

import asyncio
import pytest
from uuid import UUID, uuid4

from src.audit import AuditLogger, create_correlation_id
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage import InMemoryAuditStorage, StorageError


class FailingAuditStorage(InMemoryAuditStorage):
    """Audit storage whose writes always fail."""

    async def append_event(self, event: AuditEvent) -> bool:
        raise StorageError("audit store unavailable")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_persists_event(self):
        """Test that events reach storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        event = AuditEvent(event_type=AuditEventType.HOUSEHOLD_CREATED, description="Created")

        async def scenario():
            stored = await logger.log(event)
            return stored, await storage.get_recent_events()

        stored, events = asyncio.run(scenario())
        assert stored is True
        assert events == [event]

    def test_log_without_storage(self):
        """Test that logging without storage still succeeds."""
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="Boom")
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_storage_failure_is_swallowed(self):
        """Test that a failing store returns False instead of raising."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="Boom")
        assert asyncio.run(logger.log(event)) is False

    @pytest.mark.parametrize("severity", list(AuditSeverity))
    def test_every_severity_is_logged(self, severity):
        """Test that each severity maps to a log level."""
        storage = InMemoryAuditStorage()
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=severity,
            description="Severity check",
        )
        assert asyncio.run(AuditLogger(storage).log(event)) is True

    def test_split_flow_events_share_correlation_id(self):
        """Test the convenience methods of one split flow."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        async def scenario():
            await logger.log_split_rejected("tx-1", "No incomes", "MissingIncomeError", correlation_id)
            await logger.log_split_applied("tx-1", "ag-1", "equal", [], correlation_id)
            return await storage.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())
        assert [e.event_type for e in events] == [
            AuditEventType.SPLIT_REJECTED,
            AuditEventType.SPLIT_APPLIED,
        ]

    def test_envelope_and_goal_events(self):
        """Test the envelope and goal convenience methods."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = uuid4()

        async def scenario():
            await logger.log_envelope_spending("env-1", "10.00 BRL", 81.0, correlation_id)
            await logger.log_envelope_alert("env-1", "Groceries", 81.0, False, correlation_id)
            await logger.log_envelope_period_closed("env-1", "0.00 BRL", None, correlation_id)
            await logger.log_goal_contribution("goal-1", "c-1", "5.00 BRL", "partner-a", correlation_id)
            await logger.log_goal_completed("goal-1", "Trip", "5.00 BRL", correlation_id)
            return await storage.get_recent_events()

        events = asyncio.run(scenario())
        assert [e.event_type for e in reversed(events)] == [
            AuditEventType.ENVELOPE_SPENDING_RECORDED,
            AuditEventType.ENVELOPE_WARNING,
            AuditEventType.ENVELOPE_PERIOD_CLOSED,
            AuditEventType.GOAL_CONTRIBUTION_ADDED,
            AuditEventType.GOAL_COMPLETED,
        ]

    def test_log_error(self):
        """Test system error logging."""
        storage = InMemoryAuditStorage()

        async def scenario():
            await AuditLogger(storage).log_error("StorageError", "disk full", {"retry": False})
            return await storage.get_recent_events()

        (event,) = asyncio.run(scenario())
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"retry": False}

    def test_correlation_ids_are_unique(self):
        """Test correlation id generation."""
        first, second = create_correlation_id(), create_correlation_id()
        assert isinstance(first, UUID)
        assert first != second


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
