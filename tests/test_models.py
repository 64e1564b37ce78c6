"""
Tests for Household Finance

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory storage)
3. No real database or network in tests
"""

import pytest
from uuid import uuid4

from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.base import TaggedEntity, new_id, require_text
from src.models.errors import (
    CurrencyMismatchError,
    FinanceError,
    InvalidInputError,
    MissingIncomeError,
    NotFoundError,
)
from src.models.validation import ValidationIssue, ValidationResult


class TestBaseModels:
    """Tests for the shared entity base classes."""

    def test_new_ids_are_unique(self):
        """Test that generated ids do not repeat."""
        assert len({new_id() for _ in range(100)}) == 100

    def test_require_text_strips(self):
        """Test that require_text strips surrounding whitespace."""
        assert require_text("  Rent  ", "Name") == "Rent"

    def test_require_text_rejects_blank(self):
        """Test that blank text is rejected with the field label."""
        with pytest.raises(InvalidInputError, match="Name cannot be empty"):
            require_text("   ", "Name")

    def test_entity_generates_id_and_timestamps(self):
        """Test that a new entity gets an id and aware timestamps."""
        entity = TaggedEntity()
        assert entity.id
        assert entity.created_at.tzinfo is not None
        assert entity.updated_at >= entity.created_at

    def test_entity_identity_is_frozen(self):
        """Test that identity fields cannot be reassigned."""
        entity = TaggedEntity()
        with pytest.raises(ValueError):
            entity.id = "other"

    def test_tags_are_lower_cased_and_unique(self):
        """Test tag normalization."""
        entity = TaggedEntity()
        entity.add_tag("  Home ")
        entity.add_tag("home")
        entity.add_tag("Rent")
        assert entity.tags == ["home", "rent"]

        entity.remove_tag("HOME")
        assert entity.tags == ["rent"]

    def test_tags_are_returned_as_copy(self):
        """Test that mutating the tags list does not change the entity."""
        entity = TaggedEntity()
        entity.add_tag("home")
        entity.tags.append("hacked")
        assert entity.tags == ["home"]

    def test_metadata_starts_empty(self):
        """Test metadata defaults to None and can be replaced."""
        entity = TaggedEntity()
        assert entity.metadata is None
        entity.update_metadata({"source": "import"})
        assert entity.metadata == {"source": "import"}


class TestErrors:
    """Tests for the domain error hierarchy."""

    def test_input_errors_are_value_errors(self):
        """Test that input errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            raise InvalidInputError("bad input")

    def test_not_found_is_lookup_error(self):
        """Test NotFoundError is both a FinanceError and a LookupError."""
        error = NotFoundError("missing")
        assert isinstance(error, FinanceError)
        assert isinstance(error, LookupError)

    def test_currency_mismatch_default_message(self):
        """Test the default currency mismatch message names both currencies."""
        error = CurrencyMismatchError("BRL", "USD")
        assert "BRL" in str(error)
        assert "USD" in str(error)

    def test_missing_income_messages(self):
        """Test MissingIncomeError with and without a partner."""
        assert "required" in str(MissingIncomeError())
        assert "partner-b" in str(MissingIncomeError("partner-b"))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_CREATED,
            description="Household created",
        )
        assert event.event_type == AuditEventType.HOUSEHOLD_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.is_user_action is False

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.SPLIT_APPLIED,
            description="Split applied",
            correlation_id=correlation_id,
            details={"split_type": "equal", "partners": 2},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "split_applied"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"]["split_type"] == "equal"

    def test_audit_event_description_limit(self):
        """Test that descriptions longer than 500 characters are rejected."""
        with pytest.raises(ValueError):
            AuditEvent(
                event_type=AuditEventType.SYSTEM_ERROR,
                description="x" * 501,
            )

    def test_audit_event_builder_split_applied(self):
        """Test AuditEventBuilder.split_applied."""
        correlation_id = uuid4()

        event = AuditEventBuilder.split_applied(
            transaction_id="tx-1",
            agreement_id="ag-1",
            split_type="proportional",
            shares=[{"partnerId": "a"}, {"partnerId": "b"}],
            correlation_id=correlation_id,
            actor_id="a",
        )

        assert event.event_type == AuditEventType.SPLIT_APPLIED
        assert event.entity_type == "transaction"
        assert event.entity_id == "tx-1"
        assert event.details["agreement_id"] == "ag-1"
        assert event.is_user_action is True

    def test_audit_event_builder_split_rejected(self):
        """Test AuditEventBuilder.split_rejected is a warning with an error code."""
        event = AuditEventBuilder.split_rejected(
            transaction_id="tx-1",
            reason="Partner incomes required for proportional split",
            error_code="MissingIncomeError",
            correlation_id=uuid4(),
        )

        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "MissingIncomeError"
        assert "incomes" in event.error_message

    def test_audit_event_builder_validation_stages(self):
        """Test that the validation stage picks the event type."""
        schema = AuditEventBuilder.validation_failed("tx-1", "schema", [], uuid4())
        semantic = AuditEventBuilder.validation_failed("tx-1", "semantic", [], uuid4())

        assert schema.event_type == AuditEventType.SCHEMA_VALIDATION_FAILED
        assert semantic.event_type == AuditEventType.SEMANTIC_VALIDATION_FAILED

    def test_audit_event_builder_envelope_alert(self):
        """Test that critical envelope alerts are logged as errors."""
        warning = AuditEventBuilder.envelope_alert("env-1", "Groceries", 82.0, False, uuid4())
        critical = AuditEventBuilder.envelope_alert("env-1", "Groceries", 97.0, True, uuid4())

        assert warning.event_type == AuditEventType.ENVELOPE_WARNING
        assert warning.severity == AuditSeverity.WARNING
        assert critical.event_type == AuditEventType.ENVELOPE_CRITICAL
        assert critical.severity == AuditSeverity.ERROR
        assert "97%" in critical.description

    def test_audit_event_builder_goal_contribution(self):
        """Test that goal contributions record the contributor as actor."""
        event = AuditEventBuilder.goal_contribution_added(
            goal_id="goal-1",
            contribution_id="c-1",
            amount="500.00 BRL",
            contributor_id="partner-a",
            correlation_id=uuid4(),
        )

        assert event.event_type == AuditEventType.GOAL_CONTRIBUTION_ADDED
        assert event.actor_id == "partner-a"
        assert event.is_user_action is True

    def test_audit_event_builder_system_error(self):
        """Test AuditEventBuilder.system_error."""
        event = AuditEventBuilder.system_error("StorageError", "disk full")

        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {}
        assert event.correlation_id is None


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            transaction_id="tx-1",
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="shares",
                    issue_type="not_reconciled",
                    message="Shares do not add up",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert len(result.issues_of_type("not_reconciled")) == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            transaction_id="tx-1",
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="partner-a",
                    issue_type="deviation",
                    message="Share deviates from the agreement",
                    severity="warning",
                ),
            ],
            warnings=["Share deviates from the agreement"],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.has_warnings is True

    def test_validation_issue_severity_pattern(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValueError):
            ValidationIssue(
                field="shares",
                issue_type="missing",
                message="No shares",
                severity="fatal",
            )


class TestAuditEventTypes:
    """Tests for the audit event type enum."""

    def test_all_event_types_exist(self):
        """Test that expected event types exist."""
        expected = [
            "household_created", "split_applied", "split_rejected",
            "schema_validation_failed", "semantic_validation_failed",
            "agreement_deviation", "envelope_spending_recorded",
            "envelope_warning", "envelope_critical", "envelope_period_closed",
            "goal_contribution_added", "goal_completed", "system_error",
        ]
        for event_type in expected:
            assert AuditEventType(event_type) is not None

    def test_severity_values(self):
        """Test severity string values."""
        assert AuditSeverity.WARNING.value == "warning"
        assert AuditSeverity.CRITICAL.value == "critical"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
