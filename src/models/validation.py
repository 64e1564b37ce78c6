"""
Validation Result Models

What the two-stage split validator reports back. Validation never changes
a proposal; it only describes what is wrong with it.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.utils.datetime_utils import utcnow


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Part of the proposal with the issue (e.g. 'shares', a partner id)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unknown_partner', 'not_reconciled', 'deviation')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (partners, currencies, totals)
    Stage 2: Semantic validation (deviation from the agreement)
    """

    transaction_id: str = Field(
        ...,
        description="ID of the transaction whose split was validated"
    )
    validated_at: datetime = Field(
        default_factory=utcnow
    )

    # Stage results
    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )

    # Overall result
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    should_alert: bool = Field(
        default=False,
        description="Does the proposal deviate from the agreement beyond its threshold?"
    )

    # Percentage deviation per partner, from stage 2
    deviations: dict[str, float] = Field(
        default_factory=dict,
        description="Deviation of each partner's share from the expected split, in percent"
    )

    # Issues found
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Warnings don't block but should be shown
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def issues_of_type(self, issue_type: str) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.issue_type == issue_type]
