"""
Two-Stage Split Validation Pipeline

Partners sometimes split an expense by hand instead of letting the
agreement's rule do it. Before such a split is written onto a transaction
it goes through this pipeline.

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Every share belongs to a partner of the agreement, once
- Every share is in the transaction's currency
- No negative shares
- The shares add up to the transaction amount, to the cent
- This catches proposals that cannot be applied at all

STAGE 2 - SEMANTIC VALIDATION:
- The agreement was in force when the expense happened
- Each partner's share is compared with what the agreement's rule would
  have charged them
- Deviations beyond the agreement's alert threshold become warnings
- This catches proposals that are valid but suspicious

WHY TWO STAGES:
1. Separation of concerns (structural vs agreed-upon)
2. Better error messages (know exactly what kind of issue)
3. Stage 2 is meaningless if stage 1 fails, so it is skipped

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the partners to review.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Optional

from src.models.agreement import Agreement
from src.models.errors import FinanceError
from src.models.money import Money
from src.models.split import results_by_partner, total_of
from src.models.transaction import Transaction, TransactionSplit
from src.models.validation import ValidationIssue, ValidationResult


class SplitValidator:
    """
    Validates a manually proposed split through a two-stage pipeline.

    Stage 1: Schema validation (only needs the proposal and the transaction)
    Stage 2: Semantic validation (compares against the agreement's own split)
    """

    def _validate_schema(
        self,
        agreement: Agreement,
        transaction: Transaction,
        proposed: Sequence[TransactionSplit],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        currency = transaction.amount.currency
        known = set(agreement.split_rule.partner_ids)

        if not proposed:
            issues.append(ValidationIssue(
                field="shares",
                issue_type="missing",
                message="No shares were proposed",
                severity="error",
                suggested_fix="Enter one share per partner",
            ))
            return False, issues

        seen: set[str] = set()
        same_currency = True
        for share in proposed:
            if share.partner_id not in known:
                issues.append(ValidationIssue(
                    field=share.partner_id,
                    issue_type="unknown_partner",
                    message=f"Partner {share.partner_id} is not part of this agreement",
                    severity="error",
                ))
            if share.partner_id in seen:
                issues.append(ValidationIssue(
                    field=share.partner_id,
                    issue_type="duplicate_partner",
                    message=f"Partner {share.partner_id} has more than one share",
                    severity="error",
                    suggested_fix="Merge the shares into one",
                ))
            seen.add(share.partner_id)

            if share.amount.currency != currency:
                same_currency = False
                issues.append(ValidationIssue(
                    field=share.partner_id,
                    issue_type="currency_mismatch",
                    message=(
                        f"Share for {share.partner_id} is in {share.amount.currency}, "
                        f"transaction is in {currency}"
                    ),
                    severity="error",
                ))
            if share.amount.is_negative():
                issues.append(ValidationIssue(
                    field=share.partner_id,
                    issue_type="negative_amount",
                    message=f"Share for {share.partner_id} is negative",
                    severity="error",
                ))

        for partner_id in agreement.split_rule.partner_ids:
            if partner_id not in seen:
                issues.append(ValidationIssue(
                    field=partner_id,
                    issue_type="missing_partner",
                    message=f"Partner {partner_id} has no share",
                    severity="warning",
                    suggested_fix="Add a zero share if this partner pays nothing",
                ))

        # Totals only make sense once every share is in the same currency
        if same_currency:
            total = total_of(proposed, currency)
            if not total.equals(transaction.amount):
                issues.append(ValidationIssue(
                    field="shares",
                    issue_type="not_reconciled",
                    message=(
                        f"Shares add up to {total}, "
                        f"transaction amount is {transaction.amount}"
                    ),
                    severity="error",
                    suggested_fix="Adjust the shares so they add up to the amount",
                ))

        # Schema is valid if no errors (warnings are okay)
        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        agreement: Agreement,
        transaction: Transaction,
        proposed: Sequence[TransactionSplit],
        partner_incomes: Optional[dict[str, Money]],
    ) -> tuple[bool, dict[str, float], bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, deviations, should_alert, list_of_issues)
        """
        issues = []

        if not agreement.is_active_on(transaction.occurred_at):
            issues.append(ValidationIssue(
                field="agreement",
                issue_type="inactive_agreement",
                message="Agreement was not in force when this expense happened",
                severity="warning",
                suggested_fix="Check which agreement should cover this expense",
            ))

        try:
            expected = results_by_partner(
                agreement.expected_split(transaction.amount, partner_incomes)
            )
        except FinanceError as e:
            issues.append(ValidationIssue(
                field="agreement",
                issue_type="expected_split_unavailable",
                message=f"Could not compute the agreed split: {e}",
                severity="info",
            ))
            return True, {}, False, issues

        actual = {share.partner_id: share.amount for share in proposed}
        deviations = agreement.deviations(actual, expected)
        should_alert = agreement.should_alert(actual, expected)

        threshold = Decimal(str(agreement.alerts.threshold_percentage))
        for partner_id, deviation in deviations.items():
            if deviation > threshold:
                issues.append(ValidationIssue(
                    field=partner_id,
                    issue_type="deviation",
                    message=(
                        f"Share for {partner_id} is {actual[partner_id]}, "
                        f"the agreement expects {expected[partner_id]} "
                        f"({deviation:.1f}% off)"
                    ),
                    severity="warning",
                    suggested_fix="Confirm both partners agree with this split",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return (
            is_valid,
            {partner_id: float(value) for partner_id, value in deviations.items()},
            should_alert,
            issues,
        )

    def validate(
        self,
        agreement: Agreement,
        transaction: Transaction,
        proposed: Sequence[TransactionSplit],
        partner_incomes: Optional[dict[str, Money]] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            agreement: Agreement the expense falls under
            transaction: Transaction being split
            proposed: One share per partner
            partner_incomes: Needed to compute the expected split of
                PROPORTIONAL agreements

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []
        deviations: dict[str, float] = {}
        should_alert = False

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(agreement, transaction, proposed)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, deviations, should_alert, semantic_issues = self._validate_semantic(
                agreement, transaction, proposed, partner_incomes
            )
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            transaction_id=transaction.id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            should_alert=should_alert,
            deviations=deviations,
            issues=all_issues,
            warnings=warnings,
        )

    def get_summary(self, result: ValidationResult) -> str:
        """
        Generate a readable summary of validation results.

        This is what we show to the partners.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("The proposed split cannot be applied:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"  - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"    ({issue.suggested_fix})")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)
