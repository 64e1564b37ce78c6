"""
Main Orchestrator for Household Finance

This module ties together the domain models, the repository ports and the
audit logger, and defines the end-to-end flows for:
1. Household creation (validate → check duplicates → save → audit)
2. Expense splitting (agreement → incomes → split → reconcile → audit)
3. Manual split review (validate → apply when valid → audit)
4. Budget tracking (spending → alert bands → period close and rollover)
5. Goal contributions (contribute → completion → audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The domain models never do I/O; the flows load and save them
- Nothing is written back unless the split reconciles to the cent
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import date, datetime
from typing import Optional, Sequence
from uuid import UUID

from src.audit import AuditLogger, create_correlation_id
from src.config import Settings, get_settings
from src.models.agreement import SYSTEM_ACTOR, Agreement, AgreementType
from src.models.base import require_text
from src.models.budget_envelope import BudgetEnvelope, BudgetPeriod, period_bounds
from src.models.errors import (
    CurrencyMismatchError,
    DuplicateError,
    FinanceError,
    InvalidInputError,
    NotFoundError,
    SplitReconciliationError,
)
from src.models.goal import Contribution, Goal, GoalProgress
from src.models.household import Household, HouseholdSettings, PrivacyLevel
from src.models.money import Money, normalize_currency
from src.models.split import SplitResult, SplitType
from src.models.split_rule import SplitRule
from src.models.transaction import Transaction, TransactionSplit
from src.models.validation import ValidationResult
from src.services.storage import (
    AgreementRepositoryInterface,
    BudgetEnvelopeRepositoryInterface,
    GoalRepositoryInterface,
    HouseholdRepositoryInterface,
    InMemoryAgreementRepository,
    InMemoryAuditStorage,
    InMemoryBudgetEnvelopeRepository,
    InMemoryGoalRepository,
    InMemoryHouseholdRepository,
    InMemoryTransactionRepository,
    TransactionRepositoryInterface,
)
from src.utils.datetime_utils import utcnow
from src.validation import SplitValidator


# Envelope alert bands, lowest to highest
BAND_OK = "ok"
BAND_WARNING = "warning"
BAND_CRITICAL = "critical"


class HouseholdFlow:
    """
    Orchestrates household creation.

    Flow:
    1. Validate → name present and short enough, 3-letter currency
    2. Duplicate check → no other household with the same name
    3. Save → Persist to storage
    4. Audit
    """

    def __init__(
        self,
        households: HouseholdRepositoryInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._households = households
        self._audit_logger = audit_logger
        self._settings = settings or get_settings()

    async def create_household(
        self,
        name: str,
        currency: Optional[str] = None,
        privacy_level: Optional[PrivacyLevel] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Household:
        """
        Create and save a new household.

        Raises:
            InvalidInputError: Blank or too long name, malformed currency
            DuplicateError: A household with this name already exists
        """
        correlation_id = correlation_id or create_correlation_id()
        app_settings = self._settings.app

        name = require_text(name, "Household name")
        if len(name) > app_settings.max_household_name_length:
            raise InvalidInputError(
                f"Household name cannot exceed {app_settings.max_household_name_length} characters"
            )
        currency = normalize_currency(currency or app_settings.default_currency)

        if await self._households.find_by_name(name) is not None:
            raise DuplicateError(f"Household already exists: {name}")

        household = Household(
            name=name,
            settings=HouseholdSettings(
                currency=currency,
                privacy_level=privacy_level or PrivacyLevel.PRIVATE,
            ),
        )
        await self._households.save(household)

        if self._audit_logger:
            await self._audit_logger.log_household_created(
                household_id=household.id,
                name=household.name,
                currency=household.currency,
                correlation_id=correlation_id,
            )

        return household


class ExpenseSplitFlow:
    """
    Orchestrates expense splitting.

    Flow:
    1. Agreement → The household's active agreement of the requested type
    2. Incomes → Built from the partners when the rule is PROPORTIONAL
    3. Split → Applied to the transaction
    4. Reconcile → Shares must add up to the amount exactly
    5. Save + Audit

    Manual splits take a different path: they go through the two-stage
    validator and are only written back when valid.
    """

    def __init__(
        self,
        transactions: Optional[TransactionRepositoryInterface] = None,
        agreements: Optional[AgreementRepositoryInterface] = None,
        validator: Optional[SplitValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._transactions = transactions
        self._agreements = agreements
        self._validator = validator or SplitValidator()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings()

    async def create_agreement(
        self,
        household: Household,
        name: str,
        agreement_type: AgreementType,
        split_rule: SplitRule,
        created_by: str = SYSTEM_ACTOR,
        effective_from: Optional[date | datetime] = None,
    ) -> Agreement:
        """
        Create an agreement with the configured deviation threshold and
        attach it to the household.
        """
        agreement = Agreement(
            household_id=household.id,
            type=agreement_type,
            name=name,
            split_rule=split_rule,
            effective_from=effective_from,
            created_by=created_by,
        )
        threshold = self._settings.alerts.deviation_threshold_percentage
        if agreement.alerts.threshold_percentage != threshold:
            agreement.update_alerts(
                created_by, "Configured alert threshold", threshold_percentage=threshold
            )
        household.add_agreement(agreement)

        if self._agreements:
            await self._agreements.save(agreement)

        return agreement

    async def split_transaction(
        self,
        household: Household,
        transaction: Transaction,
        agreement_type: AgreementType,
        on: Optional[date | datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[SplitResult]:
        """
        Split a transaction with the household's agreement.

        Args:
            household: Household the transaction belongs to
            transaction: Expense to split
            agreement_type: Which of the household's agreements applies
            on: Date used to pick the agreement; defaults to when the
                transaction happened

        Returns:
            The shares written onto the transaction
        """
        correlation_id = correlation_id or create_correlation_id()
        on = on or transaction.occurred_at

        agreement = household.active_agreement_for(agreement_type, on)
        if agreement is None:
            error = NotFoundError(f"No active {agreement_type.value} agreement")
            await self._reject(transaction, error, correlation_id)
            raise error

        rule = agreement.split_rule
        incomes = None
        if rule.type == SplitType.PROPORTIONAL:
            incomes = household.partner_incomes(transaction.amount.currency)

        try:
            results = transaction.apply_split(rule, incomes)
        except FinanceError as e:
            await self._reject(transaction, e, correlation_id)
            raise

        if not rule.validate_split(transaction.amount, results):
            error = SplitReconciliationError("Split results do not add up to the transaction amount")
            await self._reject(transaction, error, correlation_id)
            raise error

        if self._transactions:
            await self._transactions.save(transaction)

        if self._audit_logger:
            await self._audit_logger.log_split_applied(
                transaction_id=transaction.id,
                agreement_id=agreement.id,
                split_type=rule.type.value,
                shares=[result.to_dict() for result in results],
                correlation_id=correlation_id,
            )

        return results

    async def review_manual_split(
        self,
        agreement: Agreement,
        transaction: Transaction,
        proposed: Sequence[TransactionSplit],
        partner_incomes: Optional[dict[str, Money]] = None,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate a hand-made split and apply it when it passes.

        Deviations from the agreement do not block the split; they are
        reported as warnings and audited.
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(agreement, transaction, proposed, partner_incomes)

        if not result.schema_valid:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    transaction_id=transaction.id,
                    stage="schema",
                    issues=[issue.model_dump() for issue in result.issues],
                    correlation_id=correlation_id,
                )
            return result

        if result.should_alert and self._audit_logger:
            await self._audit_logger.log_agreement_deviation(
                agreement_id=agreement.id,
                transaction_id=transaction.id,
                deviations=result.deviations,
                threshold=agreement.alerts.threshold_percentage,
                correlation_id=correlation_id,
            )

        if result.is_valid:
            transaction.update_split_details(list(proposed))

            if self._transactions:
                await self._transactions.save(transaction)

            if self._audit_logger:
                await self._audit_logger.log_split_applied(
                    transaction_id=transaction.id,
                    agreement_id=agreement.id,
                    split_type="manual",
                    shares=[share.to_dict() for share in proposed],
                    correlation_id=correlation_id,
                    actor_id=actor_id,
                )
        elif self._audit_logger:
            await self._audit_logger.log_validation_failed(
                transaction_id=transaction.id,
                stage="semantic",
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )

        return result

    async def _reject(
        self,
        transaction: Transaction,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_split_rejected(
                transaction_id=transaction.id,
                reason=str(error),
                error_code=type(error).__name__,
                correlation_id=correlation_id,
            )


class BudgetFlow:
    """
    Orchestrates budget envelopes.

    Spending is recorded as it happens; an alert is audited whenever an
    envelope moves up into its warning or critical band. Closing a period
    resets the envelope and carries the rollover into the next budget.
    """

    def __init__(
        self,
        envelopes: Optional[BudgetEnvelopeRepositoryInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._envelopes = envelopes
        self._audit_logger = audit_logger
        self._settings = settings or get_settings()

    async def create_envelope(
        self,
        household: Household,
        name: str,
        limit: Money,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
        custom_range: Optional[tuple[date, date]] = None,
        today: Optional[date] = None,
        **data,
    ) -> BudgetEnvelope:
        """
        Create an envelope with the configured alert bands and rollover
        default, and attach it to the household.

        Custom periods without an explicit range last the configured
        number of days from ``today``.
        """
        budget_settings = self._settings.budget
        alert_settings = self._settings.alerts

        if period == BudgetPeriod.CUSTOM and custom_range is None:
            custom_range = period_bounds(
                period, today or utcnow().date(), budget_settings.custom_period_days
            )

        envelope = BudgetEnvelope(
            household_id=household.id,
            name=name,
            limit=limit,
            period=period,
            custom_range=custom_range,
            today=today,
            **data,
        )
        envelope.update_alerts(
            warn_at_percentage=alert_settings.envelope_warning_percentage,
            critical_at_percentage=alert_settings.envelope_critical_percentage,
        )
        if budget_settings.rollover_enabled_by_default:
            envelope.update_rollover_settings(enabled=True)
        household.add_envelope(envelope)

        if self._envelopes:
            await self._envelopes.save(envelope)

        return envelope

    @staticmethod
    def alert_band(envelope: BudgetEnvelope) -> str:
        if envelope.should_alert_critical():
            return BAND_CRITICAL
        if envelope.should_warn():
            return BAND_WARNING
        return BAND_OK

    async def record_spending(
        self,
        envelope: BudgetEnvelope,
        amount: Money,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Add spending to an envelope.

        Returns:
            The envelope's alert band after the spending
        """
        correlation_id = correlation_id or create_correlation_id()
        bands = (BAND_OK, BAND_WARNING, BAND_CRITICAL)

        before = self.alert_band(envelope)
        envelope.add_spending(amount)
        after = self.alert_band(envelope)

        if self._envelopes:
            await self._envelopes.save(envelope)

        if self._audit_logger:
            await self._audit_logger.log_envelope_spending(
                envelope_id=envelope.id,
                amount=str(amount),
                spent_percentage=envelope.spent_percentage(),
                correlation_id=correlation_id,
            )
            if bands.index(after) > bands.index(before):
                await self._audit_logger.log_envelope_alert(
                    envelope_id=envelope.id,
                    name=envelope.name,
                    spent_percentage=envelope.spent_percentage(),
                    critical=after == BAND_CRITICAL,
                    correlation_id=correlation_id,
                )

        return after

    async def close_period(
        self,
        envelope: BudgetEnvelope,
        carry_into: Optional[BudgetEnvelope] = None,
        today: Optional[date] = None,
        custom_range: Optional[tuple[date, date]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Money:
        """
        Close the envelope's period and open the next one.

        When ``carry_into`` is given, its limit grows by the rollover. It
        may be the envelope itself.

        Returns:
            The rollover amount
        """
        correlation_id = correlation_id or create_correlation_id()

        if carry_into is not None and carry_into.currency != envelope.currency:
            raise CurrencyMismatchError(
                envelope.currency,
                carry_into.currency,
                "Rollover can only be carried into an envelope of the same currency",
            )

        rollover = envelope.reset_for_new_period(today, custom_range)
        if carry_into is not None and rollover.is_positive():
            carry_into.update_limit(carry_into.limit.add(rollover))

        if self._envelopes:
            await self._envelopes.save(envelope)
            if carry_into is not None and carry_into is not envelope:
                await self._envelopes.save(carry_into)

        if self._audit_logger:
            await self._audit_logger.log_envelope_period_closed(
                envelope_id=envelope.id,
                rollover=str(rollover),
                carried_into=carry_into.id if carry_into is not None else None,
                correlation_id=correlation_id,
            )

        return rollover


class GoalFlow:
    """
    Orchestrates goal contributions.

    Every contribution is audited; the contribution that reaches the
    target also produces a completion event.
    """

    def __init__(
        self,
        goals: Optional[GoalRepositoryInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._goals = goals
        self._audit_logger = audit_logger
        self._settings = settings or get_settings()

    async def contribute(
        self,
        goal: Goal,
        amount: Money,
        contributor_id: str,
        contributor_name: Optional[str] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Contribution:
        """Add a contribution to a goal and save it."""
        correlation_id = correlation_id or create_correlation_id()

        contribution = goal.add_contribution(
            amount,
            contributor_id,
            contributor_name=contributor_name,
            notes=notes,
        )

        if self._goals:
            await self._goals.save(goal)

        if self._audit_logger:
            await self._audit_logger.log_goal_contribution(
                goal_id=goal.id,
                contribution_id=contribution.id,
                amount=str(amount),
                contributor_id=contributor_id,
                correlation_id=correlation_id,
            )
            if goal.is_completed():
                await self._audit_logger.log_goal_completed(
                    goal_id=goal.id,
                    name=goal.name,
                    target=str(goal.target_amount),
                    correlation_id=correlation_id,
                )

        return contribution

    def progress(self, goal: Goal, now: Optional[datetime] = None) -> GoalProgress:
        """Progress snapshot using the configured on-track tolerance."""
        return goal.progress(now, tolerance=self._settings.goals.on_track_tolerance)

    def recent_contributions(self, goal: Goal) -> list[Contribution]:
        return goal.recent_contributions(self._settings.goals.recent_contributions_limit)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[HouseholdFlow, ExpenseSplitFlow, BudgetFlow, GoalFlow, InMemoryAuditStorage]:
    """
    Factory function to create all application components.

    Everything is wired to the in-memory storage backend.

    Returns:
        (household_flow, expense_split_flow, budget_flow, goal_flow, audit_storage)
    """
    settings = settings or get_settings()
    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)

    household_flow = HouseholdFlow(
        households=InMemoryHouseholdRepository(),
        audit_logger=audit_logger,
        settings=settings,
    )
    expense_split_flow = ExpenseSplitFlow(
        transactions=InMemoryTransactionRepository(),
        agreements=InMemoryAgreementRepository(),
        audit_logger=audit_logger,
        settings=settings,
    )
    budget_flow = BudgetFlow(
        envelopes=InMemoryBudgetEnvelopeRepository(),
        audit_logger=audit_logger,
        settings=settings,
    )
    goal_flow = GoalFlow(
        goals=InMemoryGoalRepository(),
        audit_logger=audit_logger,
        settings=settings,
    )

    return household_flow, expense_split_flow, budget_flow, goal_flow, audit_storage
