"""
Data Models Package

This package contains all Pydantic models used in the household finance core.
Value objects are frozen; entities keep their mutable state private and
change it only through their own methods.
"""

from src.models.account import Account, AccountType
from src.models.agreement import (
    Agreement,
    AgreementAlerts,
    AgreementHistoryEntry,
    AgreementStatus,
    AgreementType,
    HistoryChangeType,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.budget_envelope import (
    BudgetEnvelope,
    BudgetPeriod,
    EnvelopeAlerts,
    EnvelopeType,
    RolloverSettings,
)
from src.models.errors import (
    ContributionExceedsRemainingError,
    CurrencyConversionNotSupportedError,
    CurrencyMismatchError,
    CustomAmountMismatchError,
    DuplicateError,
    FinanceError,
    FixedAmountExceededError,
    InsufficientBalanceError,
    InvalidIncomeError,
    InvalidInputError,
    InvalidOperandError,
    InvalidStateTransitionError,
    MissingIncomeError,
    NegativeAmountError,
    NotFoundError,
    SplitReconciliationError,
    ZeroAmountError,
)
from src.models.goal import (
    AutoContributionRule,
    Contribution,
    ContributionFrequency,
    Goal,
    GoalProgress,
    GoalStatus,
    GoalType,
)
from src.models.household import Household, HouseholdSettings, PrivacyLevel
from src.models.money import Money
from src.models.partner import IncomeFrequency, IncomeStream, NotificationPreferences, Partner
from src.models.split import SplitPartner, SplitResult, SplitType
from src.models.split_rule import SplitRule
from src.models.transaction import (
    Transaction,
    TransactionCategory,
    TransactionSplit,
    TransactionStatus,
    TransactionType,
)
from src.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Money and splitting
    "Money",
    "SplitPartner",
    "SplitResult",
    "SplitRule",
    "SplitType",
    # Agreements
    "Agreement",
    "AgreementAlerts",
    "AgreementHistoryEntry",
    "AgreementStatus",
    "AgreementType",
    "HistoryChangeType",
    # Budget envelopes
    "BudgetEnvelope",
    "BudgetPeriod",
    "EnvelopeAlerts",
    "EnvelopeType",
    "RolloverSettings",
    # Goals
    "AutoContributionRule",
    "Contribution",
    "ContributionFrequency",
    "Goal",
    "GoalProgress",
    "GoalStatus",
    "GoalType",
    # Household, partners and accounts
    "Account",
    "AccountType",
    "Household",
    "HouseholdSettings",
    "IncomeFrequency",
    "IncomeStream",
    "NotificationPreferences",
    "Partner",
    "PrivacyLevel",
    # Transactions
    "Transaction",
    "TransactionCategory",
    "TransactionSplit",
    "TransactionStatus",
    "TransactionType",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Errors
    "ContributionExceedsRemainingError",
    "CurrencyConversionNotSupportedError",
    "CurrencyMismatchError",
    "CustomAmountMismatchError",
    "DuplicateError",
    "FinanceError",
    "FixedAmountExceededError",
    "InsufficientBalanceError",
    "InvalidIncomeError",
    "InvalidInputError",
    "InvalidOperandError",
    "InvalidStateTransitionError",
    "MissingIncomeError",
    "NegativeAmountError",
    "NotFoundError",
    "SplitReconciliationError",
    "ZeroAmountError",
]
