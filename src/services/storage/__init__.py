"""
Storage Services Package

Provides abstract repository ports and concrete implementations for data storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from src.services.storage.interface import (
    AccountRepositoryInterface,
    AgreementRepositoryInterface,
    AuditStorageInterface,
    BudgetEnvelopeRepositoryInterface,
    GoalRepositoryInterface,
    HouseholdRepositoryInterface,
    PartnerRepositoryInterface,
    RepositoryInterface,
    StorageError,
    TransactionRepositoryInterface,
)
from src.services.storage.memory import (
    InMemoryAccountRepository,
    InMemoryAgreementRepository,
    InMemoryAuditStorage,
    InMemoryBudgetEnvelopeRepository,
    InMemoryGoalRepository,
    InMemoryHouseholdRepository,
    InMemoryPartnerRepository,
    InMemoryRepository,
    InMemoryTransactionRepository,
)

__all__ = [
    # Interfaces
    "AccountRepositoryInterface",
    "AgreementRepositoryInterface",
    "AuditStorageInterface",
    "BudgetEnvelopeRepositoryInterface",
    "GoalRepositoryInterface",
    "HouseholdRepositoryInterface",
    "PartnerRepositoryInterface",
    "RepositoryInterface",
    "TransactionRepositoryInterface",
    # Exceptions
    "StorageError",
    # In-memory implementation
    "InMemoryAccountRepository",
    "InMemoryAgreementRepository",
    "InMemoryAuditStorage",
    "InMemoryBudgetEnvelopeRepository",
    "InMemoryGoalRepository",
    "InMemoryHouseholdRepository",
    "InMemoryPartnerRepository",
    "InMemoryRepository",
    "InMemoryTransactionRepository",
]
