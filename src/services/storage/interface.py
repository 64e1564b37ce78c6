"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the domain models free of any I/O
2. Use in-memory storage for testing
3. Plug in a real database without touching the application flows

The interface is intentionally simple - we're not building a full ORM.
One repository port per aggregate, with the lookups the flows need.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar
from uuid import UUID

from src.models.account import Account
from src.models.agreement import Agreement
from src.models.audit import AuditEvent
from src.models.budget_envelope import BudgetEnvelope
from src.models.goal import Goal
from src.models.household import Household
from src.models.partner import Partner
from src.models.transaction import Transaction


T = TypeVar("T")


class RepositoryInterface(ABC, Generic[T]):
    """
    Abstract repository for one aggregate type.

    Any storage implementation (in-memory, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save(self, entity: T) -> T:
        """
        Insert or replace an entity, keyed by its id.

        Args:
            entity: The entity to persist

        Returns:
            The saved entity

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def find_by_id(self, entity_id: str) -> Optional[T]:
        """
        Retrieve an entity by its ID.

        Returns:
            The entity if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_all(self) -> list[T]:
        """Return every stored entity, in insertion order."""
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> bool:
        """
        Delete an entity by ID.

        Returns:
            True if something was deleted, False if the id was unknown
        """
        pass


class HouseholdRepositoryInterface(RepositoryInterface[Household]):
    """Household storage."""

    @abstractmethod
    async def find_by_name(self, name: str) -> Optional[Household]:
        """
        Find a household by name (case-insensitive, surrounding whitespace ignored).

        Used for duplicate detection when households are created.
        """
        pass


class PartnerRepositoryInterface(RepositoryInterface[Partner]):
    """Partner storage."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Partner]:
        pass


class AccountRepositoryInterface(RepositoryInterface[Account]):
    """Account storage."""

    @abstractmethod
    async def find_by_household(self, household_id: str) -> list[Account]:
        pass


class AgreementRepositoryInterface(RepositoryInterface[Agreement]):
    """Agreement storage."""

    @abstractmethod
    async def find_by_household(self, household_id: str) -> list[Agreement]:
        pass


class BudgetEnvelopeRepositoryInterface(RepositoryInterface[BudgetEnvelope]):
    """Budget envelope storage."""

    @abstractmethod
    async def find_by_household(self, household_id: str) -> list[BudgetEnvelope]:
        pass


class GoalRepositoryInterface(RepositoryInterface[Goal]):
    """Goal storage."""

    @abstractmethod
    async def find_by_household(self, household_id: str) -> list[Goal]:
        pass


class TransactionRepositoryInterface(RepositoryInterface[Transaction]):
    """Transaction storage."""

    @abstractmethod
    async def find_by_account(self, account_id: str) -> list[Transaction]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one split flow).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'goal', 'envelope')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass

