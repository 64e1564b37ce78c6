"""
In-Memory Storage Implementation

DESIGN DECISION: The in-memory backend is the reference implementation of
the repository ports. It is what the tests and the application flows run
against until a real database is plugged in.

TRADEOFFS:
- Nothing survives a restart
- Entities are stored by reference, so a caller mutating an entity after
  saving it also changes the stored copy (same as an identity map)
"""

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


T = TypeVar("T")


class InMemoryRepository(RepositoryInterface[T], Generic[T]):
    """Dictionary-backed repository keyed by entity id."""

    def __init__(self):
        self._items: dict[str, T] = {}

    async def save(self, entity: T) -> T:
        entity_id = getattr(entity, "id", None)
        if not entity_id:
            raise StorageError(f"Cannot save {type(entity).__name__} without an id")
        self._items[entity_id] = entity
        return entity

    async def find_by_id(self, entity_id: str) -> Optional[T]:
        return self._items.get(entity_id)

    async def find_all(self) -> list[T]:
        return list(self._items.values())

    async def delete(self, entity_id: str) -> bool:
        return self._items.pop(entity_id, None) is not None

    def _matching(self, **criteria: str) -> list[T]:
        return [
            item for item in self._items.values()
            if all(getattr(item, key) == value for key, value in criteria.items())
        ]


class InMemoryHouseholdRepository(InMemoryRepository[Household], HouseholdRepositoryInterface):

    async def find_by_name(self, name: str) -> Optional[Household]:
        wanted = name.strip().casefold()
        for household in self._items.values():
            if household.name.casefold() == wanted:
                return household
        return None


class InMemoryPartnerRepository(InMemoryRepository[Partner], PartnerRepositoryInterface):

    async def find_by_email(self, email: str) -> Optional[Partner]:
        wanted = email.strip().lower()
        for partner in self._items.values():
            if partner.email == wanted:
                return partner
        return None


class InMemoryAccountRepository(InMemoryRepository[Account], AccountRepositoryInterface):

    async def find_by_household(self, household_id: str) -> list[Account]:
        return self._matching(household_id=household_id)


class InMemoryAgreementRepository(InMemoryRepository[Agreement], AgreementRepositoryInterface):

    async def find_by_household(self, household_id: str) -> list[Agreement]:
        return self._matching(household_id=household_id)


class InMemoryBudgetEnvelopeRepository(
    InMemoryRepository[BudgetEnvelope], BudgetEnvelopeRepositoryInterface
):

    async def find_by_household(self, household_id: str) -> list[BudgetEnvelope]:
        return self._matching(household_id=household_id)


class InMemoryGoalRepository(InMemoryRepository[Goal], GoalRepositoryInterface):

    async def find_by_household(self, household_id: str) -> list[Goal]:
        return self._matching(household_id=household_id)


class InMemoryTransactionRepository(
    InMemoryRepository[Transaction], TransactionRepositoryInterface
):

    async def find_by_account(self, account_id: str) -> list[Transaction]:
        return self._matching(account_id=account_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
