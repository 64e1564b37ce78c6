"""
Tests for the in-memory storage backend.

The repository ports are async; each test drives them with asyncio.run.
"""

import asyncio
import pytest
from datetime import date, timedelta
from uuid import uuid4

from src.models.account import Account
from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.models.budget_envelope import BudgetEnvelope
from src.models.goal import Goal
from src.models.household import Household
from src.models.money import Money
from src.models.partner import Partner
from src.models.transaction import Transaction
from src.services.storage import (
    InMemoryAccountRepository,
    InMemoryAuditStorage,
    InMemoryBudgetEnvelopeRepository,
    InMemoryGoalRepository,
    InMemoryHouseholdRepository,
    InMemoryPartnerRepository,
    InMemoryRepository,
    InMemoryTransactionRepository,
    RepositoryInterface,
    StorageError,
)
from src.utils.datetime_utils import utcnow


def brl(amount) -> Money:
    return Money(amount=amount, currency="BRL")


class TestInMemoryRepository:
    """Tests for the generic repository behavior."""

    def test_is_a_repository(self):
        """Test that in-memory repositories implement the port."""
        assert isinstance(InMemoryHouseholdRepository(), RepositoryInterface)

    def test_save_and_find(self):
        """Test save, find_by_id and find_all."""
        repository = InMemoryHouseholdRepository()
        household = Household(name="Home")

        async def scenario():
            saved = await repository.save(household)
            return saved, await repository.find_by_id(household.id), await repository.find_all()

        saved, found, everything = asyncio.run(scenario())
        assert saved is household
        assert found is household
        assert everything == [household]

    def test_find_missing(self):
        """Test that unknown ids return None."""
        assert asyncio.run(InMemoryHouseholdRepository().find_by_id("missing")) is None

    def test_save_replaces(self):
        """Test that saving the same id twice keeps one entry."""
        repository = InMemoryHouseholdRepository()
        household = Household(name="Home")

        async def scenario():
            await repository.save(household)
            household.update_name("Casa")
            await repository.save(household)
            return await repository.find_all()

        everything = asyncio.run(scenario())
        assert len(everything) == 1
        assert everything[0].name == "Casa"

    def test_delete(self):
        """Test that delete reports whether something was removed."""
        repository = InMemoryHouseholdRepository()
        household = Household(name="Home")

        async def scenario():
            await repository.save(household)
            return await repository.delete(household.id), await repository.delete(household.id)

        assert asyncio.run(scenario()) == (True, False)

    def test_save_without_id_rejected(self):
        """Test that entities without an id cannot be stored."""

        class Nameless:
            id = ""

        with pytest.raises(StorageError, match="without an id"):
            asyncio.run(InMemoryRepository().save(Nameless()))


class TestAggregateLookups:
    """Tests for the per-aggregate finders."""

    def test_household_by_name_ignores_case(self):
        """Test case-insensitive household lookup."""
        repository = InMemoryHouseholdRepository()
        household = Household(name="Silva-Souza")

        async def scenario():
            await repository.save(household)
            return await repository.find_by_name("  silva-SOUZA "), await repository.find_by_name("Other")

        found, missing = asyncio.run(scenario())
        assert found is household
        assert missing is None

    def test_partner_by_email(self):
        """Test partner lookup by email."""
        repository = InMemoryPartnerRepository()
        partner = Partner(name="Ana", email="ana@example.com")

        async def scenario():
            await repository.save(partner)
            return await repository.find_by_email("ANA@example.com")

        assert asyncio.run(scenario()) is partner

    def test_find_by_household(self):
        """Test filtering accounts, envelopes and goals by household."""
        accounts = InMemoryAccountRepository()
        envelopes = InMemoryBudgetEnvelopeRepository()
        goals = InMemoryGoalRepository()

        async def scenario():
            await accounts.save(Account(household_id="h1", name="Checking"))
            await accounts.save(Account(household_id="h2", name="Checking"))
            await envelopes.save(BudgetEnvelope(household_id="h1", name="Food", limit=brl(100)))
            await goals.save(
                Goal(
                    household_id="h2",
                    name="Trip",
                    target_amount=brl(100),
                    target_date=date(2030, 1, 1),
                    owner_ids=["a"],
                )
            )
            return (
                await accounts.find_by_household("h1"),
                await envelopes.find_by_household("h1"),
                await goals.find_by_household("h1"),
            )

        h1_accounts, h1_envelopes, h1_goals = asyncio.run(scenario())
        assert len(h1_accounts) == 1
        assert len(h1_envelopes) == 1
        assert h1_goals == []

    def test_transactions_by_account(self):
        """Test filtering transactions by account."""
        repository = InMemoryTransactionRepository()

        async def scenario():
            await repository.save(Transaction(account_id="acc-1", amount=brl(10), description="Bread"))
            await repository.save(Transaction(account_id="acc-2", amount=brl(20), description="Milk"))
            return await repository.find_by_account("acc-1")

        found = asyncio.run(scenario())
        assert [t.description for t in found] == ["Bread"]


class TestInMemoryAuditStorage:
    """Tests for the append-only audit storage."""

    def test_events_by_correlation_id(self):
        """Test that related events come back oldest first."""
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        now = utcnow()
        later = AuditEvent(
            event_type=AuditEventType.GOAL_COMPLETED,
            description="Goal completed",
            correlation_id=correlation_id,
            timestamp=now + timedelta(seconds=1),
        )
        earlier = AuditEvent(
            event_type=AuditEventType.GOAL_CONTRIBUTION_ADDED,
            description="Contribution added",
            correlation_id=correlation_id,
            timestamp=now,
        )
        unrelated = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="Boom")

        async def scenario():
            for event in (later, earlier, unrelated):
                await storage.append_event(event)
            return await storage.get_events_by_correlation_id(correlation_id)

        assert asyncio.run(scenario()) == [earlier, later]

    def test_events_by_entity(self):
        """Test filtering by entity type and id."""
        storage = InMemoryAuditStorage()
        event = AuditEventBuilder.household_created("h1", "Home", "BRL", uuid4())

        async def scenario():
            await storage.append_event(event)
            return (
                await storage.get_events_by_entity("household", "h1"),
                await storage.get_events_by_entity("goal", "h1"),
            )

        matching, other = asyncio.run(scenario())
        assert matching == [event]
        assert other == []

    def test_recent_events_newest_first(self):
        """Test the recent-events limit and ordering."""
        storage = InMemoryAuditStorage()
        events = [
            AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description=f"Error {i}")
            for i in range(5)
        ]

        async def scenario():
            for event in events:
                await storage.append_event(event)
            return await storage.get_recent_events(limit=2)

        assert asyncio.run(scenario()) == [events[4], events[3]]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
