"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    HouseholdRepositoryInterface,
    InMemoryAuditStorage,
    InMemoryHouseholdRepository,
    RepositoryInterface,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "HouseholdRepositoryInterface",
    "InMemoryAuditStorage",
    "InMemoryHouseholdRepository",
    "RepositoryInterface",
    "StorageError",
]
