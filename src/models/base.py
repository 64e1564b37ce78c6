"""
Base classes shared by every domain model.

Value objects are frozen pydantic models.

Entities freeze their identity fields too; everything that can change after
construction lives in private attributes and is only reachable through the
entity's mutators. Collections are handed out as copies so callers cannot
change internal state behind the entity's back.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from src.models.errors import InvalidInputError
from src.utils.datetime_utils import ensure_utc, utcnow


def new_id() -> str:
    """Random collision-resistant identifier for a new entity."""
    return str(uuid4())


def require_text(value: Optional[str], label: str) -> str:
    """Strip a required string, failing when nothing is left."""
    if value is None or not value.strip():
        raise InvalidInputError(f"{label} cannot be empty")
    return value.strip()


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


class ValueObject(BaseModel):
    """Immutable value type compared by its fields."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class Entity(BaseModel):
    """
    Base for entities with identity.

    Subclasses declare identity fields (frozen) and keep mutable state in
    private attributes.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique identifier, generated when not supplied"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the entity was created (UTC)"
    )

    _updated_at: datetime = PrivateAttr(default_factory=utcnow)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    def _touch(self) -> None:
        self._updated_at = utcnow()


class TaggedEntity(Entity):
    """Entity carrying free-form tags and a metadata dictionary."""

    _tags: list[str] = PrivateAttr(default_factory=list)
    _metadata: Optional[dict[str, Any]] = PrivateAttr(default=None)

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    @property
    def metadata(self) -> Optional[dict[str, Any]]:
        return dict(self._metadata) if self._metadata is not None else None

    def add_tag(self, tag: str) -> None:
        """Add a lower-cased tag; adding an existing tag is a no-op."""
        normalized = normalize_tag(require_text(tag, "Tag"))
        if normalized not in self._tags:
            self._tags.append(normalized)
            self._touch()

    def remove_tag(self, tag: str) -> None:
        normalized = normalize_tag(tag)
        if normalized in self._tags:
            self._tags.remove(normalized)
            self._touch()

    def update_metadata(self, metadata: dict[str, Any]) -> None:
        self._metadata = dict(metadata)
        self._touch()


__all__ = [
    "Entity",
    "TaggedEntity",
    "ValueObject",
    "new_id",
    "normalize_tag",
    "require_text",
]
