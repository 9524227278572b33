"""Generic repository contract.

Services depend on these abstractions, never on the Django ORM directly.
Look-ups follow the null-object convention: a missing (or soft-deleted)
row is reported as ``None`` and the service decides which ``NotFound``
subclass to raise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base repository for an aggregate of type ``T`` (``Book``, ``Order``...)."""

    @abstractmethod
    def get_by_id(self, id: UUID | str) -> Optional[T]:
        """Return the entity or ``None`` when it does not exist."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""

    @abstractmethod
    def delete(self, id: UUID | str) -> bool:
        """Remove an entity; ``False`` when there was nothing to remove."""


def parse_id(value: Any) -> Optional[UUID]:
    """Coerce a path/body identifier into a UUID, ``None`` when malformed."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
