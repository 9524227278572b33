"""Catalog repository interfaces.

``IBookRepository`` is the only way to mutate stock.  Its stock primitives
are the exception to the null-object convention: they raise
``BookNotFound`` / ``InsufficientStock`` because callers batch them inside
a larger transaction and must abort it on failure.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence
from uuid import UUID

from django.db.models import QuerySet

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.dtos import SearchFilter
    from modules.catalog.models import Book, Category


class IBookRepository(IRepository["Book"]):
    @abstractmethod
    def save(self, entity: Book, fields: Optional[Iterable[str]] = None) -> Book:
        """Persist a book; ``fields`` limits the UPDATE to the changed columns."""

    @abstractmethod
    def get_many(self, ids: Iterable[UUID]) -> List[Book]:
        """Alive books among ``ids``; unknown ids are simply absent."""

    @abstractmethod
    def lock_for_checkout(self, ids: Sequence[UUID]) -> List[Book]:
        """Lock alive books (``SELECT FOR UPDATE``) in ascending id order."""

    @abstractmethod
    def debit_stock(self, book_id: UUID, quantity: int) -> None:
        """Conditionally decrement stock and increment the sold count."""

    @abstractmethod
    def set_stock(self, book_id: UUID, new_stock: int) -> Book:
        """Administrative override of the stock counter."""

    @abstractmethod
    def add_stock(self, book_id: UUID, quantity: int) -> Book:
        """Receive ``quantity`` units into stock."""

    @abstractmethod
    def subtract_stock(self, book_id: UUID, quantity: int) -> Book:
        """Remove ``quantity`` units; never clamps at zero."""

    @abstractmethod
    def restock(self, book_id: UUID, quantity: int) -> None:
        """Return sold units to stock (reverse of ``debit_stock``)."""

    @abstractmethod
    def search(self, search: SearchFilter) -> List[Book]:
        """Run a compiled book search and materialize the result."""

    @abstractmethod
    def best_sellers(self, limit: int) -> List[Book]:
        """Active books with sales, best selling first."""

    @abstractmethod
    def low_stock(self, threshold: int) -> List[Book]:
        """Active books at or below ``threshold`` units, scarcest first."""

    @abstractmethod
    def top_rated(self, limit: int) -> List[Book]:
        """Active, well-reviewed books, highest rating first."""

    @abstractmethod
    def record_rating(self, book_id: UUID, stars: int) -> Book:
        """Fold one review score into ``rating`` and bump ``review_count``."""


class ICategoryRepository(IRepository["Category"]):
    @abstractmethod
    def list_with_counts(self) -> QuerySet[Category]:
        """Categories annotated with ``book_count`` (alive books only)."""

    @abstractmethod
    def get_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive look-up by name."""

    @abstractmethod
    def is_referenced(self, id: UUID) -> bool:
        """Whether any book (alive or soft-deleted) points at the category."""
