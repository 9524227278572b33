"""Catalog service layer (Use Cases).

``CatalogService`` owns book and category storage and is the sole
authority for stock mutation outside of checkout.  Checkout debits go
through the same ``IBookRepository.debit_stock`` primitive from within
the order transaction.

No caching: every call reads committed state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction

from modules.catalog.constants import (
    DEFAULT_BEST_SELLER_LIMIT,
    DEFAULT_TOP_RATED_LIMIT,
    BookStatus,
    StockAdjustmentMode,
)
from modules.catalog.exceptions import (
    BookNotFound,
    BookUnavailable,
    CategoryAlreadyExists,
    CategoryInUse,
    CategoryNotFound,
)
from modules.catalog.models import Book, Category
from modules.core.exceptions import InvalidArgument

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.catalog.dtos import (
        CreateBookDTO,
        CreateCategoryDTO,
        RatingDTO,
        SearchFilter,
        StockAdjustmentDTO,
        UpdateBookDTO,
        UpdateCategoryDTO,
    )
    from modules.catalog.repositories.interfaces import (
        IBookRepository,
        ICategoryRepository,
    )

logger = structlog.get_logger(__name__)


class CatalogService:
    """Application service for catalog use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        book_repository: IBookRepository,
        category_repository: ICategoryRepository,
    ) -> None:
        self._books = book_repository
        self._categories = category_repository

    # ------------------------------------------------------------------
    # Book queries
    # ------------------------------------------------------------------

    def get_book(self, book_id: UUID | str) -> Book:
        """Raises ``BookNotFound`` for missing or soft-deleted books."""
        book = self._books.get_by_id(book_id)
        if not book:
            raise BookNotFound(f"Book {book_id} not found.")
        return book

    def search(self, search: SearchFilter) -> List[Book]:
        """Eager, deterministically ordered search result."""
        return self._books.search(search)

    def best_sellers(self, limit: int = DEFAULT_BEST_SELLER_LIMIT) -> List[Book]:
        if limit < 1:
            raise InvalidArgument("limit must be at least 1.")
        return self._books.best_sellers(limit)

    def low_stock(self, threshold: Optional[int] = None) -> List[Book]:
        if threshold is None:
            threshold = settings.CATALOG_LOW_STOCK_THRESHOLD
        if threshold < 0:
            raise InvalidArgument("threshold must not be negative.")
        return self._books.low_stock(threshold)

    def top_rated(self, limit: int = DEFAULT_TOP_RATED_LIMIT) -> List[Book]:
        """Active books rated at least 4.00 over at least five reviews."""
        if limit < 1:
            raise InvalidArgument("limit must be at least 1.")
        return self._books.top_rated(limit)

    # ------------------------------------------------------------------
    # Book commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_book(self, dto: CreateBookDTO) -> Book:
        category = self._get_category(dto.category_id)
        book = Book(category=category, **dto.model_dump(exclude={"category_id"}))
        book = self._books.save(book)
        logger.info("book.created", book_id=str(book.id), title=book.title)
        return book

    @transaction.atomic
    def update_book(self, book_id: UUID | str, dto: UpdateBookDTO) -> Book:
        """Apply a partial edit.  Only the changed columns are written so a
        concurrent stock debit is never overwritten by a stale value."""
        book = self.get_book(book_id)
        changes = dto.changes()
        if "category_id" in changes:
            book.category = self._get_category(changes.pop("category_id"))
            changes["category"] = book.category
        for field, value in changes.items():
            setattr(book, field, value)
        if not changes:
            return book
        book = self._books.save(book, fields=changes.keys())
        logger.info("book.updated", book_id=str(book.id), fields=sorted(changes))
        return book

    @transaction.atomic
    def delete_book(self, book_id: UUID | str) -> None:
        if not self._books.delete(book_id):
            raise BookNotFound(f"Book {book_id} not found.")
        logger.info("book.deleted", book_id=str(book_id))

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def set_stock(self, book_id: UUID | str, new_stock: int) -> Book:
        """Administrative override; ``InvalidArgument`` when negative."""
        return self._books.set_stock(book_id, new_stock)

    @transaction.atomic
    def adjust_stock(self, book_id: UUID | str, dto: StockAdjustmentDTO) -> Book:
        """Staff inventory adjustment.

        ``set`` overrides the counter, ``add`` receives units and
        ``subtract`` removes them.  Subtracting more than is on hand raises
        ``InsufficientStock``; the value is never clamped.
        """
        log = logger.bind(book_id=str(book_id), mode=dto.mode.value, quantity=dto.quantity)
        if dto.mode == StockAdjustmentMode.SET:
            book = self._books.set_stock(book_id, dto.quantity)
        elif dto.quantity == 0:
            book = self.get_book(book_id)
        elif dto.mode == StockAdjustmentMode.ADD:
            book = self._books.add_stock(book_id, dto.quantity)
        else:
            book = self._books.subtract_stock(book_id, dto.quantity)
        log.info("book.stock_adjusted", stock=book.stock)
        return book

    def debit_stock(self, book_id: UUID, quantity: int) -> None:
        """Checkout debit; see ``IBookRepository.debit_stock``."""
        self._books.debit_stock(book_id, quantity)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def rate_book(self, book_id: UUID | str, dto: RatingDTO) -> Book:
        """Record one review score.  Only active books can be rated."""
        book = self.get_book(book_id)
        if book.status != BookStatus.ACTIVE:
            raise BookUnavailable(f"Book {book.title!r} cannot be rated.")
        return self._books.record_rating(book.id, dto.rating)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def list_categories(self) -> QuerySet[Category]:
        return self._categories.list_with_counts()

    def get_category(self, category_id: UUID | str) -> Category:
        return self._get_category(category_id)

    @transaction.atomic
    def create_category(self, dto: CreateCategoryDTO) -> Category:
        if self._categories.get_by_name(dto.name):
            raise CategoryAlreadyExists(f"Category '{dto.name}' already exists.")
        category = Category(**dto.model_dump())
        try:
            with transaction.atomic():
                category = self._categories.save(category)
        except IntegrityError as exc:
            raise CategoryAlreadyExists(f"Category '{dto.name}' already exists.") from exc
        logger.info("category.created", category_id=str(category.id))
        return category

    @transaction.atomic
    def update_category(self, category_id: UUID | str, dto: UpdateCategoryDTO) -> Category:
        category = self._get_category(category_id)
        changes = dto.changes()
        if "name" in changes:
            existing = self._categories.get_by_name(changes["name"])
            if existing and existing.id != category.id:
                raise CategoryAlreadyExists(f"Category '{changes['name']}' already exists.")
        for field, value in changes.items():
            setattr(category, field, value)
        category = self._categories.save(category)
        logger.info("category.updated", category_id=str(category.id), fields=sorted(changes))
        return self._get_category(category.id)

    @transaction.atomic
    def delete_category(self, category_id: UUID | str) -> None:
        category = self._get_category(category_id)
        if self._categories.is_referenced(category.id):
            logger.warning("category.delete_rejected", category_id=str(category.id))
            raise CategoryInUse(
                f"Category '{category.name}' still has books and cannot be deleted."
            )
        self._categories.delete(category.id)

    def _get_category(self, category_id: UUID | str) -> Category:
        category = self._categories.get_by_id(category_id)
        if not category:
            raise CategoryNotFound(f"Category {category_id} not found.")
        return category
