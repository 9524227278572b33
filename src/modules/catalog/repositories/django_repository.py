"""Django ORM implementation of the catalog repositories.

Stock mutations are single conditional ``UPDATE`` statements built from
``F`` expressions, so the check and the write are one atomic step at the
database and concurrent checkouts can never drive stock below zero.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F, Q, QuerySet
from django.db.models.functions import Greatest
from django.utils import timezone

from modules.catalog.constants import TOP_RATED_MIN_RATING, TOP_RATED_MIN_REVIEWS, BookStatus
from modules.catalog.dtos import SearchFilter
from modules.catalog.exceptions import BookNotFound
from modules.catalog.models import Book, Category
from modules.catalog.repositories.interfaces import ICategoryRepository, IBookRepository
from modules.catalog.search import compile_book_search
from modules.core.exceptions import InsufficientStock, InvalidArgument, TransactionRequired

logger = structlog.get_logger(__name__)

RATING_STEP = Decimal("0.01")


def _require_positive(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise InvalidArgument(f"Quantity must be a positive integer, got {quantity!r}.")


class BookDjangoRepository(IBookRepository):
    """Concrete Book repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, id: UUID | str) -> Optional[Book]:
        """Alive book by primary key; ``None`` for missing or malformed ids."""
        try:
            return Book.objects.alive().select_related("category").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[UUID]) -> List[Book]:
        return list(Book.objects.alive().select_related("category").filter(id__in=list(ids)))

    def lock_for_checkout(self, ids: Sequence[UUID]) -> List[Book]:
        return list(
            Book.objects.alive()
            .select_for_update()
            .filter(id__in=list(ids))
            .order_by("id")
        )

    def search(self, search: SearchFilter) -> List[Book]:
        builder = compile_book_search(search)
        books = builder.fetch(Book.objects.alive().select_related("category"))
        logger.info(
            "catalog.search_executed",
            clause_count=len(builder),
            sort=search.sort.value,
            result_count=len(books),
        )
        return books

    def best_sellers(self, limit: int) -> List[Book]:
        return list(
            Book.objects.alive()
            .select_related("category")
            .filter(status=BookStatus.ACTIVE, sold_count__gt=0)
            .order_by("-sold_count", "id")[:limit]
        )

    def low_stock(self, threshold: int) -> List[Book]:
        return list(
            Book.objects.alive()
            .select_related("category")
            .filter(status=BookStatus.ACTIVE, stock__lte=threshold)
            .order_by("stock", "id")
        )

    def top_rated(self, limit: int) -> List[Book]:
        return list(
            Book.objects.alive()
            .select_related("category")
            .filter(
                status=BookStatus.ACTIVE,
                rating__gte=TOP_RATED_MIN_RATING,
                review_count__gte=TOP_RATED_MIN_REVIEWS,
            )
            .order_by("-rating", "-review_count", "id")[:limit]
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Book, fields: Optional[Iterable[str]] = None) -> Book:
        if fields is not None and not entity._state.adding:
            entity.save(update_fields=list(fields))
        else:
            entity.save()
        logger.info("book.saved", book_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, id: UUID | str) -> bool:
        book = self.get_by_id(id)
        if not book:
            return False
        book.delete()
        logger.info("book.soft_deleted", book_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Stock primitives
    # ------------------------------------------------------------------

    def debit_stock(self, book_id: UUID, quantity: int) -> None:
        """``UPDATE books SET stock = stock - q, sold_count = sold_count + q
        WHERE id = ? AND stock >= q``.

        Opens no transaction of its own and refuses to run outside one, so
        the debit always commits or rolls back with the order that caused it.

        Raises:
            InvalidArgument: ``quantity`` is not a positive integer.
            TransactionRequired: no enclosing ``transaction.atomic`` block.
            BookNotFound: the book is missing or soft-deleted.
            InsufficientStock: fewer than ``quantity`` units left; stock unchanged.
        """
        _require_positive(quantity)
        if not transaction.get_connection().in_atomic_block:
            raise TransactionRequired("debit_stock must run inside an open transaction.")

        updated = (
            Book.objects.alive()
            .filter(id=book_id, stock__gte=quantity)
            .update(
                stock=F("stock") - quantity,
                sold_count=F("sold_count") + quantity,
                updated_at=timezone.now(),
            )
        )
        log = logger.bind(book_id=str(book_id), quantity=quantity)
        if updated:
            log.info("book.stock_debited")
            return

        current = Book.objects.alive().filter(id=book_id).values_list("stock", flat=True).first()
        if current is None:
            raise BookNotFound(f"Book {book_id} not found.")
        log.warning("book.stock_debit_rejected", available=current)
        raise InsufficientStock(
            f"Book {book_id}: requested {quantity}, available {current}."
        )

    def set_stock(self, book_id: UUID, new_stock: int) -> Book:
        if not isinstance(new_stock, int) or isinstance(new_stock, bool) or new_stock < 0:
            raise InvalidArgument(f"Stock must be a non-negative integer, got {new_stock!r}.")
        updated = (
            Book.objects.alive()
            .filter(id=book_id)
            .update(stock=new_stock, updated_at=timezone.now())
        )
        if not updated:
            raise BookNotFound(f"Book {book_id} not found.")
        logger.info("book.stock_set", book_id=str(book_id), stock=new_stock)
        return self.get_by_id(book_id)

    def add_stock(self, book_id: UUID, quantity: int) -> Book:
        _require_positive(quantity)
        updated = (
            Book.objects.alive()
            .filter(id=book_id)
            .update(stock=F("stock") + quantity, updated_at=timezone.now())
        )
        if not updated:
            raise BookNotFound(f"Book {book_id} not found.")
        logger.info("book.stock_added", book_id=str(book_id), quantity=quantity)
        return self.get_by_id(book_id)

    def subtract_stock(self, book_id: UUID, quantity: int) -> Book:
        _require_positive(quantity)
        updated = (
            Book.objects.alive()
            .filter(id=book_id, stock__gte=quantity)
            .update(stock=F("stock") - quantity, updated_at=timezone.now())
        )
        if not updated:
            book = self.get_by_id(book_id)
            if book is None:
                raise BookNotFound(f"Book {book_id} not found.")
            raise InsufficientStock(
                f"Book {book_id}: cannot remove {quantity}, only {book.stock} in stock."
            )
        logger.info("book.stock_subtracted", book_id=str(book_id), quantity=quantity)
        return self.get_by_id(book_id)

    @transaction.atomic
    def record_rating(self, book_id: UUID, stars: int) -> Book:
        """Running average over all reviews, rounded to two places.

        The row is locked so two concurrent reviews cannot both read the
        same ``review_count``.

        Raises:
            BookNotFound: the book is missing or soft-deleted.
        """
        current = (
            Book.objects.alive()
            .select_for_update()
            .filter(id=book_id)
            .values("rating", "review_count")
            .first()
        )
        if current is None:
            raise BookNotFound(f"Book {book_id} not found.")
        count = current["review_count"] + 1
        total = current["rating"] * current["review_count"] + stars
        rating = (total / count).quantize(RATING_STEP, rounding=ROUND_HALF_UP)
        Book.objects.filter(id=book_id).update(
            rating=rating, review_count=count, updated_at=timezone.now()
        )
        logger.info("book.rated", book_id=str(book_id), stars=stars, rating=str(rating))
        return self.get_by_id(book_id)

    def restock(self, book_id: UUID, quantity: int) -> None:
        """Reverse a debit.  Soft-deleted books are re-credited as well."""
        _require_positive(quantity)
        if not transaction.get_connection().in_atomic_block:
            raise TransactionRequired("restock must run inside an open transaction.")
        updated = Book.objects.filter(id=book_id).update(
            stock=F("stock") + quantity,
            sold_count=Greatest(F("sold_count") - quantity, 0),
            updated_at=timezone.now(),
        )
        if not updated:
            raise BookNotFound(f"Book {book_id} not found.")
        logger.info("book.restocked", book_id=str(book_id), quantity=quantity)


class CategoryDjangoRepository(ICategoryRepository):
    """Concrete Category repository backed by Django ORM."""

    def _annotated(self):
        return Category.objects.annotate(
            book_count=Count("books", filter=Q(books__deleted_at__isnull=True))
        )

    def get_by_id(self, id: UUID | str) -> Optional[Category]:
        try:
            return self._annotated().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_name(self, name: str) -> Optional[Category]:
        return Category.objects.filter(name__iexact=name.strip()).first()

    def list_with_counts(self) -> QuerySet[Category]:
        """Annotated queryset, left lazy so django-filter can narrow it."""
        return self._annotated().order_by("sort_order", "name", "id")

    def is_referenced(self, id: UUID) -> bool:
        return Book.objects.filter(category_id=id).exists()

    @transaction.atomic
    def save(self, entity: Category) -> Category:
        entity.save()
        logger.info("category.saved", category_id=str(entity.id), name=entity.name)
        return entity

    @transaction.atomic
    def delete(self, id: UUID | str) -> bool:
        category = self.get_by_id(id)
        if not category:
            return False
        category.delete()
        logger.info("category.deleted", category_id=str(id))
        return True
