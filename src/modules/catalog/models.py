"""Category and Book models.

Rules enforced at the storage layer:
- ``books.stock >= 0`` and ``books.price >= 0`` via check constraints, so no
  code path (including raw ``UPDATE``) can persist a negative value.
- Category names are unique.
- A book referenced by an order line item cannot be hard-deleted
  (``PROTECT`` on ``OrderItem.book``); a category referenced by any book
  cannot be deleted either.
- Books are soft-deleted; ``Book.objects.alive()`` is what search, cart and
  checkout see.

``status`` only ever stores ``active``/``inactive``.  Whether a book is out
of stock is derived from ``stock`` in ``display_status``.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.catalog.constants import (
    MEDIUM_STOCK_CEILING,
    BookDisplayStatus,
    BookStatus,
    CategoryStatus,
    StockLevel,
)
from modules.core.fields import StrictChoiceField
from modules.core.models import BaseModel, SoftDeleteModel


class Category(BaseModel):
    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True, default="")
    icon = models.CharField(max_length=255, blank=True, default="")
    sort_order = models.IntegerField(default=0)
    status = StrictChoiceField(enum=CategoryStatus, default=CategoryStatus.ACTIVE)

    class Meta:
        db_table = "categories"
        ordering = ["sort_order", "name"]
        verbose_name_plural = "categories"

    def __str__(self) -> str:
        return self.name


class Book(SoftDeleteModel):
    """A sellable title and its inventory counter."""

    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255)
    publisher = models.CharField(max_length=255, blank=True, default="")
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.PROTECT,
        related_name="books",
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    description = models.TextField(blank=True, default="")
    image = models.CharField(max_length=500, blank=True, default="")
    isbn = models.CharField(max_length=20, blank=True, default="")
    pages = models.PositiveIntegerField(default=0)
    language = models.CharField(max_length=50, blank=True, default="")
    publication_year = models.PositiveIntegerField(null=True, blank=True)
    rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    review_count = models.PositiveIntegerField(default=0)
    sold_count = models.PositiveIntegerField(default=0)
    status = StrictChoiceField(enum=BookStatus, default=BookStatus.ACTIVE)

    class Meta:
        db_table = "books"
        ordering = ["title", "id"]
        indexes = [
            models.Index(fields=["status"], name="books_status_idx"),
            models.Index(fields=["category", "status"], name="books_category_status_idx"),
            models.Index(fields=["-sold_count"], name="books_sold_count_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="books_stock_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="books_price_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock <= 0

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= settings.CATALOG_LOW_STOCK_THRESHOLD

    @property
    def is_available(self) -> bool:
        """Sellable right now: alive, active and with stock left."""
        return not self.is_deleted and self.status == BookStatus.ACTIVE and self.stock > 0

    @property
    def display_status(self) -> BookDisplayStatus:
        if self.status == BookStatus.INACTIVE:
            return BookDisplayStatus.INACTIVE
        if self.is_out_of_stock:
            return BookDisplayStatus.OUT_OF_STOCK
        return BookDisplayStatus.ACTIVE

    @property
    def stock_level(self) -> StockLevel:
        if self.stock <= 0:
            return StockLevel.OUT_OF_STOCK
        if self.is_low_stock:
            return StockLevel.LOW
        if self.stock <= MEDIUM_STOCK_CEILING:
            return StockLevel.MEDIUM
        return StockLevel.HIGH

    def __str__(self) -> str:
        return f"{self.title} - {self.author}"
