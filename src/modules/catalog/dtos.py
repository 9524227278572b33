"""Catalog DTOs for the Service Layer.

Pydantic v2, immutable (``frozen=True``).  These are the contracts between
the API layer and ``CatalogService``:

- ``SearchFilter``: declarative book search (compiled by ``catalog.search``).
- ``CreateBookDTO`` / ``UpdateBookDTO``: catalog edits.
- ``StockAdjustmentDTO``: staff inventory dialog (set / add / subtract).
- ``RatingDTO``: a review score folded into the book's average.
- ``CreateCategoryDTO`` / ``UpdateCategoryDTO``.

Status inputs are typed with ``BookStatus``, which has no out-of-stock
member, so a client can never write the derived display status.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.catalog.constants import (
    BookStatus,
    CategoryStatus,
    SortOption,
    StockAdjustmentMode,
)

# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchFilter(BaseModel):
    """Book search criteria.  Every field is optional; defaults add no clause."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    category_id: Optional[UUID] = None
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    author: str = ""
    publisher: str = ""
    status: Optional[BookStatus] = None
    low_stock_only: bool = False
    out_of_stock_only: bool = False
    sort: SortOption = SortOption.NAME_ASC

    @model_validator(mode="after")
    def price_range_must_be_ordered(self):
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price.")
        return self

    def has_active_filters(self) -> bool:
        return bool(
            self.query.strip()
            or self.category_id
            or self.min_price is not None
            or self.max_price is not None
            or self.author.strip()
            or self.publisher.strip()
            or self.status
            or self.low_stock_only
            or self.out_of_stock_only
        )


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------


class CreateBookDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    category_id: UUID
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    publisher: str = ""
    description: str = ""
    image: str = ""
    isbn: str = ""
    pages: int = Field(default=0, ge=0)
    language: str = ""
    publication_year: Optional[int] = Field(default=None, ge=0)
    status: BookStatus = BookStatus.ACTIVE

    @field_validator("title", "author")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank.")
        return v


class UpdateBookDTO(BaseModel):
    """Partial catalog edit.  Stock is changed only through stock operations."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    author: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category_id: Optional[UUID] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    publisher: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    isbn: Optional[str] = None
    pages: Optional[int] = Field(default=None, ge=0)
    language: Optional[str] = None
    publication_year: Optional[int] = Field(default=None, ge=0)
    status: Optional[BookStatus] = None

    def changes(self) -> dict:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class StockAdjustmentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: StockAdjustmentMode = StockAdjustmentMode.SET
    quantity: int = Field(ge=0)


class RatingDTO(BaseModel):
    """One customer review score, 1 to 5 stars."""

    model_config = ConfigDict(frozen=True)

    rating: int = Field(ge=1, le=5)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class CreateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=120)
    description: str = ""
    icon: str = ""
    sort_order: int = 0
    status: CategoryStatus = CategoryStatus.ACTIVE

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category name must not be blank.")
        return v


class UpdateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    icon: Optional[str] = None
    sort_order: Optional[int] = None
    status: Optional[CategoryStatus] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)
