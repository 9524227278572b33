"""Catalog API views.

Exposes ``CatalogService`` via DRF ViewSets.  Engine errors and pydantic
validation errors propagate to ``modules.core.api_errors``, which renders
them with the right status code.

Reads, the best-seller and top-rated lists, and ratings are open to any
authenticated user.  Catalog edits, stock operations and the low-stock
report are staff only.  Customers only ever see active books.
"""

from __future__ import annotations

from typing import Any, Dict

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.catalog.constants import (
    DEFAULT_BEST_SELLER_LIMIT,
    DEFAULT_TOP_RATED_LIMIT,
    BookStatus,
)
from modules.catalog.dtos import (
    CreateBookDTO,
    CreateCategoryDTO,
    RatingDTO,
    SearchFilter,
    StockAdjustmentDTO,
    UpdateBookDTO,
    UpdateCategoryDTO,
)
from modules.catalog.exceptions import BookNotFound
from modules.catalog.filters import CategoryFilter
from modules.catalog.models import Book, Category
from modules.catalog.repositories.django_repository import (
    BookDjangoRepository,
    CategoryDjangoRepository,
)
from modules.catalog.serializers import (
    BookSerializer,
    BookSummarySerializer,
    CategorySerializer,
)
from modules.catalog.services import CatalogService
from modules.core.exceptions import InvalidArgument
from modules.core.pagination import StandardResultsSetPagination

SEARCH_PARAMS = {
    "q": "query",
    "category": "category_id",
    "min_price": "min_price",
    "max_price": "max_price",
    "author": "author",
    "publisher": "publisher",
    "status": "status",
    "low_stock": "low_stock_only",
    "out_of_stock": "out_of_stock_only",
    "sort": "sort",
}


def build_catalog_service() -> CatalogService:
    return CatalogService(
        book_repository=BookDjangoRepository(),
        category_repository=CategoryDjangoRepository(),
    )


def int_param(params, name: str, default: int | None = None) -> int | None:
    raw = params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidArgument(f"'{name}' must be an integer.") from None


def search_filter_from_params(params, staff: bool) -> SearchFilter:
    """Map query-string parameters onto a ``SearchFilter``.

    Blank parameters are dropped so they add no clause.  Non-staff callers
    are pinned to active books.
    """
    data: Dict[str, Any] = {}
    for param, field in SEARCH_PARAMS.items():
        value = params.get(param)
        if value not in (None, ""):
            data[field] = value
    if not staff:
        data["status"] = BookStatus.ACTIVE
    return SearchFilter.model_validate(data)


class StaffWritesMixin:
    """Authenticated reads, staff-only everything else."""

    read_actions = {"list", "retrieve"}

    def get_permissions(self):
        if self.action in self.read_actions:
            return [IsAuthenticated()]
        return [IsAdminUser()]


class BookViewSet(StaffWritesMixin, GenericViewSet):
    """Books: search, CRUD, stock adjustment, ratings and inventory reports."""

    read_actions = {"list", "retrieve", "best_sellers", "top_rated", "rate"}
    queryset = Book.objects.alive()
    serializer_class = BookSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends: list = []

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_catalog_service()

    def list(self, request: Request) -> Response:
        """GET /api/v1/books/: compiled search, paginated."""
        search = search_filter_from_params(request.query_params, request.user.is_staff)
        books = self._service.search(search)
        page = self.paginate_queryset(books)
        return self.get_paginated_response(BookSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        book = self._service.get_book(pk)
        if not request.user.is_staff and book.status != BookStatus.ACTIVE:
            raise BookNotFound(f"Book {pk} not found.")
        return Response(BookSerializer(book).data)

    def create(self, request: Request) -> Response:
        book = self._service.create_book(CreateBookDTO.model_validate(request.data))
        return Response(BookSerializer(book).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        book = self._service.update_book(pk, UpdateBookDTO.model_validate(request.data))
        return Response(BookSerializer(book).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        self._service.delete_book(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="stock")
    def stock(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/books/{pk}/stock/  ``{"mode": "set|add|subtract", "quantity": N}``"""
        dto = StockAdjustmentDTO.model_validate(request.data)
        book = self._service.adjust_stock(pk, dto)
        return Response(BookSerializer(book).data)

    @action(detail=False, methods=["get"], url_path="best-sellers")
    def best_sellers(self, request: Request) -> Response:
        limit = int_param(request.query_params, "limit", DEFAULT_BEST_SELLER_LIMIT)
        books = self._service.best_sellers(limit)
        return Response(BookSummarySerializer(books, many=True).data)

    @action(detail=False, methods=["get"], url_path="top-rated")
    def top_rated(self, request: Request) -> Response:
        limit = int_param(request.query_params, "limit", DEFAULT_TOP_RATED_LIMIT)
        books = self._service.top_rated(limit)
        return Response(BookSummarySerializer(books, many=True).data)

    @action(detail=True, methods=["post"], url_path="rating")
    def rate(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/books/{pk}/rating/  ``{"rating": 1..5}``"""
        dto = RatingDTO.model_validate(request.data)
        if not request.user.is_staff:
            book = self._service.get_book(pk)
            if book.status != BookStatus.ACTIVE:
                raise BookNotFound(f"Book {pk} not found.")
        book = self._service.rate_book(pk, dto)
        return Response(BookSummarySerializer(book).data)

    @action(detail=False, methods=["get"], url_path="low-stock")
    def low_stock(self, request: Request) -> Response:
        books = self._service.low_stock(int_param(request.query_params, "threshold"))
        return Response(BookSummarySerializer(books, many=True).data)


class CategoryViewSet(StaffWritesMixin, GenericViewSet):
    """Categories with live book counts."""

    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = CategoryFilter

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_catalog_service()

    def get_queryset(self):
        return self._service.list_categories()

    def list(self, request: Request) -> Response:
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(CategorySerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        return Response(CategorySerializer(self._service.get_category(pk)).data)

    def create(self, request: Request) -> Response:
        category = self._service.create_category(CreateCategoryDTO.model_validate(request.data))
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        category = self._service.update_category(
            pk, UpdateCategoryDTO.model_validate(request.data)
        )
        return Response(CategorySerializer(category).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        self._service.delete_category(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
