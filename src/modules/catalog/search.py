"""Book search plan for the query compiler."""

from __future__ import annotations

from django.conf import settings

from modules.catalog.constants import BOOK_SEARCH_FIELDS, SortOption
from modules.catalog.dtos import SearchFilter
from modules.core.query import QueryBuilder, SortDirection, SortKey

SORT_KEYS = {
    SortOption.NAME_ASC: SortKey("title", SortDirection.ASC),
    SortOption.NAME_DESC: SortKey("title", SortDirection.DESC),
    SortOption.PRICE_ASC: SortKey("price", SortDirection.ASC),
    SortOption.PRICE_DESC: SortKey("price", SortDirection.DESC),
    SortOption.STOCK_ASC: SortKey("stock", SortDirection.ASC),
    SortOption.DATE_DESC: SortKey("created_at", SortDirection.DESC),
}


def compile_book_search(search: SearchFilter) -> QueryBuilder:
    """Translate a ``SearchFilter`` into bound clauses plus one sort key."""
    return (
        QueryBuilder()
        .contains_any(BOOK_SEARCH_FIELDS, search.query)
        .equals("category_id", search.category_id)
        .at_least("price", search.min_price)
        .at_most("price", search.max_price)
        .contains("author", search.author)
        .contains("publisher", search.publisher)
        .equals("status", search.status)
        .flag(search.low_stock_only, "stock__lte", settings.CATALOG_LOW_STOCK_THRESHOLD)
        .flag(search.out_of_stock_only, "stock__exact", 0)
        .order_by(SORT_KEYS[search.sort])
    )
