"""Order search plan for the query compiler."""

from __future__ import annotations

from modules.core.query import QueryBuilder, SortDirection, SortKey
from modules.orders.constants import ORDER_SEARCH_FIELDS, OrderSortOption
from modules.orders.dtos import OrderSearchFilter

SORT_KEYS = {
    OrderSortOption.NEWEST: SortKey("order_date", SortDirection.DESC),
    OrderSortOption.OLDEST: SortKey("order_date", SortDirection.ASC),
    OrderSortOption.TOTAL_DESC: SortKey("final_amount", SortDirection.DESC),
    OrderSortOption.TOTAL_ASC: SortKey("final_amount", SortDirection.ASC),
}


def compile_order_search(search: OrderSearchFilter) -> QueryBuilder:
    return (
        QueryBuilder()
        .contains_any(ORDER_SEARCH_FIELDS, search.query)
        .equals("status", search.status)
        .on_or_after("order_date", search.date_from)
        .on_or_before("order_date", search.date_to)
        .equals("customer_id", search.customer_id)
        .equals("staff_id", search.staff_id)
        .order_by(SORT_KEYS[search.sort])
    )
