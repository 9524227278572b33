"""Performance regression tests: constant query count (N+1 prevention).

Verifies that list and retrieve endpoints execute a bounded number of
SQL queries regardless of the number of records, proving that
``select_related`` / ``prefetch_related`` are correctly applied.
"""

from __future__ import annotations

import pytest

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def books(make_book):
    return [make_book(title=f"Perf Book {i}", stock=1000) for i in range(5)]


@pytest.fixture()
def orders_with_items(workbook, make_draft, books):
    """Create multiple orders each with three lines."""
    return [
        workbook.create_order(make_draft(*[(book, 1) for book in books[:3]]))
        for _ in range(10)
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestBookListQueryCount:
    def test_list_query_count_is_constant(
        self, customer_client, books, django_assert_max_num_queries
    ):
        """GET /api/v1/books/ joins the category instead of one query per book."""
        with django_assert_max_num_queries(2):
            response = customer_client.get("/api/v1/books/")

        assert response.status_code == 200
        assert response.data["count"] == 5


class TestOrderListQueryCount:
    """Verify the order list endpoint runs a constant number of queries."""

    def test_list_query_count_is_constant(
        self, customer_client, orders_with_items, django_assert_max_num_queries
    ):
        """GET /api/v1/orders/ should not increase queries with more records.

        Expected queries (bounded):
        1. SELECT orders with JOIN customer/staff (select_related)
        Total: ~1 query (no prefetch needed for list serializer).
        """
        with django_assert_max_num_queries(3):
            response = customer_client.get("/api/v1/orders/")

        assert response.status_code == 200
        assert response.data["count"] == 10


class TestOrderRetrieveQueryCount:
    """Verify the order retrieve endpoint runs a constant number of queries."""

    def test_retrieve_query_count_is_constant(
        self, customer_client, orders_with_items, django_assert_max_num_queries
    ):
        """GET /api/v1/orders/{id}/ should use bounded queries via prefetch.

        Expected queries (bounded):
        1. SELECT order with JOIN customer/staff (select_related)
        2. SELECT items (prefetch_related)
        3. SELECT status_history (prefetch_related)
        Total: ~3 queries regardless of item count.
        """
        order = orders_with_items[0]

        with django_assert_max_num_queries(4):
            response = customer_client.get(f"/api/v1/orders/{order.id}/")

        assert response.status_code == 200
        assert len(response.data["items"]) == 3
