"""Integration tests for standardized pagination."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.catalog.models import Book

pytestmark = pytest.mark.integration

BOOKS_URL = "/api/v1/books/"


@pytest.fixture()
def book_batch(category):
    """Create a batch of books for pagination tests."""
    books = []
    for idx in range(1, 121):
        books.append(
            Book(
                title=f"Volume {idx:03d}",
                author="Series Author",
                category=category,
                price=Decimal("9900.00"),
                stock=10,
                isbn=f"978-1-{idx:06d}",
            )
        )
    Book.objects.bulk_create(books)
    return books


class TestPagination:
    def test_default_page_size(self, customer_client, book_batch):
        response = customer_client.get(BOOKS_URL)
        assert response.status_code == 200
        assert response.data["count"] == 120
        assert len(response.data["results"]) == 20
        assert response.data["next"] is not None
        assert response.data["previous"] is None

    def test_custom_page_size(self, customer_client, book_batch):
        response = customer_client.get(BOOKS_URL, {"page_size": 50})
        assert response.status_code == 200
        assert len(response.data["results"]) == 50
        assert response.data["next"] is not None

    def test_max_page_size(self, customer_client, book_batch):
        response = customer_client.get(BOOKS_URL, {"page_size": 1000})
        assert response.status_code == 200
        assert len(response.data["results"]) == 100
        assert response.data["next"] is not None

    def test_pages_do_not_overlap(self, customer_client, book_batch):
        first = customer_client.get(BOOKS_URL, {"sort": "name_asc"})
        second = customer_client.get(BOOKS_URL, {"sort": "name_asc", "page": 2})

        first_ids = {b["id"] for b in first.data["results"]}
        second_ids = {b["id"] for b in second.data["results"]}
        assert first_ids.isdisjoint(second_ids)

    def test_page_past_the_end_returns_404(self, customer_client, book_batch):
        response = customer_client.get(BOOKS_URL, {"page": 99})
        assert response.status_code == 404
