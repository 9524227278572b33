"""Integration tests for the catalog API.

Covers:
- Book search over HTTP (query string -> compiled search).
- Customers only see active books.
- Best-seller and top-rated lists and ratings for customers.
- Staff-only catalog edits, stock adjustment and low-stock report.
- Category CRUD with book counts.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.catalog.constants import BookStatus
from modules.catalog.models import Book

pytestmark = pytest.mark.integration

BOOKS_URL = "/api/v1/books/"
CATEGORIES_URL = "/api/v1/categories/"


def _book_url(book_id):
    return f"{BOOKS_URL}{book_id}/"


# ===========================================================================
# Reads
# ===========================================================================


class TestBookReads:
    def test_requires_authentication(self, api_client):
        assert api_client.get(BOOKS_URL).status_code == 401

    def test_search_by_query_and_price(self, customer_client, make_book):
        match = make_book(title="Winter Garden", price=Decimal("30000.00"))
        make_book(title="Winter Sea", price=Decimal("90000.00"))
        make_book(title="Summer", price=Decimal("10000.00"))

        response = customer_client.get(BOOKS_URL, {"q": "winter", "max_price": "50000"})

        assert response.status_code == 200
        assert [b["id"] for b in response.data["results"]] == [str(match.id)]

    def test_sort_param(self, customer_client, make_book):
        make_book(title="Cheap", price=Decimal("1.00"))
        make_book(title="Dear", price=Decimal("9.00"))
        response = customer_client.get(BOOKS_URL, {"sort": "price_desc"})
        assert [b["title"] for b in response.data["results"]] == ["Dear", "Cheap"]

    def test_customers_never_see_inactive_books(self, customer_client, make_book):
        hidden = make_book(title="Hidden", status=BookStatus.INACTIVE)
        make_book(title="Shown")

        response = customer_client.get(BOOKS_URL, {"status": "inactive"})

        assert [b["title"] for b in response.data["results"]] == ["Shown"]
        assert customer_client.get(_book_url(hidden.id)).status_code == 404

    def test_staff_can_filter_inactive_books(self, staff_client, make_book):
        make_book(title="Hidden", status=BookStatus.INACTIVE)
        make_book(title="Shown")
        response = staff_client.get(BOOKS_URL, {"status": "inactive"})
        assert [b["title"] for b in response.data["results"]] == ["Hidden"]

    def test_retrieve_renders_derived_state(self, customer_client, make_book):
        book = make_book(stock=0)
        data = customer_client.get(_book_url(book.id)).data
        assert data["status"] == "active"
        assert data["display_status"] == "out_of_stock"
        assert data["stock_level"] == "out_of_stock"
        assert data["price"] == "50000.00"

    def test_unknown_or_malformed_id(self, customer_client):
        assert customer_client.get(_book_url(uuid4())).status_code == 404
        assert customer_client.get(_book_url("not-a-uuid")).status_code == 404

    def test_invalid_sort_is_rejected(self, customer_client):
        response = customer_client.get(BOOKS_URL, {"sort": "random"})
        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "sort"

    def test_best_sellers(self, customer_client, make_book):
        make_book(title="Popular", sold_count=12)
        make_book(title="Unsold")
        response = customer_client.get(f"{BOOKS_URL}best-sellers/", {"limit": "5"})
        assert response.status_code == 200
        assert [b["title"] for b in response.data] == ["Popular"]

    def test_top_rated(self, customer_client, make_book):
        make_book(title="Loved", rating=Decimal("4.70"), review_count=12)
        make_book(title="Unreviewed")
        response = customer_client.get(f"{BOOKS_URL}top-rated/")
        assert response.status_code == 200
        assert [b["title"] for b in response.data] == ["Loved"]
        assert response.data[0]["rating"] == "4.70"
        assert response.data[0]["review_count"] == 12

    def test_top_rated_rejects_bad_limit(self, customer_client):
        response = customer_client.get(f"{BOOKS_URL}top-rated/", {"limit": "many"})
        assert response.status_code == 400


class TestBookRatings:
    def test_customer_rates_a_book(self, customer_client, book):
        response = customer_client.post(
            f"{_book_url(book.id)}rating/", {"rating": 4}, format="json"
        )
        assert response.status_code == 200
        assert response.data["rating"] == "4.00"
        assert response.data["review_count"] == 1

    def test_rating_out_of_range_is_rejected(self, customer_client, book):
        response = customer_client.post(
            f"{_book_url(book.id)}rating/", {"rating": 6}, format="json"
        )
        assert response.status_code == 400
        book.refresh_from_db()
        assert book.review_count == 0

    def test_inactive_book_is_hidden_from_customers(self, customer_client, make_book):
        hidden = make_book(status=BookStatus.INACTIVE)
        response = customer_client.post(
            f"{_book_url(hidden.id)}rating/", {"rating": 5}, format="json"
        )
        assert response.status_code == 404

    def test_anonymous_cannot_rate(self, api_client, book):
        response = api_client.post(f"{_book_url(book.id)}rating/", {"rating": 5}, format="json")
        assert response.status_code == 401


# ===========================================================================
# Staff writes
# ===========================================================================


class TestBookWrites:
    def test_customer_cannot_create(self, customer_client, category):
        response = customer_client.post(
            BOOKS_URL,
            {"title": "X", "author": "Y", "category_id": str(category.id), "price": "1.00"},
            format="json",
        )
        assert response.status_code == 403

    def test_staff_creates_book(self, staff_client, category):
        response = staff_client.post(
            BOOKS_URL,
            {
                "title": "River Notes",
                "author": "Kim Ha",
                "category_id": str(category.id),
                "price": "88000.00",
                "stock": 12,
            },
            format="json",
        )
        assert response.status_code == 201
        assert response.data["stock"] == 12
        assert response.data["category_name"] == "Fiction"

    def test_create_rejects_negative_price(self, staff_client, category):
        response = staff_client.post(
            BOOKS_URL,
            {"title": "X", "author": "Y", "category_id": str(category.id), "price": "-1"},
            format="json",
        )
        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "price"

    def test_partial_update(self, staff_client, book):
        response = staff_client.patch(_book_url(book.id), {"price": "42000.00"}, format="json")
        assert response.status_code == 200
        assert response.data["price"] == "42000.00"

    def test_stock_cannot_be_patched_directly(self, staff_client, book):
        staff_client.patch(_book_url(book.id), {"stock": 999}, format="json")
        book.refresh_from_db()
        assert book.stock == 20

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"mode": "set", "quantity": 7}, 7),
            ({"mode": "add", "quantity": 5}, 25),
            ({"mode": "subtract", "quantity": 20}, 0),
        ],
    )
    def test_adjust_stock(self, staff_client, book, payload, expected):
        response = staff_client.patch(f"{_book_url(book.id)}stock/", payload, format="json")
        assert response.status_code == 200
        assert response.data["stock"] == expected

    def test_subtract_beyond_stock_is_conflict(self, staff_client, book):
        response = staff_client.patch(
            f"{_book_url(book.id)}stock/", {"mode": "subtract", "quantity": 21}, format="json"
        )
        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "insufficient_stock"

    def test_delete_is_soft(self, staff_client, book):
        assert staff_client.delete(_book_url(book.id)).status_code == 204
        assert Book.objects.dead().filter(pk=book.pk).exists()
        assert staff_client.get(_book_url(book.id)).status_code == 404

    def test_low_stock_report_is_staff_only(self, customer_client, staff_client, make_book):
        make_book(title="Nearly Gone", stock=1)
        make_book(title="Retired", stock=1, status=BookStatus.INACTIVE)
        assert customer_client.get(f"{BOOKS_URL}low-stock/").status_code == 403
        response = staff_client.get(f"{BOOKS_URL}low-stock/", {"threshold": "2"})
        assert [b["title"] for b in response.data] == ["Nearly Gone"]


# ===========================================================================
# Categories
# ===========================================================================


class TestCategories:
    def test_list_with_book_counts(self, customer_client, make_book, category):
        make_book()
        make_book()
        response = customer_client.get(CATEGORIES_URL)
        assert response.status_code == 200
        assert response.data["results"][0]["book_count"] == 2

    def test_duplicate_name(self, staff_client, category):
        response = staff_client.post(CATEGORIES_URL, {"name": "FICTION"}, format="json")
        assert response.status_code == 400
        assert response.data["errors"][0]["code"] == "category_already_exists"

    def test_delete_category_in_use(self, staff_client, book):
        response = staff_client.delete(f"{CATEGORIES_URL}{book.category_id}/")
        assert response.status_code == 400
        assert response.data["errors"][0]["code"] == "category_in_use"
