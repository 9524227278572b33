from decimal import Decimal
from itertools import count

import pytest

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.catalog.constants import BookStatus
from modules.catalog.models import Book, Category
from modules.catalog.repositories.django_repository import (
    BookDjangoRepository,
    CategoryDjangoRepository,
)
from modules.catalog.services import CatalogService
from modules.orders.dtos import OrderDraft, OrderLineDraft, ShippingInfo
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderWorkbook

User = get_user_model()

_isbn = count(1)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_user():
    return User.objects.create_user(
        username="reader",
        password="testpass123",
        first_name="Lena",
        email="reader@example.com",
    )


@pytest.fixture()
def other_customer():
    return User.objects.create_user(username="other-reader", password="testpass123")


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="manager",
        password="testpass123",
        first_name="Store",
        last_name="Manager",
        is_staff=True,
    )


@pytest.fixture()
def customer_client(customer_user):
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def category():
    return Category.objects.create(name="Fiction", description="Novels", sort_order=1)


@pytest.fixture()
def make_book(category):
    """Factory for books; every book gets a distinct ISBN."""

    def _make_book(**overrides):
        data = {
            "title": "The Silent Harbor",
            "author": "Mara Quinn",
            "publisher": "Lighthouse Press",
            "category": category,
            "price": Decimal("50000.00"),
            "stock": 20,
            "isbn": f"978-0-{next(_isbn):06d}",
            "status": BookStatus.ACTIVE,
        }
        data.update(overrides)
        return Book.objects.create(**data)

    return _make_book


@pytest.fixture()
def book(make_book):
    return make_book()


@pytest.fixture()
def book_repository():
    return BookDjangoRepository()


@pytest.fixture()
def catalog_service(book_repository):
    return CatalogService(
        book_repository=book_repository,
        category_repository=CategoryDjangoRepository(),
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_repository():
    return OrderDjangoRepository()


@pytest.fixture()
def workbook(order_repository, book_repository):
    return OrderWorkbook(order_repository=order_repository, book_repository=book_repository)


@pytest.fixture()
def shipping():
    return ShippingInfo(name="Lena Park", phone="0901234567", address="12 Library Street")


@pytest.fixture()
def make_draft(customer_user, shipping):
    def _make_draft(*lines, **overrides):
        data = {
            "customer_id": customer_user.pk,
            "items": [OrderLineDraft(book_id=b.id, quantity=q) for b, q in lines],
            "shipping": shipping,
        }
        data.update(overrides)
        return OrderDraft(**data)

    return _make_draft


@pytest.fixture()
def placed_order(workbook, make_draft, book):
    return workbook.create_order(make_draft((book, 2)))
