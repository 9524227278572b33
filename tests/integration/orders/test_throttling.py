"""Integration tests for throttling on the order API.

The test settings disable throttles globally, so the scoped throttle is
switched back on for ``OrderViewSet`` with small rates.
"""

from __future__ import annotations

import pytest
from django.core.cache import cache
from rest_framework.throttling import ScopedRateThrottle

from modules.orders.views import OrderViewSet

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


@pytest.fixture(autouse=True)
def scoped_throttle(monkeypatch):
    cache.clear()
    monkeypatch.setattr(OrderViewSet, "throttle_classes", [ScopedRateThrottle])
    monkeypatch.setattr(
        ScopedRateThrottle,
        "THROTTLE_RATES",
        {"checkout": "3/minute", "order_listing": "5/minute"},
    )
    yield
    cache.clear()


def _payload(book):
    return {
        "items": [{"book_id": str(book.id), "quantity": 1}],
        "shipping": {"name": "Lena Park", "phone": "0901234567", "address": "12 Library Street"},
    }


def test_checkout_is_throttled(customer_client, book):
    for _ in range(3):
        response = customer_client.post(ORDERS_URL, _payload(book), format="json")
        assert response.status_code == 201

    response = customer_client.post(ORDERS_URL, _payload(book), format="json")
    assert response.status_code == 429


def test_order_listing_has_higher_limit(customer_client):
    for _ in range(5):
        assert customer_client.get(ORDERS_URL).status_code == 200

    assert customer_client.get(ORDERS_URL).status_code == 429


def test_staff_actions_are_not_scoped(staff_client, placed_order):
    for _ in range(6):
        response = staff_client.post(
            f"{ORDERS_URL}{placed_order.id}/payment/", {"payment_status": "maybe"}, format="json"
        )
        assert response.status_code == 400
