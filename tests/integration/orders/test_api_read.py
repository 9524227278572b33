"""Integration tests for order read endpoints.

Covers:
- List: paginated, customers pinned to their own orders, staff see all.
- List filters: q, status, customer, invalid sort.
- Retrieve: own order, another customer's order hidden (404), malformed id.
- By code: case-insensitive lookup.
- Sales summary: staff only, date params validated.
"""

from __future__ import annotations

import pytest

from modules.orders.constants import OrderStatus
from modules.orders.dtos import ActorDTO

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"
SUMMARY_URL = "/api/v1/orders/summary/"


@pytest.fixture()
def foreign_order(workbook, make_draft, make_book, other_customer):
    return workbook.create_order(
        make_draft((make_book(title="Foreign"), 1), customer_id=other_customer.pk)
    )


class TestListOrders:
    def test_list_is_paginated(self, customer_client, placed_order):
        response = customer_client.get(ORDERS_URL)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["order_code"] == placed_order.order_code
        assert "items" not in body["results"][0]

    def test_customer_sees_only_own_orders(self, customer_client, placed_order, foreign_order):
        response = customer_client.get(ORDERS_URL)

        codes = [o["order_code"] for o in response.json()["results"]]
        assert codes == [placed_order.order_code]

    def test_customer_filter_cannot_widen_scope(
        self, customer_client, placed_order, foreign_order, other_customer
    ):
        response = customer_client.get(ORDERS_URL, {"customer": other_customer.pk})

        codes = [o["order_code"] for o in response.json()["results"]]
        assert codes == [placed_order.order_code]

    def test_staff_sees_all_orders(self, staff_client, placed_order, foreign_order):
        response = staff_client.get(ORDERS_URL)
        assert response.json()["count"] == 2

    def test_staff_filters_by_customer(
        self, staff_client, placed_order, foreign_order, other_customer
    ):
        response = staff_client.get(ORDERS_URL, {"customer": other_customer.pk})

        codes = [o["order_code"] for o in response.json()["results"]]
        assert codes == [foreign_order.order_code]

    def test_filter_by_code_query(self, staff_client, placed_order, foreign_order):
        response = staff_client.get(ORDERS_URL, {"q": placed_order.order_code})

        codes = [o["order_code"] for o in response.json()["results"]]
        assert codes == [placed_order.order_code]

    def test_filter_by_status(self, staff_client, workbook, staff_user, placed_order, foreign_order):
        workbook.update_status(
            foreign_order.id, OrderStatus.PROCESSING, ActorDTO.from_user(staff_user)
        )

        response = staff_client.get(ORDERS_URL, {"status": "processing"})

        codes = [o["order_code"] for o in response.json()["results"]]
        assert codes == [foreign_order.order_code]

    def test_invalid_sort_returns_400(self, staff_client):
        response = staff_client.get(ORDERS_URL, {"sort": "random"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "sort"

    def test_unauthenticated_returns_401(self, api_client):
        assert api_client.get(ORDERS_URL).status_code == 401


class TestRetrieveOrder:
    def test_customer_retrieves_own_order(self, customer_client, placed_order):
        response = customer_client.get(f"{ORDERS_URL}{placed_order.id}/")

        assert response.status_code == 200
        body = response.json()
        assert body["order_code"] == placed_order.order_code
        assert body["items"][0]["quantity"] == 2
        assert body["customer_phone"] == "0901234567"

    def test_other_customers_order_is_hidden(self, customer_client, foreign_order):
        response = customer_client.get(f"{ORDERS_URL}{foreign_order.id}/")

        assert response.status_code == 404
        assert response.json()["errors"][0]["code"] == "order_not_found"

    def test_staff_retrieves_any_order(self, staff_client, foreign_order):
        response = staff_client.get(f"{ORDERS_URL}{foreign_order.id}/")
        assert response.status_code == 200

    def test_malformed_id_returns_404(self, staff_client):
        response = staff_client.get(f"{ORDERS_URL}not-a-uuid/")
        assert response.status_code == 404


class TestOrderByCode:
    def test_lookup_is_case_insensitive(self, customer_client, placed_order):
        code = placed_order.order_code.lower()

        response = customer_client.get(f"{ORDERS_URL}by-code/{code}/")

        assert response.status_code == 200
        assert response.json()["id"] == str(placed_order.id)

    def test_unknown_code_returns_404(self, staff_client):
        response = staff_client.get(f"{ORDERS_URL}by-code/ORD19990101001/")
        assert response.status_code == 404

    def test_other_customers_code_is_hidden(self, customer_client, foreign_order):
        response = customer_client.get(f"{ORDERS_URL}by-code/{foreign_order.order_code}/")
        assert response.status_code == 404


class TestSalesSummary:
    def test_customer_is_forbidden(self, customer_client):
        assert customer_client.get(SUMMARY_URL).status_code == 403

    def test_summary_counts_delivered_revenue(
        self, staff_client, workbook, staff_user, placed_order, foreign_order
    ):
        actor = ActorDTO.from_user(staff_user)
        for status in (OrderStatus.PROCESSING, OrderStatus.SHIPPING, OrderStatus.DELIVERED):
            workbook.update_status(placed_order.id, status, actor)

        response = staff_client.get(SUMMARY_URL)

        assert response.status_code == 200
        body = response.json()
        assert body["delivered_orders"] == 1
        assert body["revenue"] == str(placed_order.final_amount)
        assert body["status_breakdown"]["delivered"] == 1
        assert body["status_breakdown"]["pending"] == 1
        assert len(body["daily"]) == 1

    def test_invalid_date_returns_400(self, staff_client):
        response = staff_client.get(SUMMARY_URL, {"date_from": "01/02/2025"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "invalid_argument"

    def test_inverted_range_returns_400(self, staff_client):
        response = staff_client.get(
            SUMMARY_URL, {"date_from": "2025-02-01", "date_to": "2025-01-01"}
        )
        assert response.status_code == 400
