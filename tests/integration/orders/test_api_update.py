"""Integration tests for order state changes over HTTP.

Covers:
- PATCH status (staff only): valid forward move, history row, invalid
  transition 409, unknown status 400, terminal state.
- Cancel: customer while pending only, staff while processing, no restock.
- Restock (staff only): once per cancelled order.
- Payment (staff only): valid and invalid payment transitions.
"""

from __future__ import annotations

import pytest

from modules.catalog.models import Book
from modules.orders.constants import OrderStatus
from modules.orders.dtos import ActorDTO

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def _url(order, suffix=""):
    return f"{ORDERS_URL}{order.id}/{suffix}"


class TestPatchStatus:
    def test_staff_moves_order_forward(self, staff_client, placed_order):
        response = staff_client.patch(
            _url(placed_order), {"status": "processing", "notes": "Packing"}, format="json"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "processing"
        assert body["staff_name"] == "Store Manager"
        last = body["status_history"][-1]
        assert last["old_status"] == "pending"
        assert last["new_status"] == "processing"
        assert last["actor_name"] == "Store Manager"
        assert last["notes"] == "Packing"

    def test_status_is_case_insensitive(self, staff_client, placed_order):
        response = staff_client.patch(_url(placed_order), {"status": "PROCESSING"}, format="json")
        assert response.json()["status"] == "processing"

    def test_customer_is_forbidden(self, customer_client, placed_order):
        response = customer_client.patch(
            _url(placed_order), {"status": "processing"}, format="json"
        )
        assert response.status_code == 403

    def test_skipping_a_step_returns_409(self, staff_client, placed_order):
        response = staff_client.patch(_url(placed_order), {"status": "delivered"}, format="json")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_order_status"

    def test_unknown_status_returns_400(self, staff_client, placed_order):
        response = staff_client.patch(_url(placed_order), {"status": "lost"}, format="json")
        assert response.status_code == 400

    def test_missing_status_returns_400(self, staff_client, placed_order):
        response = staff_client.patch(_url(placed_order), {}, format="json")
        assert response.status_code == 400

    def test_delivered_sets_delivery_date(self, staff_client, placed_order):
        for status in ("processing", "shipping", "delivered"):
            response = staff_client.patch(_url(placed_order), {"status": status}, format="json")

        assert response.json()["delivery_date"] is not None

    def test_terminal_order_cannot_move(self, staff_client, workbook, staff_user, placed_order):
        workbook.cancel_order(placed_order.id, ActorDTO.from_user(staff_user))

        response = staff_client.patch(
            _url(placed_order), {"status": "processing"}, format="json"
        )

        assert response.status_code == 409

    def test_unknown_order_returns_404(self, staff_client):
        response = staff_client.patch(
            f"{ORDERS_URL}0190a000-0000-7000-8000-000000000000/",
            {"status": "processing"},
            format="json",
        )
        assert response.status_code == 404


class TestCancelOrder:
    def test_customer_cancels_pending_order(self, customer_client, placed_order, book):
        response = customer_client.post(_url(placed_order, "cancel/"), format="json")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["status_history"][-1]["actor_name"] == "Lena"
        # stock stays debited until an explicit restock
        assert Book.objects.get(pk=book.pk).stock == 18

    def test_customer_cannot_cancel_processing_order(
        self, customer_client, workbook, staff_user, placed_order
    ):
        workbook.update_status(
            placed_order.id, OrderStatus.PROCESSING, ActorDTO.from_user(staff_user)
        )

        response = customer_client.post(_url(placed_order, "cancel/"), format="json")

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_order_status"

    def test_staff_cancels_processing_order(
        self, staff_client, workbook, staff_user, placed_order
    ):
        workbook.update_status(
            placed_order.id, OrderStatus.PROCESSING, ActorDTO.from_user(staff_user)
        )

        response = staff_client.post(
            _url(placed_order, "cancel/"), {"notes": "Out of print"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["status_history"][-1]["notes"] == "Out of print"

    def test_customer_cannot_cancel_someone_elses_order(
        self, api_client, other_customer, placed_order
    ):
        api_client.force_authenticate(user=other_customer)

        response = api_client.post(_url(placed_order, "cancel/"), format="json")

        assert response.status_code == 404


class TestRestock:
    def test_staff_restocks_cancelled_order_once(
        self, staff_client, workbook, staff_user, placed_order, book
    ):
        workbook.cancel_order(placed_order.id, ActorDTO.from_user(staff_user))

        first = staff_client.post(_url(placed_order, "restock/"), format="json")
        second = staff_client.post(_url(placed_order, "restock/"), format="json")

        assert first.status_code == 200
        assert first.json()["restocked_at"] is not None
        assert second.status_code == 409
        assert second.json()["errors"][0]["code"] == "restock_not_allowed"
        assert Book.objects.get(pk=book.pk).stock == 20

    def test_active_order_cannot_be_restocked(self, staff_client, placed_order):
        response = staff_client.post(_url(placed_order, "restock/"), format="json")
        assert response.status_code == 409

    def test_customer_is_forbidden(self, customer_client, placed_order):
        response = customer_client.post(_url(placed_order, "restock/"), format="json")
        assert response.status_code == 403


class TestPayment:
    def test_staff_marks_order_paid(self, staff_client, placed_order):
        response = staff_client.post(
            _url(placed_order, "payment/"), {"payment_status": "paid"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"

    def test_refund_requires_payment(self, staff_client, placed_order):
        response = staff_client.post(
            _url(placed_order, "payment/"), {"payment_status": "refunded"}, format="json"
        )

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invalid_payment_status"

    def test_unknown_payment_status_returns_400(self, staff_client, placed_order):
        response = staff_client.post(
            _url(placed_order, "payment/"), {"payment_status": "maybe"}, format="json"
        )
        assert response.status_code == 400

    def test_customer_is_forbidden(self, customer_client, placed_order):
        response = customer_client.post(
            _url(placed_order, "payment/"), {"payment_status": "paid"}, format="json"
        )
        assert response.status_code == 403
