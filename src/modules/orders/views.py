"""Order API views.

Exposes ``OrderWorkbook`` via HTTP using a DRF ViewSet.  Engine errors
propagate to ``modules.core.api_errors``; the view never swallows them.

Customers see and create only their own orders and may cancel them while
pending.  Status changes, restock, payment updates and the sales summary
are staff only.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.catalog.repositories.django_repository import BookDjangoRepository
from modules.core.exceptions import InvalidArgument
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.constants import OrderStatus
from modules.orders.dtos import (
    ActorDTO,
    OrderDraft,
    OrderSearchFilter,
    PaymentChangeDTO,
    StatusChangeDTO,
)
from modules.orders.exceptions import InvalidOrderStatus, OrderNotFound
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    OrderListSerializer,
    OrderSerializer,
    SalesSummarySerializer,
)
from modules.orders.services import OrderWorkbook

SEARCH_PARAMS = {
    "q": "query",
    "status": "status",
    "date_from": "date_from",
    "date_to": "date_to",
    "customer": "customer_id",
    "staff": "staff_id",
    "sort": "sort",
}

STAFF_ACTIONS = {"partial_update", "restock", "payment", "summary"}


def build_order_workbook() -> OrderWorkbook:
    return OrderWorkbook(
        order_repository=OrderDjangoRepository(),
        book_repository=BookDjangoRepository(),
    )


def date_param(params, name: str) -> Optional[date]:
    raw = params.get(name)
    if raw in (None, ""):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise InvalidArgument(f"'{name}' must be an ISO date (YYYY-MM-DD).") from None


def order_search_from_params(params, user) -> OrderSearchFilter:
    data: Dict[str, Any] = {}
    for param, field in SEARCH_PARAMS.items():
        value = params.get(param)
        if value not in (None, ""):
            data[field] = value
    if not user.is_staff:
        data["customer_id"] = user.pk
        data.pop("staff_id", None)
    return OrderSearchFilter.model_validate(data)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderWorkbook`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends: list = []

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._workbook = build_order_workbook()

    def get_permissions(self):
        if self.action in STAFF_ACTIONS:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "checkout"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def _visible_order(self, request: Request, pk: str | None) -> Order:
        order = self._workbook.get_order(pk)
        if not request.user.is_staff and order.customer_id != request.user.pk:
            raise OrderNotFound(f"Order {pk} not found.")
        return order

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        data = dict(request.data)
        if not request.user.is_staff or "customer_id" not in data:
            data["customer_id"] = request.user.pk
        idempotency_key = request.headers.get("Idempotency-Key")
        if idempotency_key:
            data["idempotency_key"] = idempotency_key
        draft = OrderDraft.model_validate(data)

        replay = bool(idempotency_key) and (
            self._workbook.find_by_idempotency_key(idempotency_key) is not None
        )
        order = self._workbook.create_order(draft)
        code = status.HTTP_200_OK if replay else status.HTTP_201_CREATED
        return Response(OrderSerializer(order).data, status=code)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/: compiled search, paginated.

        Customers are pinned to their own orders.
        """
        search = order_search_from_params(request.query_params, request.user)
        orders = self._workbook.search_orders(search)
        page = self.paginate_queryset(orders)
        return self.get_paginated_response(OrderListSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        return Response(OrderSerializer(self._visible_order(request, pk)).data)

    @action(detail=False, methods=["get"], url_path=r"by-code/(?P<order_code>[A-Za-z0-9]+)")
    def by_code(self, request: Request, order_code: str | None = None) -> Response:
        order = self._workbook.get_order_by_code(order_code or "")
        if not request.user.is_staff and order.customer_id != request.user.pk:
            raise OrderNotFound(f"Order {order_code} not found.")
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/  ``{"status": "...", "notes": "..."}``"""
        change = StatusChangeDTO.model_validate(request.data)
        order = self._workbook.update_status(
            pk, change.status, ActorDTO.from_user(request.user), change.notes
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Staff can cancel any pending or processing order; customers only
        their own pending orders.  Stock is not restored.
        """
        order = self._visible_order(request, pk)
        if not request.user.is_staff and order.status != OrderStatus.PENDING:
            raise InvalidOrderStatus("Only pending orders can be cancelled by the customer.")
        notes = request.data.get("notes", "")
        order = self._workbook.cancel_order(pk, ActorDTO.from_user(request.user), notes)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def restock(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/restock/: credit a cancelled order back to stock."""
        order = self._workbook.restock_cancelled_order(pk, ActorDTO.from_user(request.user))
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def payment(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/payment/  ``{"payment_status": "paid"}``"""
        change = PaymentChangeDTO.model_validate(request.data)
        order = self._workbook.update_payment_status(
            pk, change.payment_status, ActorDTO.from_user(request.user)
        )
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"])
    def summary(self, request: Request) -> Response:
        """GET /api/v1/orders/summary/?date_from=YYYY-MM-DD&date_to=YYYY-MM-DD"""
        report = self._workbook.sales_summary(
            date_param(request.query_params, "date_from"),
            date_param(request.query_params, "date_to"),
        )
        return Response(SalesSummarySerializer(report).data)
