"""Cart API views.

Each authenticated user owns one process-local cart from ``cart_registry``.
Staging reads live stock through the catalog; checkout goes through
``CheckoutService``, which clears the cart only when the order commits.
"""

from __future__ import annotations

from uuid import UUID

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.cart.aggregator import CartAggregator
from modules.cart.dtos import AddCartItemDTO, CheckoutDTO, SetCartQuantityDTO
from modules.cart.registry import CartRegistry, cart_registry
from modules.cart.serializers import CartAdjustmentSerializer, CartSerializer
from modules.cart.services import CheckoutService
from modules.catalog.views import build_catalog_service
from modules.orders.serializers import OrderSerializer
from modules.orders.views import build_order_workbook


class CartViewSet(ViewSet):
    """Routes are mapped explicitly in ``modules.cart.urls``."""

    permission_classes = [IsAuthenticated]
    registry: CartRegistry = cart_registry

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "checkout" if self.action == "checkout" else None
        return super().get_throttles()

    def _cart(self, request: Request) -> CartAggregator:
        return self.registry.cart_for(request.user.pk)

    def _render(self, cart: CartAggregator, code: int = status.HTTP_200_OK) -> Response:
        return Response(CartSerializer(cart).data, status=code)

    def retrieve(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        return self._render(self._cart(request))

    def clear(self, request: Request) -> Response:
        """DELETE /api/v1/cart/"""
        self._cart(request).clear()
        return Response(status=status.HTTP_204_NO_CONTENT)

    def add_item(self, request: Request) -> Response:
        """POST /api/v1/cart/items/  ``{"book_id": "...", "quantity": 1}``"""
        dto = AddCartItemDTO.model_validate(request.data)
        book = build_catalog_service().get_book(dto.book_id)
        cart = self._cart(request)
        cart.add(book, dto.quantity)
        return self._render(cart, status.HTTP_201_CREATED)

    def set_quantity(self, request: Request, book_id: UUID) -> Response:
        """PATCH /api/v1/cart/items/{book_id}/  ``{"quantity": N}``"""
        dto = SetCartQuantityDTO.model_validate(request.data)
        cart = self._cart(request)
        cart.set_quantity(book_id, dto.quantity)
        return self._render(cart)

    def remove_item(self, request: Request, book_id: UUID) -> Response:
        cart = self._cart(request)
        cart.remove(book_id)
        return self._render(cart)

    def increase(self, request: Request, book_id: UUID) -> Response:
        cart = self._cart(request)
        cart.increase(book_id)
        return self._render(cart)

    def decrease(self, request: Request, book_id: UUID) -> Response:
        cart = self._cart(request)
        cart.decrease(book_id)
        return self._render(cart)

    def refresh(self, request: Request) -> Response:
        """POST /api/v1/cart/refresh/: fit the cart to current stock."""
        cart = self._cart(request)
        adjustments = cart.refresh()
        data = CartSerializer(cart).data
        data["adjustments"] = CartAdjustmentSerializer(adjustments, many=True).data
        return Response(data)

    def checkout(self, request: Request) -> Response:
        """POST /api/v1/cart/checkout/

        Supports idempotency via the ``Idempotency-Key`` header.
        """
        dto = CheckoutDTO.model_validate(request.data)
        order = CheckoutService(build_order_workbook()).checkout(
            self._cart(request),
            request.user,
            dto.shipping,
            payment_method=dto.payment_method,
            notes=dto.notes,
            idempotency_key=request.headers.get("Idempotency-Key") or dto.idempotency_key,
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
