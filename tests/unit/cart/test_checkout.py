"""Unit tests for CheckoutService.

Covers:
- Successful checkout creates the order and clears the cart.
- Failed checkout leaves the cart intact for a retry.
- Outcomes are reported to the notifier.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.cart.aggregator import CartAggregator
from modules.cart.exceptions import EmptyCart
from modules.cart.services import CheckoutService
from modules.catalog.models import Book
from modules.core.exceptions import InsufficientStock
from modules.core.notifications import CollectingNotifier, NotificationKind
from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.models import Order

pytestmark = pytest.mark.unit


@pytest.fixture()
def notifier():
    return CollectingNotifier()


@pytest.fixture()
def checkout_service(workbook, notifier):
    return CheckoutService(workbook=workbook, notifier=notifier)


@pytest.fixture()
def cart(book_repository):
    return CartAggregator(book_repository=book_repository)


class TestCheckout:
    def test_places_order_and_clears_cart(
        self, checkout_service, cart, make_book, customer_user, shipping, notifier
    ):
        book = make_book(stock=5, price=Decimal("40000.00"))
        cart.add(book, 4)

        order = checkout_service.checkout(
            cart, customer_user, shipping, payment_method=PaymentMethod.BANK_TRANSFER
        )

        assert order.status is OrderStatus.PENDING
        assert order.payment_method is PaymentMethod.BANK_TRANSFER
        assert [(i.book_id, i.quantity) for i in order.items.all()] == [(book.id, 4)]
        assert cart.is_empty()
        book.refresh_from_db()
        assert book.stock == 1
        kind, message = notifier.last
        assert kind is NotificationKind.SUCCESS
        assert order.order_code in message

    def test_second_cart_fails_and_keeps_its_contents(
        self, checkout_service, book_repository, make_book, customer_user, other_customer,
        shipping, notifier,
    ):
        book = make_book(stock=5)
        first, second = CartAggregator(book_repository), CartAggregator(book_repository)
        first.add(book, 4)
        second.add(book, 2)

        checkout_service.checkout(first, customer_user, shipping)
        with pytest.raises(InsufficientStock):
            checkout_service.checkout(second, other_customer, shipping)

        assert second.snapshot() == [(book.id, 2)]
        assert Book.objects.get(pk=book.pk).stock == 1
        assert Order.objects.filter(customer=other_customer).count() == 0
        assert notifier.last[0] is NotificationKind.ERROR

    def test_empty_cart_is_rejected(self, checkout_service, cart, customer_user, shipping, notifier):
        with pytest.raises(EmptyCart):
            checkout_service.checkout(cart, customer_user, shipping)
        assert notifier.last[0] is NotificationKind.WARNING
        assert Order.objects.count() == 0

    def test_idempotency_key_is_passed_through(
        self, checkout_service, cart, book, customer_user, shipping
    ):
        cart.add(book)
        order = checkout_service.checkout(cart, customer_user, shipping, idempotency_key="k-1")
        assert order.idempotency_key == "k-1"
