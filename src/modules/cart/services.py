"""Checkout: turns a cart into an order through ``OrderWorkbook``.

The workbook never touches carts.  ``CheckoutService`` owns that side: it
builds the draft from the cart contents, clears the cart only after the
order has committed, and leaves it intact for a retry when anything fails.
Either way the outcome is reported to the notification sink.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

import structlog

from modules.cart.exceptions import EmptyCart
from modules.core.exceptions import StoreError
from modules.core.notifications import INotifier, LogNotifier, NotificationKind
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import OrderDraft, OrderLineDraft, ShippingInfo

if TYPE_CHECKING:
    from modules.cart.aggregator import CartAggregator
    from modules.orders.models import Order
    from modules.orders.services import OrderWorkbook

logger = structlog.get_logger(__name__)


class CheckoutService:
    def __init__(self, workbook: OrderWorkbook, notifier: Optional[INotifier] = None) -> None:
        self._workbook = workbook
        self._notifier = notifier or LogNotifier()

    def checkout(
        self,
        cart: CartAggregator,
        customer: Any,
        shipping: ShippingInfo,
        payment_method: PaymentMethod = PaymentMethod.COD,
        notes: str = "",
        discount_amount: Decimal = Decimal("0.00"),
        shipping_fee: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        """Place an order for everything in ``cart``.

        The cart lock is held for the whole call so the order matches
        exactly what is cleared afterwards.

        Raises:
            EmptyCart: nothing is staged.
            StoreError: whatever the workbook raised; the cart is untouched.
        """
        log = logger.bind(customer_id=customer.pk)
        with cart.locked():
            lines = cart.snapshot()
            if not lines:
                self._notifier.report("Your cart is empty.", NotificationKind.WARNING)
                raise EmptyCart("Cannot check out an empty cart.")

            draft = OrderDraft(
                customer_id=customer.pk,
                items=[OrderLineDraft(book_id=book_id, quantity=qty) for book_id, qty in lines],
                shipping=shipping,
                payment_method=payment_method,
                notes=notes,
                discount_amount=discount_amount,
                shipping_fee=shipping_fee,
                idempotency_key=idempotency_key,
            )
            try:
                order = self._workbook.create_order(draft)
            except StoreError as exc:
                log.warning("cart.checkout_failed", error_code=exc.code, error=str(exc))
                self._notifier.report(
                    f"Checkout could not be completed: {exc}", NotificationKind.ERROR
                )
                raise

            cart.clear()

        log.info("cart.checked_out", order_id=str(order.id), order_code=order.order_code)
        self._notifier.report(
            f"Order {order.order_code} placed successfully.", NotificationKind.SUCCESS
        )
        return order
