"""Order, OrderItem and OrderStatusHistory models.

Rules implemented here:
- ``order_code`` is unique at the storage layer; the workbook retries
  generation when an insert collides.
- ``final_amount`` is always ``total_amount + shipping_fee - discount_amount``.
  ``Order.save()`` recomputes it on every write; nothing assigns it directly.
- The customer contact data is a snapshot taken at order time, so later
  profile edits do not rewrite history.
- ``OrderItem`` stores a snapshot of the book (title, author, image, price).
  ``line_total`` is ``unit_price * quantity``.  Line items are written once,
  together with their order, and never updated.
- ``OrderStatusHistory`` is append-only: one row at creation and one per
  transition.
- Book and customer FKs use ``PROTECT`` to preserve financial history.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.exceptions import InvalidArgument
from modules.core.fields import StrictChoiceField
from modules.core.models import BaseModel
from modules.orders.constants import (
    PAYMENT_TRANSITIONS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.exceptions import InvalidOrderAmount
from shared.domain.events import DomainEventMixin

CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(value).quantize(CENT)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_code`` (``ORD<YYYYMMDD><seq>``) is the human-readable identifier;
    the UUIDv7 ``id`` is used for internal references and API look-ups.
    ``idempotency_key`` is nullable: only API checkouts that send an
    ``Idempotency-Key`` header carry one.
    """

    order_code = models.CharField(max_length=32, unique=True, editable=False)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    customer_name = models.CharField(max_length=255)
    customer_email = models.CharField(max_length=255, blank=True, default="")
    customer_phone = models.CharField(max_length=32)
    customer_address = models.TextField()

    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    shipping_fee = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    final_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"), editable=False
    )

    status = StrictChoiceField(enum=OrderStatus, default=OrderStatus.PENDING)
    payment_method = StrictChoiceField(enum=PaymentMethod, default=PaymentMethod.COD)
    payment_status = StrictChoiceField(enum=PaymentStatus, default=PaymentStatus.UNPAID)

    order_date = models.DateTimeField()
    delivery_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="handled_orders",
    )
    staff_name = models.CharField(max_length=255, blank=True, default="")
    restocked_at = models.DateTimeField(null=True, blank=True)
    idempotency_key = models.CharField(max_length=255, unique=True, null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-order_date", "id"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-order_date"], name="orders_order_date_idx"),
            models.Index(fields=["customer", "-order_date"], name="orders_customer_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0)
                & models.Q(shipping_fee__gte=0)
                & models.Q(discount_amount__gte=0),
                name="orders_amounts_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def can_be_cancelled(self) -> bool:
        return self.can_transition_to(OrderStatus.CANCELLED)

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def can_change_payment_to(self, new_status: str) -> bool:
        return new_status in PAYMENT_TRANSITIONS.get(self.payment_status, set())

    # ------------------------------------------------------------------
    # Money
    # ------------------------------------------------------------------

    def recompute_final_amount(self) -> Decimal:
        total = _money(self.total_amount)
        shipping = _money(self.shipping_fee)
        discount = _money(self.discount_amount)
        if total < 0 or shipping < 0 or discount < 0:
            raise InvalidOrderAmount("Order amounts must not be negative.")
        if discount > total + shipping:
            raise InvalidOrderAmount(
                f"Discount {discount} exceeds subtotal plus shipping ({total + shipping})."
            )
        self.total_amount, self.shipping_fee, self.discount_amount = total, shipping, discount
        self.final_amount = total + shipping - discount
        return self.final_amount

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items.all())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.recompute_final_amount()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "final_amount" not in update_fields:
            money = {"total_amount", "shipping_fee", "discount_amount"}
            if money.intersection(update_fields):
                kwargs["update_fields"] = list(update_fields) + ["final_amount"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_code} ({self.status})"


class OrderItem(BaseModel):
    """Order line with a frozen snapshot of the book."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    book = models.ForeignKey(
        "catalog.Book",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    book_title = models.CharField(max_length=255)
    book_author = models.CharField(max_length=255)
    book_image = models.CharField(max_length=500, blank=True, default="")
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    line_total = models.DecimalField(max_digits=14, decimal_places=2, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["order", "book"],
                name="order_items_unique_book_per_order",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise InvalidArgument("Order line items are immutable once created.")
        if self.quantity is None or self.quantity < 1:
            raise InvalidArgument("Line item quantity must be at least 1.")
        self.unit_price = _money(self.unit_price)
        self.line_total = _money(self.unit_price * self.quantity)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.book_title} x{self.quantity} ({self.line_total})"


class OrderStatusHistory(BaseModel):
    """Audit trail of status transitions.

    ``actor`` is ``None`` when the change was made by the system.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = StrictChoiceField(enum=OrderStatus, null=True, blank=True)
    new_status = StrictChoiceField(enum=OrderStatus)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    actor_name = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="osh_order_created_idx"),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise InvalidArgument("Status history records are append-only.")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
