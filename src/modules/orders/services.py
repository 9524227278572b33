"""Order service layer (Use Cases).

``OrderWorkbook`` orchestrates order creation, the fulfillment state
machine, payment status, explicit restock and order reporting.  Every
write runs in one ``transaction.atomic`` block: the service defines the
unit-of-work boundary and the repositories never commit on their own.

Business rules enforced:
- The customer exists and is active.
- Every book exists, is not soft-deleted, is active and has enough stock,
  re-checked under a row lock (books locked in id order to avoid
  deadlocks).
- Prices come from the catalog at creation time, never from the client.
- ``final_amount = total_amount + shipping_fee - discount_amount``; the
  discount may not exceed subtotal plus shipping.
- Header, lines, stock debits, history and outbox rows commit together.
- Status transitions follow ``VALID_TRANSITIONS``; history is recorded on
  every change.
- Cancelling never restocks.  ``restock_cancelled_order`` does, once.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Dict, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from modules.catalog.constants import BookStatus
from modules.catalog.exceptions import BookNotFound, BookUnavailable
from modules.core.exceptions import (
    DuplicateOrderCode,
    InsufficientStock,
    InvalidArgument,
    StorageFailure,
)
from modules.core.fields import decode_choice
from modules.orders.codes import OrderCodeGenerator
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.dtos import ActorDTO
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderRestocked,
    OrderStatusChanged,
    PaymentStatusChanged,
)
from modules.orders.exceptions import (
    CustomerNotFound,
    InvalidOrderStatus,
    InvalidPaymentStatus,
    OrderNotFound,
    RestockNotAllowed,
)
from modules.orders.models import Order

if TYPE_CHECKING:
    from modules.catalog.models import Book
    from modules.catalog.repositories.interfaces import IBookRepository
    from modules.orders.dtos import OrderDraft, OrderSearchFilter, SalesSummary
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


class OrderWorkbook:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).  ``clock``
    supplies the order date; tests pass a fixed one.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        book_repository: IBookRepository,
        code_generator: Optional[OrderCodeGenerator] = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._orders = order_repository
        self._books = book_repository
        self._codes = code_generator or OrderCodeGenerator(order_repository)
        self._clock = clock

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(self, draft: OrderDraft) -> Order:
        """Create an order and debit stock as one atomic unit.

        Steps (all inside one transaction):
        1. Validate the customer.
        2. Lock the books, then validate status and stock.
        3. Compute the breakdown from current prices and the shipping policy.
        4. Generate the order code and insert the header.
        5. Insert each line with a book snapshot and debit its stock.
        6. Record the initial history entry and the ``OrderCreated`` event.

        Any failure rolls back everything; non-domain database errors are
        raised as ``StorageFailure``.

        Raises:
            CustomerNotFound: customer does not exist or is inactive.
            BookNotFound: a book does not exist or was deleted.
            BookUnavailable: a book is inactive.
            InsufficientStock: not enough stock for a line.
            InvalidOrderAmount: discount exceeds subtotal plus shipping.
            DuplicateOrderCode: code generation kept colliding.
            StorageFailure: the database failed.
        """
        log = logger.bind(customer_id=draft.customer_id, item_count=len(draft.items))
        log.info("order.creation_started")

        if draft.idempotency_key:
            existing = self._orders.get_by_idempotency_key(draft.idempotency_key)
            if existing:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return existing

        try:
            order = self._place(draft)
        except IntegrityError as exc:
            # A concurrent request with the same idempotency key won the race.
            if draft.idempotency_key:
                existing = self._orders.get_by_idempotency_key(draft.idempotency_key)
                if existing:
                    log.info("order.idempotency_hit", order_id=str(existing.id))
                    return existing
            log.error("order.storage_failure", error=str(exc))
            raise StorageFailure("Order could not be stored.") from exc
        except DatabaseError as exc:
            log.error("order.storage_failure", error=str(exc))
            raise StorageFailure("Order could not be stored.") from exc

        log.info("order.created", order_id=str(order.id), order_code=order.order_code)
        self._on_order_created(order)
        return self._orders.get_by_id(order.id) or order

    @transaction.atomic
    def _place(self, draft: OrderDraft) -> Order:
        customer = self._orders.get_customer(draft.customer_id)
        if customer is None:
            raise CustomerNotFound(f"Customer {draft.customer_id} not found.")

        quantities = {line.book_id: line.quantity for line in draft.items}
        books = self._lock_books(quantities)

        subtotal = sum(
            (book.price * quantities[book_id] for book_id, book in books.items()), ZERO
        )
        now = self._clock()
        order = Order(
            customer=customer,
            customer_name=draft.shipping.name,
            customer_email=draft.shipping.email or customer.email,
            customer_phone=draft.shipping.phone,
            customer_address=draft.shipping.address,
            total_amount=subtotal,
            shipping_fee=self._shipping_fee(draft, subtotal),
            discount_amount=draft.discount_amount,
            status=OrderStatus.PENDING,
            payment_method=draft.payment_method,
            payment_status=PaymentStatus.UNPAID,
            order_date=now,
            notes=draft.notes,
            idempotency_key=draft.idempotency_key,
        )
        order.recompute_final_amount()
        self._insert_with_code(order, now)

        for book_id in sorted(quantities):
            self._orders.add_item(order, books[book_id], quantities[book_id])
            self._books.debit_stock(book_id, quantities[book_id])

        self._orders.add_history(
            order,
            OrderStatus.PENDING,
            ActorDTO.from_user(customer),
            notes="Order created",
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                order_code=order.order_code,
                customer_id=customer.pk,
                final_amount=str(order.final_amount),
            )
        )
        self._orders.save(order, fields=())
        return order

    def _lock_books(self, quantities: Dict[UUID, int]) -> Dict[UUID, Book]:
        locked = {book.id: book for book in self._books.lock_for_checkout(sorted(quantities))}
        for book_id in sorted(quantities):
            book = locked.get(book_id)
            if book is None:
                raise BookNotFound(f"Book {book_id} not found.")
            if book.status != BookStatus.ACTIVE:
                raise BookUnavailable(f"Book {book.title!r} is not available for sale.")
            if book.stock < quantities[book_id]:
                raise InsufficientStock(
                    f"Book {book.title!r}: requested {quantities[book_id]}, "
                    f"available {book.stock}."
                )
        return locked

    def _shipping_fee(self, draft: OrderDraft, subtotal: Decimal) -> Decimal:
        if draft.shipping_fee is not None:
            return draft.shipping_fee
        if subtotal >= settings.ORDER_FREE_SHIPPING_THRESHOLD:
            return ZERO
        return settings.ORDER_DEFAULT_SHIPPING_FEE

    def _insert_with_code(self, order: Order, day: datetime) -> None:
        """Insert the header, retrying code generation on a collision.

        Each attempt runs in its own savepoint so a unique violation does
        not poison the enclosing transaction.
        """
        local_day = timezone.localdate(day) if timezone.is_aware(day) else day.date()
        retries = settings.ORDER_CODE_MAX_RETRIES
        for attempt in range(retries):
            order.order_code = self._codes.next_code(local_day)
            try:
                with transaction.atomic():
                    self._orders.create(order)
                return
            except IntegrityError:
                if self._orders.get_by_code(order.order_code) is None:
                    raise
                logger.warning(
                    "order.code_collision", order_code=order.order_code, attempt=attempt + 1
                )
        raise DuplicateOrderCode(
            f"Could not allocate a unique order code after {retries} attempts."
        )

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(
        self,
        order_id: UUID | str,
        new_status: str,
        actor: Optional[ActorDTO] = None,
        notes: str = "",
    ) -> Order:
        """Transition an order to a new status.

        Acquires a row-level lock on the order before validating the
        transition, so concurrent changes are serialized.  ``delivered``
        stamps ``delivery_date``; a staff actor is stamped as the order's
        handler.

        Raises:
            InvalidArgument: ``new_status`` is not an order status.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
        """
        target = decode_choice(OrderStatus, new_status)
        actor = actor or ActorDTO.system()

        order = self._orders.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=target,
        )
        if not order.can_transition_to(target):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(f"Cannot transition from {order.status} to {target}.")

        old_status = order.status
        order.status = target
        fields = ["status"]
        if target == OrderStatus.DELIVERED:
            order.delivery_date = self._clock()
            fields.append("delivery_date")
        if actor.is_staff and actor.user_id is not None:
            order.staff_id = actor.user_id
            order.staff_name = actor.name
            fields.extend(["staff", "staff_name"])

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                order_code=order.order_code,
                old_status=str(old_status),
                new_status=str(target),
            )
        )
        if target == OrderStatus.CANCELLED:
            order.add_domain_event(OrderCancelled(aggregate_id=order.id, order_code=order.order_code))
        self._orders.save(order, fields)
        self._orders.add_history(order, target, actor, old_status=old_status, notes=notes)

        log.info("order.status_updated")
        self._dispatch_status_event(order, old_status, target)
        return self._orders.get_by_id(order.id)

    def cancel_order(
        self,
        order_id: UUID | str,
        actor: Optional[ActorDTO] = None,
        notes: str = "",
    ) -> Order:
        """Cancel a pending or processing order.  Stock is not restored."""
        order = self.update_status(
            order_id, OrderStatus.CANCELLED, actor, notes or "Order cancelled"
        )
        self._on_order_cancelled(order)
        return order

    @transaction.atomic
    def restock_cancelled_order(
        self, order_id: UUID | str, actor: Optional[ActorDTO] = None
    ) -> Order:
        """Credit every line of a cancelled order back to stock, once.

        Raises:
            OrderNotFound: order does not exist.
            RestockNotAllowed: the order is not cancelled or was already restocked.
        """
        actor = actor or ActorDTO.system()
        order = self._orders.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), actor=actor.name)
        if order.status != OrderStatus.CANCELLED:
            raise RestockNotAllowed(f"Only cancelled orders can be restocked ({order.status}).")
        if order.restocked_at is not None:
            raise RestockNotAllowed(f"Order {order.order_code} was already restocked.")

        units = 0
        for item in sorted(order.items.all(), key=lambda i: i.book_id):
            self._books.restock(item.book_id, item.quantity)
            units += item.quantity

        order.restocked_at = self._clock()
        order.add_domain_event(
            OrderRestocked(aggregate_id=order.id, order_code=order.order_code, units=units)
        )
        self._orders.save(order, ["restocked_at"])

        log.info("order.restocked", units=units)
        self._on_order_restocked(order)
        return self._orders.get_by_id(order.id)

    @transaction.atomic
    def update_payment_status(
        self,
        order_id: UUID | str,
        payment_status: str,
        actor: Optional[ActorDTO] = None,
    ) -> Order:
        """Move the payment status along ``unpaid -> paid -> refunded``.

        Raises:
            InvalidArgument: unknown payment status.
            OrderNotFound: order does not exist.
            InvalidPaymentStatus: the edge is not allowed.
        """
        target = decode_choice(PaymentStatus, payment_status)
        actor = actor or ActorDTO.system()
        order = self._orders.get_for_update(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_payment_status=order.payment_status,
            new_payment_status=target,
        )
        if not order.can_change_payment_to(target):
            log.warning("order.invalid_payment_transition")
            raise InvalidPaymentStatus(
                f"Cannot change payment status from {order.payment_status} to {target}."
            )

        old_status = order.payment_status
        order.payment_status = target
        order.add_domain_event(
            PaymentStatusChanged(
                aggregate_id=order.id,
                order_code=order.order_code,
                old_status=str(old_status),
                new_status=str(target),
            )
        )
        self._orders.save(order, ["payment_status"])
        log.info("order.payment_status_updated", actor=actor.name)
        return self._orders.get_by_id(order.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID | str) -> Order:
        """Raises ``OrderNotFound`` if the order does not exist."""
        order = self._orders.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_by_code(self, order_code: str) -> Order:
        order = self._orders.get_by_code(order_code.strip().upper())
        if not order:
            raise OrderNotFound(f"Order {order_code} not found.")
        return order

    def find_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._orders.get_by_idempotency_key(key)

    def search_orders(self, search: OrderSearchFilter) -> List[Order]:
        return self._orders.search(search)

    def sales_summary(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> SalesSummary:
        if date_from and date_to and date_from > date_to:
            raise InvalidArgument("date_from must not be after date_to.")
        return self._orders.sales_summary(date_from, date_to)

    # ------------------------------------------------------------------
    # Domain event hooks
    # ------------------------------------------------------------------
    # Cross-module consumers are driven by the outbox relay; these hooks
    # are the in-process extension points.

    def _on_order_created(self, order: Order) -> None:
        logger.info("order.event.created", order_id=str(order.id))

    def _on_order_cancelled(self, order: Order) -> None:
        logger.info("order.event.cancelled", order_id=str(order.id))

    def _on_order_restocked(self, order: Order) -> None:
        logger.info("order.event.restocked", order_id=str(order.id))

    def _dispatch_status_event(self, order: Order, old_status: str, new_status: str) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )
