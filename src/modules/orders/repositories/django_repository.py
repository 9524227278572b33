"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Writes never
open their own transaction: ``OrderWorkbook`` owns the unit of work and
the header, lines, stock debits, history and outbox rows commit or roll
back together.

Concurrency control on status updates uses ``select_for_update()``
(there is no ``version`` field on the model).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional
from uuid import UUID

import structlog
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db.models import Avg, Count, Sum
from django.db.models.functions import Length, TruncDate

from modules.catalog.models import Book
from modules.core.exceptions import InvalidArgument
from modules.core.models import OutboxEvent
from modules.core.query import QueryBuilder
from modules.orders.constants import OrderStatus
from modules.orders.dtos import ActorDTO, DailyRevenue, OrderSearchFilter, SalesSummary
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from modules.orders.search import compile_order_search

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"
ZERO = Decimal("0.00")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _detailed(self):
        return Order.objects.select_related("customer", "staff").prefetch_related(
            "items", "status_history"
        )

    def get_by_id(self, id: UUID | str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the user FKs and ``prefetch_related``
        for items and status history.  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return self._detailed().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: UUID | str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Items are prefetched so the caller can iterate over them while the
        row is locked.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update(of=("self",))
                .select_related("customer", "staff")
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_code(self, order_code: str) -> Optional[Order]:
        return self._detailed().filter(order_code=order_code).first()

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._detailed().filter(idempotency_key=key).first()

    def highest_code_sequence(self, prefix: str) -> int:
        # Sequences widen past 999, so the longest code sorts first.
        code = (
            Order.objects.filter(order_code__startswith=prefix)
            .annotate(code_length=Length("order_code"))
            .order_by("-code_length", "-order_code")
            .values_list("order_code", flat=True)
            .first()
        )
        return int(code[len(prefix):]) if code else 0

    def get_customer(self, customer_id: int) -> Optional[Any]:
        return get_user_model().objects.filter(pk=customer_id, is_active=True).first()

    def search(self, search: OrderSearchFilter) -> List[Order]:
        plan = compile_order_search(search)
        orders = plan.fetch(Order.objects.select_related("customer", "staff"))
        logger.info("order.search_executed", clause_count=len(plan), result_count=len(orders))
        return orders

    def sales_summary(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> SalesSummary:
        in_range = (
            QueryBuilder()
            .on_or_after("order_date", date_from)
            .on_or_before("order_date", date_to)
            .compile(Order.objects.all())
            .order_by()
        )
        delivered = in_range.filter(status=OrderStatus.DELIVERED)

        totals = delivered.aggregate(
            count=Count("id"), revenue=Sum("final_amount"), average=Avg("final_amount")
        )
        breakdown = {
            row["status"]: row["count"]
            for row in in_range.values("status").annotate(count=Count("id"))
        }
        daily = [
            DailyRevenue(day=row["day"], orders=row["orders"], revenue=row["revenue"])
            for row in delivered.annotate(day=TruncDate("order_date"))
            .values("day")
            .annotate(orders=Count("id"), revenue=Sum("final_amount"))
            .order_by("day")
        ]
        average = totals["average"] or ZERO
        return SalesSummary(
            date_from=date_from,
            date_to=date_to,
            delivered_orders=totals["count"],
            revenue=totals["revenue"] or ZERO,
            average_order_value=Decimal(average).quantize(Decimal("0.01")),
            status_breakdown={str(status): breakdown.get(status, 0) for status in OrderStatus},
            daily=daily,
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def create(self, order: Order) -> Order:
        order.save(force_insert=True)
        logger.info("order.header_inserted", order_id=str(order.id), order_code=order.order_code)
        return order

    def add_item(self, order: Order, book: Book, quantity: int) -> OrderItem:
        item = OrderItem(
            order=order,
            book=book,
            book_title=book.title,
            book_author=book.author,
            book_image=book.image,
            unit_price=book.price,
            quantity=quantity,
        )
        item.save(force_insert=True)
        return item

    def add_history(
        self,
        order: Order,
        new_status: str,
        actor: ActorDTO,
        old_status: Optional[str] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory(
            order=order,
            old_status=old_status,
            new_status=new_status,
            actor_id=actor.user_id,
            actor_name=actor.name,
            notes=notes,
        )
        history.save(force_insert=True)
        logger.info(
            "order.history_added",
            order_id=str(order.id),
            old_status=old_status,
            new_status=new_status,
        )
        return history

    def save(self, entity: Order, fields: Optional[Iterable[str]] = None) -> Order:
        """Persist the order and write its pending domain events to the outbox."""
        if fields is None:
            entity.save()
        else:
            entity.save(update_fields=list(fields))

        events = entity.domain_events
        for event in events:
            OutboxEvent.record(event, topic=OUTBOX_TOPIC)
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    def delete(self, id: UUID | str) -> bool:
        raise InvalidArgument("Orders cannot be deleted; cancel them instead.")
