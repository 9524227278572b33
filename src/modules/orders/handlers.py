"""Event handlers for Orders domain events.

Handlers run in the Celery worker, after the outbox relay has committed the
originating transaction, and report to the staff notification sink.
"""

from __future__ import annotations

import structlog

from modules.core.notifications import INotifier, LogNotifier, NotificationKind
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderRestocked,
    OrderStatusChanged,
    PaymentStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class _NotifyingHandler:
    def __init__(self, notifier: INotifier | None = None) -> None:
        self._notifier = notifier or LogNotifier()


class OrderCreatedHandler(_NotifyingHandler, IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created_handled",
            order_id=str(event.aggregate_id),
            order_code=event.order_code,
        )
        self._notifier.report(
            f"New order {event.order_code} ({event.final_amount}).",
            NotificationKind.INFO,
        )


class OrderStatusChangedHandler(_NotifyingHandler, IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed_handled",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderCancelledHandler(_NotifyingHandler, IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info("order.event.cancelled_handled", order_id=str(event.aggregate_id))
        self._notifier.report(
            f"Order {event.order_code} was cancelled; stock has not been restored.",
            NotificationKind.WARNING,
        )


class OrderRestockedHandler(_NotifyingHandler, IEventHandler[OrderRestocked]):
    def handle(self, event: OrderRestocked) -> None:
        logger.info(
            "order.event.restocked_handled",
            order_id=str(event.aggregate_id),
            units=event.units,
        )


class PaymentStatusChangedHandler(_NotifyingHandler, IEventHandler[PaymentStatusChanged]):
    def handle(self, event: PaymentStatusChanged) -> None:
        logger.info(
            "order.event.payment_changed_handled",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_restocked_handler = OrderRestockedHandler()
payment_status_changed_handler = PaymentStatusChangedHandler()
