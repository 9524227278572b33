"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    order_code: str = ""
    customer_id: Optional[int] = None
    final_amount: str = "0.00"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every status transition, cancellation included."""

    order_code: str = ""
    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    order_code: str = ""


@dataclass(frozen=True)
class OrderRestocked(DomainEvent):
    """Raised when a cancelled order's lines are credited back to stock."""

    order_code: str = ""
    units: int = 0


@dataclass(frozen=True)
class PaymentStatusChanged(DomainEvent):
    order_code: str = ""
    old_status: str = ""
    new_status: str = ""
