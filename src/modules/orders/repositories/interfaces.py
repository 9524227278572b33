"""Order repository interface.

Extends ``IRepository[Order]`` with the look-ups and writes required by
the Order aggregate: code and idempotency-key look-up, row locking for
transitions, line items, status history and reporting.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Book
    from modules.orders.dtos import ActorDTO, OrderSearchFilter, SalesSummary
    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must run inside the caller's
    transaction.
    """

    @abstractmethod
    def get_by_id(self, id: UUID | str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def get_for_update(self, id: UUID | str) -> Optional[Order]:
        """Retrieve an order under a row-level lock."""

    @abstractmethod
    def get_by_code(self, order_code: str) -> Optional[Order]:
        ...

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        ...

    @abstractmethod
    def highest_code_sequence(self, prefix: str) -> int:
        """Largest sequence among stored codes starting with ``prefix``; 0 when none."""

    @abstractmethod
    def get_customer(self, customer_id: int) -> Optional[Any]:
        """Active auth user placing the order, or ``None``."""

    @abstractmethod
    def create(self, order: Order) -> Order:
        """INSERT the header; raises ``IntegrityError`` on a duplicate code or key."""

    @abstractmethod
    def add_item(self, order: Order, book: Book, quantity: int) -> OrderItem:
        """Insert one line with a snapshot of ``book`` at its current price."""

    @abstractmethod
    def add_history(
        self,
        order: Order,
        new_status: str,
        actor: ActorDTO,
        old_status: Optional[str] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def save(self, entity: Order, fields: Optional[Iterable[str]] = None) -> Order:
        """Persist the order and flush its domain events to the outbox."""

    @abstractmethod
    def search(self, search: OrderSearchFilter) -> List[Order]:
        ...

    @abstractmethod
    def sales_summary(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> SalesSummary:
        ...
