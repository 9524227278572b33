"""Cart Aggregator: per-user staging of book selections before checkout.

A cart is an explicit object owned by one user session (see
``modules.cart.registry``), never a process-wide singleton.  It holds
entries in memory only; nothing is persisted until checkout.

Invariant: every entry satisfies ``1 <= quantity <= book.stock``.  A
mutation that would break it is rejected and leaves the cart unchanged;
quantities are never clamped silently.  The one exception is
``refresh()``, which re-reads live stock and explicitly reports every
entry it had to reduce or drop.

Mutations are serialized by one re-entrant lock per cart, and listeners
are notified synchronously after each successful mutation.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Protocol, Tuple
from uuid import UUID

import structlog

from modules.cart.exceptions import CartEntryNotFound, OutOfStock, StockLimitReached
from modules.catalog.constants import BookStatus
from modules.catalog.exceptions import BookNotFound, BookUnavailable
from modules.core.exceptions import InvalidArgument

if TYPE_CHECKING:
    from modules.catalog.models import Book
    from modules.catalog.repositories.interfaces import IBookRepository

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


@dataclass
class CartEntry:
    """A staged book and its quantity."""

    book: Book
    quantity: int = 1

    @property
    def book_id(self) -> UUID:
        return self.book.id

    @property
    def unit_price(self) -> Decimal:
        return self.book.price

    @property
    def line_total(self) -> Decimal:
        return self.book.price * self.quantity


@dataclass(frozen=True)
class CartAdjustment:
    """An entry reduced or dropped by ``refresh()``; ``new_quantity`` 0 means dropped."""

    book_id: UUID
    title: str
    old_quantity: int
    new_quantity: int
    reason: str


class CartListener(Protocol):
    def on_cart_updated(self, cart: CartAggregator) -> None: ...


def _require_quantity(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise InvalidArgument(f"Quantity must be a positive integer, got {quantity!r}.")


class CartAggregator:
    """Stock-bounded staging area for one user's selections.

    When bound to a book repository, bound checks use the live stock of
    the book instead of the snapshot taken when it was staged.
    """

    def __init__(self, book_repository: Optional[IBookRepository] = None) -> None:
        self._books = book_repository
        self._entries: Dict[UUID, CartEntry] = {}
        self._listeners: List[CartListener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: CartListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: CartListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> Tuple[CartListener, ...]:
        return tuple(self._listeners)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener.on_cart_updated(self)

    @contextmanager
    def locked(self) -> Iterator[CartAggregator]:
        """Hold the cart lock across several calls (used by checkout)."""
        with self._lock:
            yield self

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, book: Book, quantity: int = 1) -> CartEntry:
        """Stage ``quantity`` more units of ``book``.

        Raises:
            BookUnavailable: the book is inactive.
            OutOfStock: the book has no stock.
            StockLimitReached: the result would exceed the stock; cart unchanged.
        """
        _require_quantity(quantity)
        with self._lock:
            book = self._live(book.id, book)
            if book.status != BookStatus.ACTIVE:
                raise BookUnavailable(f"Book {book.title!r} is not available for sale.")
            if book.stock == 0:
                raise OutOfStock(f"Book {book.title!r} is out of stock.")

            entry = self._entries.get(book.id)
            staged = entry.quantity if entry else 0
            if staged + quantity > book.stock:
                raise StockLimitReached(
                    f"Only {book.stock} of {book.title!r} in stock; {staged} already in cart."
                )
            if entry:
                entry.book = book
                entry.quantity = staged + quantity
            else:
                entry = CartEntry(book=book, quantity=quantity)
                self._entries[book.id] = entry
            logger.debug("cart.item_added", book_id=str(book.id), quantity=entry.quantity)
            self._notify()
            return replace(entry)

    def increase(self, book_id: UUID) -> CartEntry:
        with self._lock:
            entry = self._entry(book_id)
            return self._set(entry, entry.quantity + 1)

    def decrease(self, book_id: UUID) -> Optional[CartEntry]:
        """Remove one unit; the entry disappears when it would drop to zero.

        Raises:
            StockLimitReached: live stock fell more than one unit below the
                staged quantity; the cart is unchanged and ``refresh()``
                fits it to current stock.
        """
        with self._lock:
            entry = self._entry(book_id)
            if entry.quantity <= 1:
                del self._entries[entry.book_id]
                self._notify()
                return None
            return self._set(entry, entry.quantity - 1)

    def set_quantity(self, book_id: UUID, quantity: int) -> Optional[CartEntry]:
        """Set an entry's quantity; ``quantity <= 0`` removes it."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidArgument(f"Quantity must be an integer, got {quantity!r}.")
        with self._lock:
            if quantity <= 0:
                self.remove(book_id)
                return None
            return self._set(self._entry(book_id), quantity)

    def remove(self, book_id: UUID) -> None:
        with self._lock:
            self._entries.pop(book_id, None)
            self._notify()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._notify()

    def refresh(self) -> List[CartAdjustment]:
        """Re-read every staged book and fit the cart to current stock.

        Entries for deleted, inactive or sold-out books are dropped; entries
        above the current stock are reduced to it.  Prices are updated.
        """
        adjustments: List[CartAdjustment] = []
        with self._lock:
            if self._books is None:
                return adjustments
            live = {book.id: book for book in self._books.get_many(list(self._entries))}
            for book_id, entry in list(self._entries.items()):
                book = live.get(book_id)
                reason = ""
                if book is None:
                    reason = "not_found"
                elif book.status != BookStatus.ACTIVE:
                    reason = "unavailable"
                elif book.stock == 0:
                    reason = "out_of_stock"
                if reason:
                    del self._entries[book_id]
                    adjustments.append(
                        CartAdjustment(book_id, entry.book.title, entry.quantity, 0, reason)
                    )
                    continue
                entry.book = book
                if entry.quantity > book.stock:
                    adjustments.append(
                        CartAdjustment(
                            book_id, book.title, entry.quantity, book.stock, "stock_reduced"
                        )
                    )
                    entry.quantity = book.stock
            if adjustments:
                logger.info("cart.refreshed", adjustment_count=len(adjustments))
            self._notify()
        return adjustments

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def entries(self) -> List[CartEntry]:
        """Copies of the entries, in staging order."""
        with self._lock:
            return [replace(entry) for entry in self._entries.values()]

    def snapshot(self) -> List[Tuple[UUID, int]]:
        with self._lock:
            return [(entry.book_id, entry.quantity) for entry in self._entries.values()]

    def contains(self, book_id: UUID) -> bool:
        return book_id in self._entries

    def quantity_of(self, book_id: UUID) -> int:
        entry = self._entries.get(book_id)
        return entry.quantity if entry else 0

    def item_count(self) -> int:
        with self._lock:
            return sum(entry.quantity for entry in self._entries.values())

    def total_price(self) -> Decimal:
        with self._lock:
            return sum((entry.line_total for entry in self._entries.values()), ZERO)

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _entry(self, book_id: UUID) -> CartEntry:
        entry = self._entries.get(book_id)
        if entry is None:
            raise CartEntryNotFound(f"Book {book_id} is not in the cart.")
        return entry

    def _live(self, book_id: UUID, fallback: Book) -> Book:
        if self._books is None:
            return fallback
        book = self._books.get_by_id(book_id)
        if book is None:
            raise BookNotFound(f"Book {book_id} not found.")
        return book

    def _set(self, entry: CartEntry, quantity: int) -> CartEntry:
        book = self._live(entry.book_id, entry.book)
        if quantity > book.stock:
            raise StockLimitReached(
                f"Only {book.stock} of {book.title!r} in stock; cannot stage {quantity}."
            )
        entry.book = book
        entry.quantity = quantity
        self._notify()
        return replace(entry)
