"""Cart domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import InsufficientStock, InvalidArgument, NotFound


class OutOfStock(InsufficientStock):
    """The book has no stock left, so it cannot be staged."""

    code = "out_of_stock"


class StockLimitReached(InsufficientStock):
    """The staged quantity is already at the book's stock."""

    code = "stock_limit_reached"


class CartEntryNotFound(NotFound):
    code = "cart_entry_not_found"


class EmptyCart(InvalidArgument):
    code = "empty_cart"
