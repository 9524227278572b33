"""Engine-wide error taxonomy.

Every domain module raises subclasses of these bases so that the API
layer (``modules.core.api_errors``) can translate them without knowing
about individual modules.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for all engine errors."""

    code = "store_error"


class InvalidArgument(StoreError):
    """Malformed quantity, price, stock or enum input."""

    code = "invalid_argument"


class NotFound(StoreError):
    """A referenced book, category or order does not exist."""

    code = "not_found"


class InsufficientStock(StoreError):
    """A requested debit exceeds the available stock."""

    code = "insufficient_stock"


class InvalidTransition(StoreError):
    """An order status (or payment status) edge that is not allowed."""

    code = "invalid_transition"


class DuplicateOrderCode(StoreError):
    """Order-code generation kept colliding after the bounded retries."""

    code = "duplicate_order_code"


class StorageFailure(StoreError):
    """The underlying database or transaction failed."""

    code = "storage_failure"


class TransactionRequired(StorageFailure):
    """A stock primitive was called outside an enclosing transaction."""

    code = "transaction_required"
