"""Order domain exceptions.

Raised by ``OrderWorkbook`` when business rules are violated.  They extend
the engine taxonomy in ``modules.core.exceptions`` so the API error
handler can map them to status codes.
"""

from __future__ import annotations

from modules.core.exceptions import InvalidArgument, InvalidTransition, NotFound


class OrderNotFound(NotFound):
    code = "order_not_found"


class CustomerNotFound(NotFound):
    """The customer placing the order does not exist."""

    code = "customer_not_found"


class InvalidOrderStatus(InvalidTransition):
    """The requested status edge is not in the state machine."""

    code = "invalid_order_status"


class InvalidPaymentStatus(InvalidTransition):
    code = "invalid_payment_status"


class RestockNotAllowed(InvalidTransition):
    """Only cancelled orders can be restocked, and only once."""

    code = "restock_not_allowed"


class InvalidOrderAmount(InvalidArgument):
    """Negative money, or a discount larger than subtotal plus shipping."""

    code = "invalid_order_amount"
