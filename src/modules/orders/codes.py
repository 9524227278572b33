"""Order code generation.

Codes look like ``ORD20250101001``: the prefix, the order date as
``YYYYMMDD`` and a per-day sequence zero padded to three digits (it simply
widens past 999).  The sequence is the highest one already stored for that
day plus one, which equals the number of codes issued that day as long as
the day has no gaps.

Reading the highest sequence is not a reservation: two concurrent checkouts
can compute the same code.  ``orders.order_code`` is unique, and
``OrderWorkbook`` asks for a fresh code when the insert collides.  The
retry re-reads the stored codes, so it lands right after the winner's code
and the day's sequence stays contiguous.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from modules.orders.constants import ORDER_CODE_PREFIX, ORDER_CODE_SEQUENCE_WIDTH

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository


def code_prefix_for(day: date) -> str:
    if isinstance(day, datetime):
        day = day.date()
    return f"{ORDER_CODE_PREFIX}{day:%Y%m%d}"


def format_order_code(day: date, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("Order code sequence starts at 1.")
    return f"{code_prefix_for(day)}{sequence:0{ORDER_CODE_SEQUENCE_WIDTH}d}"


class OrderCodeGenerator:
    """Derives the next code for a day from the codes already stored."""

    def __init__(self, order_repository: IOrderRepository) -> None:
        self._orders = order_repository

    def next_code(self, day: date) -> str:
        highest = self._orders.highest_code_sequence(code_prefix_for(day))
        return format_order_code(day, highest + 1)
