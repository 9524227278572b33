"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer and ``OrderWorkbook``.
DTOs are immutable (``frozen=True``).

- ``OrderLineDraft``: one requested line (book + quantity).
- ``ShippingInfo``: the customer contact snapshot stored on the order.
- ``OrderDraft``: input for order creation (nested lines).
- ``ActorDTO``: who performs a status change.
- ``OrderSearchFilter``: declarative order search.
- ``SalesSummary`` / ``DailyRevenue``: reporting output.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import OrderSortOption, OrderStatus, PaymentMethod

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderLineDraft(BaseModel):
    """A single requested line.

    The price is never taken from the client: ``OrderWorkbook`` resolves the
    unit price from the catalog at creation time.
    """

    model_config = ConfigDict(frozen=True)

    book_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class ShippingInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=32)
    address: str = Field(min_length=1)
    email: str = ""

    @field_validator("name", "phone", "address")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank.")
        return v


class OrderDraft(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one line.
    - Each line quantity must be positive.
    - A book appears at most once.
    - ``shipping_fee`` (when given) and ``discount_amount`` are non-negative.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: int
    items: List[OrderLineDraft]
    shipping: ShippingInfo
    payment_method: PaymentMethod = PaymentMethod.COD
    shipping_fee: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    notes: str = ""
    idempotency_key: Optional[str] = Field(default=None, max_length=255)

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderLineDraft]) -> List[OrderLineDraft]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_books(self):
        """Prevent duplicate book IDs in the same order."""
        book_ids = [item.book_id for item in self.items]
        if len(book_ids) != len(set(book_ids)):
            raise ValueError("Duplicate book IDs are not allowed in the same order.")
        return self


class ActorDTO(BaseModel):
    """The user behind a status change; ``user_id`` is ``None`` for the system."""

    model_config = ConfigDict(frozen=True)

    user_id: Optional[int] = None
    name: str = "system"
    is_staff: bool = False

    @classmethod
    def from_user(cls, user: Any) -> ActorDTO:
        name = user.get_full_name() or user.get_username()
        return cls(user_id=user.pk, name=name, is_staff=bool(user.is_staff))

    @classmethod
    def system(cls) -> ActorDTO:
        return cls()


class StatusChangeDTO(BaseModel):
    """Target status; decoded case-insensitively by the workbook."""

    model_config = ConfigDict(frozen=True)

    status: str = Field(min_length=1)
    notes: str = ""


class PaymentChangeDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    payment_status: str = Field(min_length=1)


class OrderSearchFilter(BaseModel):
    """Order search criteria.  Every field is optional; defaults add no clause."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    status: Optional[OrderStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    customer_id: Optional[int] = None
    staff_id: Optional[int] = None
    sort: OrderSortOption = OrderSortOption.NEWEST

    @model_validator(mode="after")
    def date_range_must_be_ordered(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to.")
        return self


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class DailyRevenue(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    orders: int
    revenue: Decimal


class SalesSummary(BaseModel):
    """Delivered-order revenue over a date range."""

    model_config = ConfigDict(frozen=True)

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    delivered_orders: int = 0
    revenue: Decimal = Decimal("0.00")
    average_order_value: Decimal = Decimal("0.00")
    status_breakdown: Dict[str, int] = Field(default_factory=dict)
    daily: List[DailyRevenue] = Field(default_factory=list)
