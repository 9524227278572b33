"""Cart request DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from modules.orders.constants import PaymentMethod
from modules.orders.dtos import ShippingInfo


class AddCartItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    book_id: UUID
    quantity: int = Field(default=1, ge=1)


class SetCartQuantityDTO(BaseModel):
    """``quantity <= 0`` removes the entry."""

    model_config = ConfigDict(frozen=True)

    quantity: int


class CheckoutDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    shipping: ShippingInfo
    payment_method: PaymentMethod = PaymentMethod.COD
    notes: str = ""
    idempotency_key: Optional[str] = Field(default=None, max_length=255)
