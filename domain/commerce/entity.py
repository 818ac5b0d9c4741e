"""
Commerce order entity - the engine only tracks payment status and line items.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from domain.common.exceptions import DomainValidationException
from domain.common.time import ensure_utc


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


@dataclass
class OrderItem:
    id: Optional[int]
    item_type: str  # merch / ticket / event / other
    unit_price: int
    quantity: int = 1
    item_ref: Optional[str] = None
    creator_id: Optional[int] = None
    category: Optional[str] = None
    name: Optional[str] = None
    order_id: Optional[int] = None

    def __post_init__(self):
        if self.unit_price < 0:
            raise DomainValidationException(f"unit price cannot be negative: {self.unit_price}", field="unit_price")
        if self.quantity <= 0:
            raise DomainValidationException(f"quantity must be positive: {self.quantity}", field="quantity")

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass
class CommerceOrder:
    id: Optional[int]
    buyer_id: int
    total_amount: int
    currency: str = "INR"
    status: OrderStatus = OrderStatus.PENDING
    items: List[OrderItem] = field(default_factory=list)

    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    failure_reason: Optional[str] = None

    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.total_amount < 0:
            raise DomainValidationException(f"order total cannot be negative: {self.total_amount}", field="total_amount")
        self.paid_at = ensure_utc(self.paid_at)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING
