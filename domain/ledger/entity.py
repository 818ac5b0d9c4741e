"""
Ledger transaction - audit record written with every settlement credit.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from domain.common.time import ensure_utc
from domain.revenue.entity import ProductType, RevenueSplit


class TransactionType(str, Enum):
    SUBSCRIPTION = "subscription"
    EVENT = "event"
    MERCH = "merch"
    OTHER = "other"


TRANSACTION_TYPE_BY_PRODUCT = {
    ProductType.PLATFORM_SUBSCRIPTION: TransactionType.SUBSCRIPTION,
    ProductType.CREATOR_SUBSCRIPTION: TransactionType.SUBSCRIPTION,
    ProductType.EVENT_TICKET: TransactionType.EVENT,
    ProductType.MERCHANDISE: TransactionType.MERCH,
    ProductType.OTHER: TransactionType.OTHER,
}


@dataclass
class LedgerTransaction:
    id: Optional[int]
    transaction_type: TransactionType
    gross_amount: int
    creator_net: int
    platform_fee: int
    cost_recovery: int
    currency: str
    # Unique per payment: "subscription:<id>" or "item:<id>"
    line_ref: str
    gateway_payment_id: str
    gateway_order_id: Optional[str] = None
    buyer_id: Optional[int] = None
    creator_id: Optional[int] = None
    order_id: Optional[int] = None
    subscription_id: Optional[int] = None
    description: Optional[str] = None
    status: str = "completed"
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.created_at = ensure_utc(self.created_at)

    @classmethod
    def from_split(
        cls,
        split: RevenueSplit,
        *,
        currency: str,
        line_ref: str,
        gateway_payment_id: str,
        **refs,
    ) -> "LedgerTransaction":
        return cls(
            id=None,
            transaction_type=TRANSACTION_TYPE_BY_PRODUCT[split.product_type],
            gross_amount=split.gross,
            creator_net=split.creator_net,
            platform_fee=split.platform_fee,
            cost_recovery=split.cost_recovery,
            currency=currency,
            line_ref=line_ref,
            gateway_payment_id=gateway_payment_id,
            **refs,
        )
