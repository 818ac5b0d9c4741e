"""
Subscription entity - platform-tier upgrades and fan-to-creator subscriptions.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.common.time import ensure_utc
from domain.revenue.entity import ProductType


class SubscriptionStatus(str, Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    ACTIVE = "ACTIVE"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    CANCELLED = "CANCELLED"


class SubscriptionTier(str, Enum):
    PLATFORM = "platform"  # platform plan upgrade, 100% platform revenue
    CREATOR = "creator"    # fan -> creator, 100% creator revenue


@dataclass
class Subscription:
    id: Optional[int]
    subscriber_id: int
    tier: SubscriptionTier
    amount: int
    currency: str = "INR"
    status: SubscriptionStatus = SubscriptionStatus.PENDING_PAYMENT
    creator_id: Optional[int] = None
    plan_id: Optional[str] = None
    active: bool = False

    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    gateway_subscription_id: Optional[str] = None
    failure_reason: Optional[str] = None

    activated_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount < 0:
            raise DomainValidationException(f"subscription amount cannot be negative: {self.amount}", field="amount")
        if self.tier == SubscriptionTier.CREATOR and self.creator_id is None:
            raise DomainValidationException("creator subscriptions require a creator", field="creator_id")
        self.activated_at = ensure_utc(self.activated_at)
        self.cancelled_at = ensure_utc(self.cancelled_at)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    @property
    def product_type(self) -> ProductType:
        if self.tier == SubscriptionTier.CREATOR:
            return ProductType.CREATOR_SUBSCRIPTION
        return ProductType.PLATFORM_SUBSCRIPTION

    @property
    def is_pending(self) -> bool:
        return self.status == SubscriptionStatus.PENDING_PAYMENT
