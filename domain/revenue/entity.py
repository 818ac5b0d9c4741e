"""
Revenue split value objects.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from domain.common.exceptions import DomainValidationException


class ProductType(str, Enum):
    PLATFORM_SUBSCRIPTION = "platform_subscription"
    CREATOR_SUBSCRIPTION = "creator_subscription"
    EVENT_TICKET = "event_ticket"
    MERCHANDISE = "merchandise"
    # Line items the engine settles but does not share with a creator
    OTHER = "other"


class RevenueSource(str, Enum):
    """Creator revenue buckets."""
    SUBSCRIPTIONS = "subscriptions"
    MERCHANDISE = "merchandise"
    EVENTS = "events"
    ADS = "ads"


REVENUE_SOURCE_BY_PRODUCT = {
    ProductType.CREATOR_SUBSCRIPTION: RevenueSource.SUBSCRIPTIONS,
    ProductType.EVENT_TICKET: RevenueSource.EVENTS,
    ProductType.MERCHANDISE: RevenueSource.MERCHANDISE,
}


@dataclass(frozen=True)
class RevenueSplit:
    """Derived, never persisted as such.

    Invariant: ``platform_fee + cost_recovery + creator_net == gross``.
    """

    gross: int
    product_type: ProductType
    platform_fee: int
    cost_recovery: int
    creator_net: int

    def __post_init__(self):
        parts = self.platform_fee + self.cost_recovery + self.creator_net
        if parts != self.gross:
            raise DomainValidationException(
                f"Revenue split does not add up: {parts} != {self.gross}",
                field="gross",
            )
        if min(self.platform_fee, self.cost_recovery, self.creator_net) < 0:
            raise DomainValidationException("Revenue split parts must be non-negative", field="gross")

    @property
    def platform_revenue(self) -> int:
        """Everything the platform keeps: fee plus recovered cost."""
        return self.platform_fee + self.cost_recovery

    @property
    def revenue_source(self) -> Optional[RevenueSource]:
        return REVENUE_SOURCE_BY_PRODUCT.get(self.product_type)

    def to_dict(self) -> dict:
        return {
            "gross": self.gross,
            "product_type": self.product_type.value,
            "platform_fee": self.platform_fee,
            "cost_recovery": self.cost_recovery,
            "creator_net": self.creator_net,
        }


@dataclass(frozen=True)
class MerchCostTable:
    """Per-category unit cost in minor units, with a default bucket."""

    unit_costs: Mapping[str, int] = field(default_factory=dict)
    default_category: str = "default"

    def __post_init__(self):
        if any(cost < 0 for cost in self.unit_costs.values()):
            raise DomainValidationException("Merchandise unit cost cannot be negative", field="unit_costs")

    def unit_cost(self, category: Optional[str]) -> int:
        if category:
            cost = self.unit_costs.get(category.lower())
            if cost is not None:
                return cost
        return self.unit_costs.get(self.default_category, 0)

    def cost_basis(self, category: Optional[str], quantity: int) -> int:
        if quantity < 0:
            raise DomainValidationException("Quantity cannot be negative", field="quantity")
        return self.unit_cost(category) * quantity
