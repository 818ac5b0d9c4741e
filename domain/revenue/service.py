"""
Revenue distributor - commercial split of a gross sale.

All arithmetic is integer minor units. The creator share is computed first
and floored; whatever residue division leaves goes to the platform so the
parts always add back up to the gross.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.revenue.entity import MerchCostTable, ProductType, RevenueSplit


BPS_DENOMINATOR = 10_000

ITEM_TYPE_TO_PRODUCT = {
    "merch": ProductType.MERCHANDISE,
    "merchandise": ProductType.MERCHANDISE,
    "ticket": ProductType.EVENT_TICKET,
    "event": ProductType.EVENT_TICKET,
    "event_ticket": ProductType.EVENT_TICKET,
}


def product_type_for_item(item_type: Optional[str]) -> ProductType:
    return ITEM_TYPE_TO_PRODUCT.get((item_type or "").lower(), ProductType.OTHER)


class RevenueDistributor:
    def __init__(
        self,
        *,
        cost_table: Optional[MerchCostTable] = None,
        platform_fee_bps: int = 1000,
        event_creator_share_bps: int = 9000,
    ) -> None:
        if not 0 <= platform_fee_bps <= BPS_DENOMINATOR:
            raise DomainValidationException("platform fee must be within 0..10000 bps", field="platform_fee_bps")
        if not 0 <= event_creator_share_bps <= BPS_DENOMINATOR:
            raise DomainValidationException(
                "event creator share must be within 0..10000 bps", field="event_creator_share_bps"
            )
        self.cost_table = cost_table or MerchCostTable()
        self.platform_fee_bps = platform_fee_bps
        self.event_creator_share_bps = event_creator_share_bps

    def distribute(self, gross: int, product_type: ProductType, cost_basis: Optional[int] = None) -> RevenueSplit:
        if not isinstance(gross, int) or isinstance(gross, bool):
            raise DomainValidationException("gross amount must be an integer in minor units", field="gross")
        if gross < 0:
            raise DomainValidationException("gross amount cannot be negative", field="gross")
        product_type = ProductType(product_type)

        if product_type is ProductType.CREATOR_SUBSCRIPTION:
            return RevenueSplit(gross, product_type, platform_fee=0, cost_recovery=0, creator_net=gross)

        if product_type is ProductType.EVENT_TICKET:
            creator_net = gross * self.event_creator_share_bps // BPS_DENOMINATOR
            return RevenueSplit(
                gross, product_type, platform_fee=gross - creator_net, cost_recovery=0, creator_net=creator_net
            )

        if product_type is ProductType.MERCHANDISE:
            return self._split_merchandise(gross, cost_basis or 0)

        # platform subscriptions and unshared items
        return RevenueSplit(gross, product_type, platform_fee=gross, cost_recovery=0, creator_net=0)

    def distribute_item(
        self,
        *,
        item_type: Optional[str],
        unit_price: int,
        quantity: int,
        category: Optional[str] = None,
    ) -> RevenueSplit:
        """Split one order line item (pre-tax ``unit_price * quantity``)."""
        if quantity <= 0:
            raise DomainValidationException("quantity must be positive", field="quantity")
        product_type = product_type_for_item(item_type)
        cost_basis = None
        if product_type is ProductType.MERCHANDISE:
            cost_basis = self.cost_table.cost_basis(category, quantity)
        return self.distribute(unit_price * quantity, product_type, cost_basis)

    def _split_merchandise(self, gross: int, cost_basis: int) -> RevenueSplit:
        if cost_basis < 0:
            raise DomainValidationException("cost basis cannot be negative", field="cost_basis")
        creator_keep_bps = BPS_DENOMINATOR - self.platform_fee_bps
        # floor((gross * keep - cost * 10000) / 10000) == floor(gross - fee - cost)
        creator_net = max(0, (gross * creator_keep_bps - cost_basis * BPS_DENOMINATOR) // BPS_DENOMINATOR)
        cost_recovery = min(cost_basis, gross)
        platform_fee = gross - creator_net - cost_recovery
        return RevenueSplit(
            gross,
            ProductType.MERCHANDISE,
            platform_fee=platform_fee,
            cost_recovery=cost_recovery,
            creator_net=creator_net,
        )


def preview_split(
    distributor: RevenueDistributor,
    *,
    product_type: str,
    gross: Optional[int] = None,
    unit_price: Optional[int] = None,
    quantity: int = 1,
    category: Optional[str] = None,
) -> RevenueSplit:
    """Price a sale without touching any balance.

    ``unit_price`` treats ``product_type`` as an order item type (merch, ticket, ...);
    otherwise ``gross`` is split as the named product type.
    """
    if unit_price is not None:
        return distributor.distribute_item(
            item_type=product_type, unit_price=unit_price, quantity=quantity, category=category
        )
    if gross is None:
        raise DomainValidationException("either gross or unit_price is required", field="gross")
    try:
        kind = ProductType(product_type)
    except ValueError:
        raise DomainValidationException(f"unknown product type: {product_type}", field="product_type") from None
    cost_basis = None
    if kind is ProductType.MERCHANDISE:
        cost_basis = distributor.cost_table.cost_basis(category, quantity)
    return distributor.distribute(gross, kind, cost_basis)
