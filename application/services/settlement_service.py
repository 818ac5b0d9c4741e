"""
Settlement: apply a confirmed payment to the books.

One call = one unit of work. The entity status change, creator credits,
ledger rows and the durable webhook-event row commit together or not at all.
Both the webhook path and the synchronous verify path settle through here.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from application.dtos.payments import SettlementOutcome
from core.logging_config import get_logger
from core.settings import RevenueSettings
from domain.commerce.entity import CommerceOrder
from domain.common.time import utcnow
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.ledger.entity import LedgerTransaction
from domain.ledger.repository import WebhookEventAlreadyRecorded
from domain.revenue.entity import MerchCostTable, RevenueSplit
from domain.revenue.service import RevenueDistributor
from domain.subscription.entity import Subscription, SubscriptionStatus, SubscriptionTier


logger = get_logger(__name__)

UnitOfWorkFactory = Callable[[], AbstractUnitOfWork]

ALREADY_PROCESSED = "already_processed"
ALREADY_SETTLED = "already_settled"
NO_MATCHING_ENTITY = "no_matching_entity"


def build_revenue_distributor(revenue: RevenueSettings) -> RevenueDistributor:
    cost_table = MerchCostTable(
        unit_costs={category.lower(): cost.total for category, cost in revenue.merch_costs.items()},
    )
    return RevenueDistributor(
        cost_table=cost_table,
        platform_fee_bps=revenue.platform_fee_bps,
        event_creator_share_bps=revenue.event_creator_share_bps,
    )


class SettlementService:
    def __init__(self, uow_factory: UnitOfWorkFactory, distributor: RevenueDistributor) -> None:
        self._uow_factory = uow_factory
        self.distributor = distributor

    async def settle_payment_captured(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        *,
        amount: Optional[int] = None,
        event_id: Optional[str] = None,
        event_type: str = "payment.captured",
    ) -> SettlementOutcome:
        """Settle the pending subscription or order behind ``gateway_order_id``.

        Subscriptions are looked up first, then commerce orders. Returns
        ``already_processed`` when ``event_id`` was recorded before,
        ``already_settled`` when another delivery won the status race, and
        ``no_matching_entity`` when nothing pending matches.
        """
        try:
            async with self._uow_factory() as uow:
                if event_id and await uow.webhook_event_repository.exists(event_id):
                    logger.info("settlement_event_already_processed", event_id=event_id)
                    return SettlementOutcome(reason=ALREADY_PROCESSED)

                subscription = await uow.subscription_repository.get_pending_by_gateway_order_id(gateway_order_id)
                order = None
                if subscription is None:
                    order = await uow.order_repository.get_pending_by_gateway_order_id(gateway_order_id)
                if subscription is None and order is None:
                    logger.warning(
                        "settlement_no_matching_entity",
                        gateway_order_id=gateway_order_id,
                        gateway_payment_id=gateway_payment_id,
                    )
                    return SettlementOutcome(reason=NO_MATCHING_ENTITY)

                if event_id:
                    await uow.webhook_event_repository.record(event_id, event_type)

                if subscription is not None:
                    return await self._settle_subscription(uow, subscription, gateway_payment_id, amount)
                return await self._settle_order(uow, order, gateway_payment_id)
        except WebhookEventAlreadyRecorded:
            logger.info("settlement_event_recorded_concurrently", event_id=event_id)
            return SettlementOutcome(reason=ALREADY_PROCESSED)

    async def _settle_subscription(
        self,
        uow: AbstractUnitOfWork,
        subscription: Subscription,
        gateway_payment_id: str,
        amount: Optional[int],
    ) -> SettlementOutcome:
        activated = await uow.subscription_repository.activate_if_pending(
            subscription.id, gateway_payment_id=gateway_payment_id, at=utcnow()
        )
        if not activated:
            logger.info("subscription_already_settled", subscription_id=subscription.id)
            return SettlementOutcome(reason=ALREADY_SETTLED, entity="subscription", entity_id=subscription.id)

        gross = amount if amount is not None else subscription.amount
        split = self.distributor.distribute(gross, subscription.product_type)
        credited = {}
        if subscription.tier == SubscriptionTier.CREATOR:
            credited = await self._credit(uow, subscription.creator_id, split)

        txn = LedgerTransaction.from_split(
            split,
            currency=subscription.currency,
            line_ref=f"subscription:{subscription.id}",
            gateway_payment_id=gateway_payment_id,
            gateway_order_id=subscription.gateway_order_id,
            buyer_id=subscription.subscriber_id,
            creator_id=subscription.creator_id,
            subscription_id=subscription.id,
            description=f"{subscription.tier.value} subscription {subscription.plan_id or ''}".strip(),
        )
        await uow.transaction_repository.add_many([txn])
        logger.info(
            "subscription_settled",
            subscription_id=subscription.id,
            gateway_payment_id=gateway_payment_id,
            gross=split.gross,
            creator_net=split.creator_net,
            platform_fee=split.platform_fee,
        )
        return SettlementOutcome(
            reason="subscription_activated",
            entity="subscription",
            entity_id=subscription.id,
            status=SubscriptionStatus.ACTIVE.value,
            transactions=1,
            credited=credited,
        )

    async def _settle_order(
        self,
        uow: AbstractUnitOfWork,
        order: CommerceOrder,
        gateway_payment_id: str,
    ) -> SettlementOutcome:
        paid = await uow.order_repository.mark_paid_if_pending(
            order.id, gateway_payment_id=gateway_payment_id, at=utcnow()
        )
        if not paid:
            logger.info("order_already_settled", order_id=order.id)
            return SettlementOutcome(reason=ALREADY_SETTLED, entity="order", entity_id=order.id)

        credited: dict[str, int] = {}
        transactions: List[LedgerTransaction] = []
        for item in order.items:
            split = self.distributor.distribute_item(
                item_type=item.item_type,
                unit_price=item.unit_price,
                quantity=item.quantity,
                category=item.category,
            )
            if item.creator_id is not None:
                for creator, value in (await self._credit(uow, item.creator_id, split)).items():
                    credited[creator] = credited.get(creator, 0) + value
            transactions.append(
                LedgerTransaction.from_split(
                    split,
                    currency=order.currency,
                    line_ref=f"item:{item.id}",
                    gateway_payment_id=gateway_payment_id,
                    gateway_order_id=order.gateway_order_id,
                    buyer_id=order.buyer_id,
                    creator_id=item.creator_id,
                    order_id=order.id,
                    description=item.name or item.item_type,
                )
            )
        await uow.transaction_repository.add_many(transactions)
        logger.info(
            "order_settled",
            order_id=order.id,
            gateway_payment_id=gateway_payment_id,
            items=len(order.items),
            credited=credited,
        )
        return SettlementOutcome(
            reason="order_paid",
            entity="order",
            entity_id=order.id,
            status="PAID",
            transactions=len(transactions),
            credited=credited,
        )

    async def _credit(self, uow: AbstractUnitOfWork, creator_id: int, split: RevenueSplit) -> dict[str, int]:
        source = split.revenue_source
        if split.creator_net <= 0 or source is None:
            return {}
        if not await uow.creator_repository.credit(creator_id, split.creator_net, source):
            logger.error(
                "settlement_creator_missing",
                creator_id=creator_id,
                amount=split.creator_net,
                product_type=split.product_type.value,
            )
            return {}
        return {str(creator_id): split.creator_net}

    async def mark_payment_failed(
        self,
        gateway_order_id: str,
        *,
        reason: Optional[str] = None,
        gateway_payment_id: Optional[str] = None,
    ) -> SettlementOutcome:
        async with self._uow_factory() as uow:
            subscription = await uow.subscription_repository.get_pending_by_gateway_order_id(gateway_order_id)
            if subscription is not None:
                changed = await uow.subscription_repository.fail_if_pending(
                    subscription.id, reason=reason, at=utcnow()
                )
                logger.warning(
                    "subscription_payment_failed",
                    subscription_id=subscription.id,
                    gateway_payment_id=gateway_payment_id,
                    reason=reason,
                )
                return SettlementOutcome(
                    reason="subscription_payment_failed" if changed else ALREADY_SETTLED,
                    entity="subscription",
                    entity_id=subscription.id,
                    status=SubscriptionStatus.PAYMENT_FAILED.value if changed else None,
                )

            order = await uow.order_repository.get_pending_by_gateway_order_id(gateway_order_id)
            if order is not None:
                changed = await uow.order_repository.mark_failed_if_pending(order.id, reason=reason, at=utcnow())
                logger.warning(
                    "order_payment_failed",
                    order_id=order.id,
                    gateway_payment_id=gateway_payment_id,
                    reason=reason,
                )
                return SettlementOutcome(
                    reason="order_payment_failed" if changed else ALREADY_SETTLED,
                    entity="order",
                    entity_id=order.id,
                    status="FAILED" if changed else None,
                )

        logger.warning("payment_failed_no_matching_entity", gateway_order_id=gateway_order_id)
        return SettlementOutcome(reason=NO_MATCHING_ENTITY)

    async def acknowledge_subscription_activated(self, gateway_subscription_id: str) -> SettlementOutcome:
        async with self._uow_factory() as uow:
            subscription = await uow.subscription_repository.get_by_gateway_subscription_id(gateway_subscription_id)
        if subscription is None:
            logger.warning("subscription_activated_unknown", gateway_subscription_id=gateway_subscription_id)
            return SettlementOutcome(reason=NO_MATCHING_ENTITY)
        logger.info(
            "subscription_activated",
            subscription_id=subscription.id,
            gateway_subscription_id=gateway_subscription_id,
        )
        return SettlementOutcome(
            reason="subscription_activated",
            entity="subscription",
            entity_id=subscription.id,
            status=subscription.status.value,
        )

    async def cancel_subscription(self, gateway_subscription_id: str) -> SettlementOutcome:
        async with self._uow_factory() as uow:
            subscription = await uow.subscription_repository.get_by_gateway_subscription_id(gateway_subscription_id)
            if subscription is None:
                logger.warning("subscription_cancel_unknown", gateway_subscription_id=gateway_subscription_id)
                return SettlementOutcome(reason=NO_MATCHING_ENTITY)
            cancelled = await uow.subscription_repository.cancel(subscription.id, at=utcnow())
        logger.info("subscription_cancelled", subscription_id=subscription.id, changed=cancelled)
        return SettlementOutcome(
            reason="subscription_cancelled" if cancelled else ALREADY_SETTLED,
            entity="subscription",
            entity_id=subscription.id,
            status=SubscriptionStatus.CANCELLED.value,
        )
