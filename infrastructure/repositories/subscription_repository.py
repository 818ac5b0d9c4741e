"""
订阅仓储实现
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.subscription.entity import Subscription, SubscriptionStatus, SubscriptionTier
from domain.subscription.repository import SubscriptionRepository
from infrastructure.models.subscription import SubscriptionModel


class SQLAlchemySubscriptionRepository(SubscriptionRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: SubscriptionModel) -> Subscription:
        return Subscription(
            id=model.id,
            subscriber_id=model.subscriber_id,
            tier=SubscriptionTier(model.tier),
            amount=model.amount,
            currency=model.currency,
            status=SubscriptionStatus(model.status),
            creator_id=model.creator_id,
            plan_id=model.plan_id,
            active=model.active,
            gateway_order_id=model.gateway_order_id,
            gateway_payment_id=model.gateway_payment_id,
            gateway_subscription_id=model.gateway_subscription_id,
            failure_reason=model.failure_reason,
            activated_at=model.activated_at,
            cancelled_at=model.cancelled_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Subscription) -> SubscriptionModel:
        return SubscriptionModel(
            id=entity.id,
            subscriber_id=entity.subscriber_id,
            tier=entity.tier.value,
            amount=entity.amount,
            currency=entity.currency,
            status=entity.status.value,
            creator_id=entity.creator_id,
            plan_id=entity.plan_id,
            active=entity.active,
            gateway_order_id=entity.gateway_order_id,
            gateway_payment_id=entity.gateway_payment_id,
            gateway_subscription_id=entity.gateway_subscription_id,
            failure_reason=entity.failure_reason,
            activated_at=entity.activated_at,
            cancelled_at=entity.cancelled_at,
        )

    async def create(self, subscription: Subscription) -> Subscription:
        db_subscription = self._to_model(subscription)
        self.session.add(db_subscription)
        await self.session.flush()
        await self.session.refresh(db_subscription)
        return self._to_entity(db_subscription)

    async def _first(self, *criteria) -> Optional[Subscription]:
        result = await self.session.execute(
            select(SubscriptionModel)
            .where(*criteria)
            .order_by(SubscriptionModel.id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        db_subscription = result.scalar_one_or_none()
        return self._to_entity(db_subscription) if db_subscription else None

    async def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        return await self._first(SubscriptionModel.id == subscription_id)

    async def get_pending_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Subscription]:
        return await self._first(
            SubscriptionModel.gateway_order_id == gateway_order_id,
            SubscriptionModel.status == SubscriptionStatus.PENDING_PAYMENT.value,
        )

    async def get_by_gateway_subscription_id(self, gateway_subscription_id: str) -> Optional[Subscription]:
        return await self._first(SubscriptionModel.gateway_subscription_id == gateway_subscription_id)

    async def _transition(self, subscription_id: int, source: SubscriptionStatus, **values) -> bool:
        result = await self.session.execute(
            update(SubscriptionModel)
            .where(SubscriptionModel.id == subscription_id, SubscriptionModel.status == source.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def activate_if_pending(self, subscription_id: int, *, gateway_payment_id: str, at: datetime) -> bool:
        return await self._transition(
            subscription_id,
            SubscriptionStatus.PENDING_PAYMENT,
            status=SubscriptionStatus.ACTIVE.value,
            active=True,
            gateway_payment_id=gateway_payment_id,
            activated_at=at,
            updated_at=at,
        )

    async def fail_if_pending(self, subscription_id: int, *, reason: Optional[str], at: datetime) -> bool:
        return await self._transition(
            subscription_id,
            SubscriptionStatus.PENDING_PAYMENT,
            status=SubscriptionStatus.PAYMENT_FAILED.value,
            failure_reason=reason,
            updated_at=at,
        )

    async def cancel(self, subscription_id: int, *, at: datetime) -> bool:
        return await self._transition(
            subscription_id,
            SubscriptionStatus.ACTIVE,
            status=SubscriptionStatus.CANCELLED.value,
            active=False,
            cancelled_at=at,
            updated_at=at,
        )
