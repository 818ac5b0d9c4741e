"""
商品订单仓储实现
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.commerce.entity import CommerceOrder, OrderItem, OrderStatus
from domain.commerce.repository import CommerceOrderRepository
from infrastructure.models.commerce import CommerceOrderItemModel, CommerceOrderModel


class SQLAlchemyCommerceOrderRepository(CommerceOrderRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _item_to_entity(model: CommerceOrderItemModel) -> OrderItem:
        return OrderItem(
            id=model.id,
            order_id=model.order_id,
            item_type=model.item_type,
            item_ref=model.item_ref,
            name=model.name,
            category=model.category,
            creator_id=model.creator_id,
            unit_price=model.unit_price,
            quantity=model.quantity,
        )

    def _to_entity(self, model: CommerceOrderModel) -> CommerceOrder:
        return CommerceOrder(
            id=model.id,
            buyer_id=model.buyer_id,
            total_amount=model.total_amount,
            currency=model.currency,
            status=OrderStatus(model.status),
            items=[self._item_to_entity(item) for item in model.items],
            gateway_order_id=model.gateway_order_id,
            gateway_payment_id=model.gateway_payment_id,
            failure_reason=model.failure_reason,
            paid_at=model.paid_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: CommerceOrder) -> CommerceOrderModel:
        return CommerceOrderModel(
            id=entity.id,
            buyer_id=entity.buyer_id,
            total_amount=entity.total_amount,
            currency=entity.currency,
            status=entity.status.value,
            gateway_order_id=entity.gateway_order_id,
            gateway_payment_id=entity.gateway_payment_id,
            failure_reason=entity.failure_reason,
            paid_at=entity.paid_at,
            items=[
                CommerceOrderItemModel(
                    id=item.id,
                    item_type=item.item_type,
                    item_ref=item.item_ref,
                    name=item.name,
                    category=item.category,
                    creator_id=item.creator_id,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                )
                for item in entity.items
            ],
        )

    async def create(self, order: CommerceOrder) -> CommerceOrder:
        db_order = self._to_model(order)
        self.session.add(db_order)
        await self.session.flush()
        await self.session.refresh(db_order, attribute_names=["items"])
        return self._to_entity(db_order)

    async def _first(self, *criteria) -> Optional[CommerceOrder]:
        result = await self.session.execute(
            select(CommerceOrderModel)
            .where(*criteria)
            .order_by(CommerceOrderModel.id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def get_by_id(self, order_id: int) -> Optional[CommerceOrder]:
        return await self._first(CommerceOrderModel.id == order_id)

    async def get_pending_by_gateway_order_id(self, gateway_order_id: str) -> Optional[CommerceOrder]:
        return await self._first(
            CommerceOrderModel.gateway_order_id == gateway_order_id,
            CommerceOrderModel.status == OrderStatus.PENDING.value,
        )

    async def _transition(self, order_id: int, **values) -> bool:
        result = await self.session.execute(
            update(CommerceOrderModel)
            .where(CommerceOrderModel.id == order_id, CommerceOrderModel.status == OrderStatus.PENDING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def mark_paid_if_pending(self, order_id: int, *, gateway_payment_id: str, at: datetime) -> bool:
        return await self._transition(
            order_id,
            status=OrderStatus.PAID.value,
            gateway_payment_id=gateway_payment_id,
            paid_at=at,
            updated_at=at,
        )

    async def mark_failed_if_pending(self, order_id: int, *, reason: Optional[str], at: datetime) -> bool:
        return await self._transition(
            order_id, status=OrderStatus.FAILED.value, failure_reason=reason, updated_at=at
        )
