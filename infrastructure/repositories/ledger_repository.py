"""
结算流水与回调事件去重仓储实现
"""
from typing import List, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.ledger.entity import LedgerTransaction, TransactionType
from domain.ledger.repository import (
    LedgerTransactionRepository,
    ProcessedWebhookEventRepository,
    WebhookEventAlreadyRecorded,
)
from infrastructure.models.ledger import LedgerTransactionModel, ProcessedWebhookEventModel


logger = get_logger(__name__)


class SQLAlchemyLedgerTransactionRepository(LedgerTransactionRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: LedgerTransactionModel) -> LedgerTransaction:
        return LedgerTransaction(
            id=model.id,
            transaction_type=TransactionType(model.transaction_type),
            gross_amount=model.gross_amount,
            creator_net=model.creator_net,
            platform_fee=model.platform_fee,
            cost_recovery=model.cost_recovery,
            currency=model.currency,
            line_ref=model.line_ref,
            gateway_payment_id=model.gateway_payment_id,
            gateway_order_id=model.gateway_order_id,
            buyer_id=model.buyer_id,
            creator_id=model.creator_id,
            order_id=model.order_id,
            subscription_id=model.subscription_id,
            description=model.description,
            status=model.status,
            created_at=model.created_at,
        )

    def _to_model(self, entity: LedgerTransaction) -> LedgerTransactionModel:
        return LedgerTransactionModel(
            id=entity.id,
            transaction_type=entity.transaction_type.value,
            gross_amount=entity.gross_amount,
            creator_net=entity.creator_net,
            platform_fee=entity.platform_fee,
            cost_recovery=entity.cost_recovery,
            currency=entity.currency,
            line_ref=entity.line_ref,
            gateway_payment_id=entity.gateway_payment_id,
            gateway_order_id=entity.gateway_order_id,
            buyer_id=entity.buyer_id,
            creator_id=entity.creator_id,
            order_id=entity.order_id,
            subscription_id=entity.subscription_id,
            description=entity.description,
            status=entity.status,
        )

    async def add_many(self, transactions: Sequence[LedgerTransaction]) -> List[LedgerTransaction]:
        models = [self._to_model(t) for t in transactions]
        self.session.add_all(models)
        await self.session.flush()
        return [self._to_entity(m) for m in models]

    async def list_by_gateway_payment_id(self, gateway_payment_id: str) -> List[LedgerTransaction]:
        result = await self.session.execute(
            select(LedgerTransactionModel)
            .where(LedgerTransactionModel.gateway_payment_id == gateway_payment_id)
            .order_by(LedgerTransactionModel.id)
        )
        return [self._to_entity(m) for m in result.scalars().all()]


class SQLAlchemyProcessedWebhookEventRepository(ProcessedWebhookEventRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, event_id: str) -> bool:
        result = await self.session.execute(
            select(func.count(ProcessedWebhookEventModel.id)).where(
                ProcessedWebhookEventModel.event_id == event_id
            )
        )
        return result.scalar_one() > 0

    async def record(self, event_id: str, event_type: str) -> None:
        self.session.add(ProcessedWebhookEventModel(event_id=event_id, event_type=event_type))
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.warning("webhook_event_record_conflict", event_id=event_id, event_type=event_type)
            raise WebhookEventAlreadyRecorded(event_id) from e
