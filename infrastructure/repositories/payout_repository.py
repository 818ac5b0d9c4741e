"""
提现仓储实现 - 状态迁移使用条件 UPDATE，保证终态只落一次
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.payment.exceptions import DuplicatePayoutException
from domain.payout.entity import Payout, PayoutStatus, REFUNDING_PAYOUT_STATUSES
from domain.payout.repository import PayoutRepository
from infrastructure.models.payout import PayoutModel


logger = get_logger(__name__)


class SQLAlchemyPayoutRepository(PayoutRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: PayoutModel) -> Payout:
        return Payout(
            id=model.id,
            creator_id=model.creator_id,
            amount=model.amount,
            idempotency_key=model.idempotency_key,
            currency=model.currency,
            status=PayoutStatus(model.status),
            payout_type=model.payout_type,
            gateway_payout_id=model.gateway_payout_id,
            reference_id=model.reference_id,
            mode=model.mode,
            narration=model.narration,
            notes=model.notes or {},
            failure_reason=model.failure_reason,
            processed_at=model.processed_at,
            failed_at=model.failed_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Payout) -> PayoutModel:
        return PayoutModel(
            id=entity.id,
            creator_id=entity.creator_id,
            amount=entity.amount,
            idempotency_key=entity.idempotency_key,
            currency=entity.currency,
            status=entity.status.value,
            payout_type=entity.payout_type,
            gateway_payout_id=entity.gateway_payout_id,
            reference_id=entity.reference_id,
            mode=entity.mode,
            narration=entity.narration,
            notes=entity.notes,
            failure_reason=entity.failure_reason,
            processed_at=entity.processed_at,
            failed_at=entity.failed_at,
        )

    async def create(self, payout: Payout) -> Payout:
        db_payout = self._to_model(payout)
        self.session.add(db_payout)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "payout_create_conflict",
                idempotency_key=payout.idempotency_key,
                gateway_payout_id=payout.gateway_payout_id,
            )
            raise DuplicatePayoutException(payout.idempotency_key) from e
        await self.session.refresh(db_payout)
        return self._to_entity(db_payout)

    async def _first(self, *criteria) -> Optional[Payout]:
        result = await self.session.execute(
            select(PayoutModel).where(*criteria).execution_options(populate_existing=True)
        )
        db_payout = result.scalar_one_or_none()
        return self._to_entity(db_payout) if db_payout else None

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[Payout]:
        return await self._first(PayoutModel.idempotency_key == idempotency_key)

    async def get_by_gateway_payout_id(self, gateway_payout_id: str) -> Optional[Payout]:
        return await self._first(PayoutModel.gateway_payout_id == gateway_payout_id)

    async def list_by_creator(self, creator_id: int, *, limit: int = 20) -> List[Payout]:
        result = await self.session.execute(
            select(PayoutModel)
            .where(PayoutModel.creator_id == creator_id)
            .order_by(PayoutModel.created_at.desc(), PayoutModel.id.desc())
            .limit(limit)
        )
        return [self._to_entity(m) for m in result.scalars().all()]

    async def list_stale(self, status: PayoutStatus, *, updated_before: datetime, limit: int = 100) -> List[Payout]:
        result = await self.session.execute(
            select(PayoutModel)
            .where(PayoutModel.status == status.value, PayoutModel.updated_at < updated_before)
            .order_by(PayoutModel.updated_at)
            .limit(limit)
        )
        return [self._to_entity(m) for m in result.scalars().all()]

    async def attach_gateway_payout(self, payout_id: int, gateway_payout_id: str, *, at: datetime) -> bool:
        result = await self.session.execute(
            update(PayoutModel)
            .where(PayoutModel.id == payout_id, PayoutModel.gateway_payout_id.is_(None))
            .values(gateway_payout_id=gateway_payout_id, updated_at=at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def transition(
        self,
        payout_id: int,
        target: PayoutStatus,
        *,
        at: datetime,
        failure_reason: Optional[str] = None,
    ) -> bool:
        sources = [s.value for s in Payout.allowed_sources(target)]
        if not sources:
            return False
        values = {"status": target.value, "updated_at": at}
        if target == PayoutStatus.PROCESSED:
            values["processed_at"] = at
        elif target in REFUNDING_PAYOUT_STATUSES:
            values["failed_at"] = at
            values["failure_reason"] = failure_reason
        result = await self.session.execute(
            update(PayoutModel)
            .where(PayoutModel.id == payout_id, PayoutModel.status.in_(sources))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
