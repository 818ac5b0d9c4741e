"""
创作者仓储实现 - 余额变更全部使用条件 UPDATE 原子完成
"""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.creator.entity import BankAccount, CreatorAccount
from domain.creator.repository import CreatorRepository
from domain.revenue.entity import RevenueSource
from infrastructure.models.creator import CreatorModel


logger = get_logger(__name__)


class SQLAlchemyCreatorRepository(CreatorRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: CreatorModel) -> CreatorAccount:
        bank = None
        if model.bank_account_holder or model.bank_account_number or model.bank_ifsc:
            bank = BankAccount(
                holder_name=model.bank_account_holder,
                account_number=model.bank_account_number,
                ifsc=model.bank_ifsc,
            )
        return CreatorAccount(
            id=model.id,
            name=model.name,
            email=model.email,
            phone=model.phone,
            available_balance=model.available_balance,
            revenue_subscriptions=model.revenue_subscriptions,
            revenue_merchandise=model.revenue_merchandise,
            revenue_events=model.revenue_events,
            revenue_ads=model.revenue_ads,
            total_paid_out=model.total_paid_out,
            payout_sequence=model.payout_sequence,
            bank_account=bank,
            gateway_contact_id=model.gateway_contact_id,
            gateway_fund_account_id=model.gateway_fund_account_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: CreatorAccount) -> CreatorModel:
        bank = entity.bank_account or BankAccount()
        return CreatorModel(
            id=entity.id,
            name=entity.name,
            email=entity.email,
            phone=entity.phone,
            available_balance=entity.available_balance,
            revenue_subscriptions=entity.revenue_subscriptions,
            revenue_merchandise=entity.revenue_merchandise,
            revenue_events=entity.revenue_events,
            revenue_ads=entity.revenue_ads,
            total_paid_out=entity.total_paid_out,
            payout_sequence=entity.payout_sequence,
            bank_account_holder=bank.holder_name,
            bank_account_number=bank.account_number,
            bank_ifsc=bank.ifsc,
            gateway_contact_id=entity.gateway_contact_id,
            gateway_fund_account_id=entity.gateway_fund_account_id,
        )

    async def create(self, creator: CreatorAccount) -> CreatorAccount:
        db_creator = self._to_model(creator)
        self.session.add(db_creator)
        await self.session.flush()
        await self.session.refresh(db_creator)
        logger.info("creator_created", creator_id=db_creator.id)
        return self._to_entity(db_creator)

    async def get_by_id(self, creator_id: int) -> Optional[CreatorAccount]:
        result = await self.session.execute(
            select(CreatorModel).where(CreatorModel.id == creator_id).execution_options(populate_existing=True)
        )
        db_creator = result.scalar_one_or_none()
        return self._to_entity(db_creator) if db_creator else None

    async def credit(self, creator_id: int, amount: int, source: RevenueSource) -> bool:
        bucket = getattr(CreatorModel, f"revenue_{source.value}")
        result = await self.session.execute(
            update(CreatorModel)
            .where(CreatorModel.id == creator_id)
            .values(
                {
                    CreatorModel.available_balance: CreatorModel.available_balance + amount,
                    bucket: bucket + amount,
                }
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def debit_for_payout(self, creator_id: int, amount: int) -> Optional[int]:
        result = await self.session.execute(
            update(CreatorModel)
            .where(CreatorModel.id == creator_id, CreatorModel.available_balance >= amount)
            .values(
                available_balance=CreatorModel.available_balance - amount,
                total_paid_out=CreatorModel.total_paid_out + amount,
                payout_sequence=CreatorModel.payout_sequence + 1,
            )
            .returning(CreatorModel.payout_sequence)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def refund_payout(self, creator_id: int, amount: int) -> bool:
        result = await self.session.execute(
            update(CreatorModel)
            .where(CreatorModel.id == creator_id)
            .values(
                available_balance=CreatorModel.available_balance + amount,
                total_paid_out=CreatorModel.total_paid_out - amount,
            )
            .execution_options(synchronize_session=False)
        )
        refunded = result.rowcount > 0
        logger.info("creator_payout_refunded", creator_id=creator_id, amount=amount, refunded=refunded)
        return refunded

    async def save_payout_destination(self, creator_id: int, *, contact_id: str, fund_account_id: str) -> None:
        await self.session.execute(
            update(CreatorModel)
            .where(CreatorModel.id == creator_id)
            .values(gateway_contact_id=contact_id, gateway_fund_account_id=fund_account_id)
            .execution_options(synchronize_session=False)
        )
