"""Unit of Work 抽象定义"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.commerce.repository import CommerceOrderRepository
from domain.creator.repository import CreatorRepository
from domain.ledger.repository import LedgerTransactionRepository, ProcessedWebhookEventRepository
from domain.payout.repository import PayoutRepository
from domain.subscription.repository import SubscriptionRepository


class AbstractUnitOfWork(ABC):
    """应用层事务边界控制抽象

    结算一次回调涉及的余额入账、订单状态、流水记录必须在同一个事务里提交。
    """

    creator_repository: CreatorRepository
    subscription_repository: SubscriptionRepository
    order_repository: CommerceOrderRepository
    transaction_repository: LedgerTransactionRepository
    payout_repository: PayoutRepository
    webhook_event_repository: ProcessedWebhookEventRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            # 只在非只读且未显式提交时自动提交
            if not self._readonly and not self._committed:
                await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        """提交事务"""
        ...

    @abstractmethod
    async def rollback(self) -> None:
        """回滚事务"""
