"""
Subscription repository interface.

Status transitions are conditional on the current status; a False return
means another writer already moved the subscription.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .entity import Subscription


class SubscriptionRepository(ABC):

    @abstractmethod
    async def create(self, subscription: Subscription) -> Subscription:
        pass

    @abstractmethod
    async def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def get_pending_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def get_by_gateway_subscription_id(self, gateway_subscription_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def activate_if_pending(self, subscription_id: int, *, gateway_payment_id: str, at: datetime) -> bool:
        pass

    @abstractmethod
    async def fail_if_pending(self, subscription_id: int, *, reason: Optional[str], at: datetime) -> bool:
        pass

    @abstractmethod
    async def cancel(self, subscription_id: int, *, at: datetime) -> bool:
        pass
