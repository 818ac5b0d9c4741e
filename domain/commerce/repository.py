"""
Commerce order repository interface.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .entity import CommerceOrder


class CommerceOrderRepository(ABC):

    @abstractmethod
    async def create(self, order: CommerceOrder) -> CommerceOrder:
        """Persist the order together with its items."""
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[CommerceOrder]:
        pass

    @abstractmethod
    async def get_pending_by_gateway_order_id(self, gateway_order_id: str) -> Optional[CommerceOrder]:
        pass

    @abstractmethod
    async def mark_paid_if_pending(self, order_id: int, *, gateway_payment_id: str, at: datetime) -> bool:
        pass

    @abstractmethod
    async def mark_failed_if_pending(self, order_id: int, *, reason: Optional[str], at: datetime) -> bool:
        pass
