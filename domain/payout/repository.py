"""
Payout repository interface.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .entity import Payout, PayoutStatus


class PayoutRepository(ABC):

    @abstractmethod
    async def create(self, payout: Payout) -> Payout:
        """Insert a payout; raises DuplicatePayoutException on idempotency key conflict."""
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[Payout]:
        pass

    @abstractmethod
    async def get_by_gateway_payout_id(self, gateway_payout_id: str) -> Optional[Payout]:
        pass

    @abstractmethod
    async def list_by_creator(self, creator_id: int, *, limit: int = 20) -> List[Payout]:
        pass

    @abstractmethod
    async def list_stale(self, status: PayoutStatus, *, updated_before: datetime, limit: int = 100) -> List[Payout]:
        pass

    @abstractmethod
    async def attach_gateway_payout(self, payout_id: int, gateway_payout_id: str, *, at: datetime) -> bool:
        """Record the transfer id on a payout that has none yet."""
        pass

    @abstractmethod
    async def transition(
        self,
        payout_id: int,
        target: PayoutStatus,
        *,
        at: datetime,
        failure_reason: Optional[str] = None,
    ) -> bool:
        """Move to ``target`` only from an allowed source status."""
        pass
