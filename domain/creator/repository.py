"""
Creator repository interface.

Balance mutations are expressed as atomic operations rather than
read-modify-write so concurrent settlements and payouts cannot both act on a
stale balance.
"""
from abc import ABC, abstractmethod
from typing import Optional

from domain.revenue.entity import RevenueSource
from .entity import CreatorAccount


class CreatorRepository(ABC):

    @abstractmethod
    async def create(self, creator: CreatorAccount) -> CreatorAccount:
        pass

    @abstractmethod
    async def get_by_id(self, creator_id: int) -> Optional[CreatorAccount]:
        pass

    @abstractmethod
    async def credit(self, creator_id: int, amount: int, source: RevenueSource) -> bool:
        """Add to available balance and the source bucket. False if creator missing."""
        pass

    @abstractmethod
    async def debit_for_payout(self, creator_id: int, amount: int) -> Optional[int]:
        """Guarded debit that reserves a payout.

        Succeeds only while ``available_balance >= amount``; bumps the payout
        sequence and ``total_paid_out`` in the same statement and returns the
        new sequence. None when the balance does not cover ``amount``.
        """
        pass

    @abstractmethod
    async def refund_payout(self, creator_id: int, amount: int) -> bool:
        """Return a failed, cancelled or reversed payout amount to the available balance."""
        pass

    @abstractmethod
    async def save_payout_destination(self, creator_id: int, *, contact_id: str, fund_account_id: str) -> None:
        pass
