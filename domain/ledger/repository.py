"""
Ledger repositories: settlement transactions and durably processed webhook ids.
"""
from abc import ABC, abstractmethod
from typing import List, Sequence

from .entity import LedgerTransaction


class WebhookEventAlreadyRecorded(Exception):
    """Another delivery of the same event id committed first."""

    def __init__(self, event_id: str) -> None:
        super().__init__(f"webhook event already recorded: {event_id}")
        self.event_id = event_id


class LedgerTransactionRepository(ABC):

    @abstractmethod
    async def add_many(self, transactions: Sequence[LedgerTransaction]) -> List[LedgerTransaction]:
        pass

    @abstractmethod
    async def list_by_gateway_payment_id(self, gateway_payment_id: str) -> List[LedgerTransaction]:
        pass


class ProcessedWebhookEventRepository(ABC):
    """Durable uniqueness for webhook event ids (backs the in-process set)."""

    @abstractmethod
    async def exists(self, event_id: str) -> bool:
        pass

    @abstractmethod
    async def record(self, event_id: str, event_type: str) -> None:
        """Raises WebhookEventAlreadyRecorded on a unique violation."""
        pass
