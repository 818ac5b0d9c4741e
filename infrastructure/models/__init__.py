"""Infrastructure models package exports."""
from .base import Base, metadata
from .creator import CreatorModel
from .subscription import SubscriptionModel
from .commerce import CommerceOrderModel, CommerceOrderItemModel
from .ledger import LedgerTransactionModel, ProcessedWebhookEventModel
from .payout import PayoutModel

__all__ = [
    "Base",
    "metadata",
    "CreatorModel",
    "SubscriptionModel",
    "CommerceOrderModel",
    "CommerceOrderItemModel",
    "LedgerTransactionModel",
    "ProcessedWebhookEventModel",
    "PayoutModel",
]
