"""
Payout aggregate - outbound transfer of creator balance.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.common.time import ensure_utc


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REVERSED = "reversed"


TERMINAL_PAYOUT_STATUSES = frozenset(
    {PayoutStatus.PROCESSED, PayoutStatus.FAILED, PayoutStatus.CANCELLED, PayoutStatus.REVERSED}
)
REFUNDING_PAYOUT_STATUSES = frozenset({PayoutStatus.FAILED, PayoutStatus.CANCELLED, PayoutStatus.REVERSED})


def build_idempotency_key(payout_type: str, creator_id: int, amount: int, sequence: int) -> str:
    """Deterministic per logical payout; the sequence separates legitimate repeats."""
    return f"payout_{payout_type}_{creator_id}_{amount}_{sequence}"


@dataclass
class Payout:
    """
    Payout record.

    State machine: pending -> processing -> {processed | failed | cancelled},
    plus processed -> reversed when the bank returns a settled transfer.
    failed, cancelled and reversed refund the reserved balance.
    """

    id: Optional[int]
    creator_id: int
    amount: int
    idempotency_key: str
    currency: str = "INR"
    status: PayoutStatus = PayoutStatus.PENDING
    payout_type: str = "manual"
    gateway_payout_id: Optional[str] = None
    reference_id: Optional[str] = None
    mode: Optional[str] = None
    narration: Optional[str] = None
    notes: dict = field(default_factory=dict)
    failure_reason: Optional[str] = None

    processed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(f"payout amount must be positive: {self.amount}", field="amount")
        if not self.idempotency_key:
            raise DomainValidationException("payout requires an idempotency key", field="idempotency_key")
        if self.notes is None:
            self.notes = {}
        self.processed_at = ensure_utc(self.processed_at)
        self.failed_at = ensure_utc(self.failed_at)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    @staticmethod
    def allowed_sources(target: PayoutStatus) -> frozenset:
        """Statuses a payout may move to ``target`` from."""
        if target == PayoutStatus.PROCESSING:
            return frozenset({PayoutStatus.PENDING})
        if target == PayoutStatus.REVERSED:
            return frozenset({PayoutStatus.PROCESSING, PayoutStatus.PROCESSED})
        if target in TERMINAL_PAYOUT_STATUSES:
            return frozenset({PayoutStatus.PENDING, PayoutStatus.PROCESSING})
        return frozenset()

    def summary(self) -> dict:
        return {
            "id": self.id,
            "creator_id": self.creator_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status.value,
            "payout_type": self.payout_type,
            "gateway_payout_id": self.gateway_payout_id,
            "idempotency_key": self.idempotency_key,
            "reference_id": self.reference_id,
        }
