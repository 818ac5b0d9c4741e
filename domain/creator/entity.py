"""
Creator account - balance ledger and payout destination.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.common.time import ensure_utc
from domain.revenue.entity import RevenueSource


@dataclass
class BankAccount:
    holder_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.holder_name and self.account_number and self.ifsc)


@dataclass
class CreatorAccount:
    """
    Creator balance aggregate.

    Business rules:
    1. available_balance never goes negative
    2. credits come from settlement, debits from payouts only
    3. payout_sequence only grows; it feeds payout idempotency keys
    """

    id: Optional[int]
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    available_balance: int = 0
    revenue_subscriptions: int = 0
    revenue_merchandise: int = 0
    revenue_events: int = 0
    revenue_ads: int = 0
    total_paid_out: int = 0
    payout_sequence: int = 0

    bank_account: Optional[BankAccount] = None
    gateway_contact_id: Optional[str] = None
    gateway_fund_account_id: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.available_balance < 0:
            raise DomainValidationException(
                f"available balance cannot be negative: {self.available_balance}",
                field="available_balance",
            )
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    @property
    def has_payout_destination(self) -> bool:
        return self.bank_account is not None and self.bank_account.is_complete()

    @property
    def is_registered_for_payouts(self) -> bool:
        return bool(self.gateway_contact_id and self.gateway_fund_account_id)

    def can_cover(self, amount: int) -> bool:
        return 0 < amount <= self.available_balance

    def revenue_for(self, source: RevenueSource) -> int:
        return getattr(self, f"revenue_{source.value}")

    @property
    def revenue(self) -> dict:
        breakdown = {source.value: self.revenue_for(source) for source in RevenueSource}
        breakdown["total_paid_out"] = self.total_paid_out
        return breakdown
