"""
Payment DTOs (Pydantic v2) used at application boundaries.

Amounts are integer minor units (paise for INR) everywhere.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _GatewayModel(BaseModel):
    # Gateways add fields over time; keep what we know, ignore the rest
    model_config = ConfigDict(extra="ignore")


# ----- outbound gateway requests/responses -----

class GatewayOrderRequest(BaseModel):
    amount: int
    currency: str
    receipt: str
    notes: dict[str, str] = Field(default_factory=dict)


class GatewayOrder(_GatewayModel):
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    status: str = "created"


class GatewayPayment(_GatewayModel):
    id: str
    order_id: Optional[str] = None
    status: str
    amount: int
    currency: Optional[str] = None
    method: Optional[str] = None
    error_code: Optional[str] = None
    error_description: Optional[str] = None


class ContactRequest(BaseModel):
    name: str
    email: Optional[str] = None
    contact: Optional[str] = None
    type: str = "vendor"
    reference_id: Optional[str] = None
    notes: dict[str, str] = Field(default_factory=dict)


class GatewayContact(_GatewayModel):
    id: str
    name: Optional[str] = None


class FundAccountRequest(BaseModel):
    contact_id: str
    holder_name: str
    account_number: str
    ifsc: str


class GatewayFundAccount(_GatewayModel):
    id: str
    contact_id: Optional[str] = None


class TransferRequest(BaseModel):
    account_number: str
    fund_account_id: str
    amount: int
    currency: str
    mode: str
    purpose: str
    reference_id: str
    narration: Optional[str] = None
    notes: dict[str, str] = Field(default_factory=dict)
    idempotency_key: str
    queue_if_low_balance: bool = True


class GatewayTransfer(_GatewayModel):
    id: str
    status: str
    amount: int
    currency: Optional[str] = None
    reference_id: Optional[str] = None
    failure_reason: Optional[str] = None


# ----- inbound API payloads / results -----

class CreateOrderRequest(BaseModel):
    amount: int = Field(description="Amount in minor units")
    currency: str = "INR"
    receipt: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return (v or "").strip().upper()


class VerifyPaymentRequest(BaseModel):
    order_id: str
    payment_id: str
    signature: str
    plan_id: Optional[str] = None
    order_db_id: Optional[str] = None

    @property
    def tracking_ref(self) -> Optional[str]:
        return self.plan_id or self.order_db_id


class VerificationResult(BaseModel):
    success: bool
    message: Optional[str] = None
    payment: Optional[GatewayPayment] = None


class PaymentStatusView(BaseModel):
    order_id: str
    payment_id: str
    status: str
    attempts: int
    last_attempt: Optional[datetime] = None
    plan_id: Optional[str] = None
    message: Optional[str] = None


class SettlementOutcome(BaseModel):
    success: bool = True
    reason: Optional[str] = None
    entity: Optional[str] = None  # "subscription" | "order" | "payout"
    entity_id: Optional[Any] = None
    status: Optional[str] = None
    transactions: int = 0
    credited: dict[str, int] = Field(default_factory=dict)


class RevenuePreviewRequest(BaseModel):
    gross: Optional[int] = None
    unit_price: Optional[int] = None
    quantity: int = 1
    product_type: str
    category: Optional[str] = None


class CreatePayoutRequest(BaseModel):
    creator_id: int
    amount: int = Field(description="Amount in minor units")
    payout_type: str = "manual"
    idempotency_key: Optional[str] = None
    narration: Optional[str] = None
    notes: dict[str, str] = Field(default_factory=dict)
