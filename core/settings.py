"""
Settlement-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so gateway credentials and money rules
can be loaded (and overridden in tests) independently of the app shell.
"""
from __future__ import annotations

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class RazorpaySettings(BaseModel):
    key_id: Optional[str] = None
    key_secret: Optional[str] = None
    # Falls back to key_secret when unset
    webhook_secret: Optional[str] = None
    # RazorpayX current account used as payout source
    account_number: str = "2323230000000000"
    base_url: str = "https://api.razorpay.com/v1"

    @property
    def effective_webhook_secret(self) -> Optional[str]:
        return self.webhook_secret or self.key_secret


class GatewayTimeouts(BaseModel):
    """Per-operation deadlines in seconds."""

    order_creation: float = 30.0
    payment_verification: float = 45.0
    payment_fetch: float = 15.0
    payout_creation: float = 30.0
    payout_fetch: float = 15.0
    # Transport level; kept above the per-operation deadlines
    http_connect: float = 5.0
    http_total: float = 60.0


class GatewayRetry(BaseModel):
    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0


class OrderSettings(BaseModel):
    allowed_currencies: list[str] = Field(default_factory=lambda: ["INR", "USD", "EUR"])


class TrackingSettings(BaseModel):
    retention_seconds: int = 3600
    sweep_interval_seconds: int = 1800
    processed_events_max: int = 10000


class StoreSettings(BaseModel):
    backend: Literal["memory", "redis"] = "memory"
    namespace: str = "settlement"


class MerchUnitCost(BaseModel):
    """Per-unit cost components in minor units."""

    manufacturing: int = 0
    printing: int = 0
    packaging: int = 0
    shipping: int = 0

    @property
    def total(self) -> int:
        return self.manufacturing + self.printing + self.packaging + self.shipping


def _default_merch_costs() -> dict[str, MerchUnitCost]:
    return {
        "default": MerchUnitCost(manufacturing=15000, printing=0, packaging=2000, shipping=3000),
    }


class RevenueSettings(BaseModel):
    # Basis points (1/100 of a percent)
    platform_fee_bps: int = 1000
    event_creator_share_bps: int = 9000
    merch_costs: dict[str, MerchUnitCost] = Field(default_factory=_default_merch_costs)


class PayoutSettings(BaseModel):
    currency: str = "INR"
    mode: str = "IMPS"
    purpose: str = "payout"
    min_amount: int = 100
    narration: str = "Creator Payout"
    # Payouts left in processing longer than this are re-synced by the beat task
    reconcile_after_seconds: int = 900


class PaymentSettings(BaseSettings):
    razorpay: RazorpaySettings = Field(default_factory=RazorpaySettings)
    timeouts: GatewayTimeouts = Field(default_factory=GatewayTimeouts)
    retry: GatewayRetry = Field(default_factory=GatewayRetry)
    orders: OrderSettings = Field(default_factory=OrderSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    payment_store: StoreSettings = Field(default_factory=StoreSettings)
    revenue: RevenueSettings = Field(default_factory=RevenueSettings)
    payout: PayoutSettings = Field(default_factory=PayoutSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
