"""
Razorpay adapter (Orders/Payments API plus RazorpayX payouts) over httpx.

All amounts are minor units (paise), which is what Razorpay expects on the
wire. Payout creation sends ``X-Payout-Idempotency`` so a retried request
does not move money twice.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.dtos.payments import (
    ContactRequest,
    FundAccountRequest,
    GatewayContact,
    GatewayFundAccount,
    GatewayOrder,
    GatewayOrderRequest,
    GatewayPayment,
    GatewayTransfer,
    TransferRequest,
)
from core.settings import PaymentSettings, payment_settings
from infrastructure.external.payments.base import BaseGatewayClient


class RazorpayClient(BaseGatewayClient):
    provider = "razorpay"

    def __init__(
        self,
        settings: Optional[PaymentSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        cfg = settings or payment_settings
        if not cfg.razorpay.key_id or not cfg.razorpay.key_secret:
            raise RuntimeError("RAZORPAY__KEY_ID / RAZORPAY__KEY_SECRET not configured")
        super().__init__(
            base_url=cfg.razorpay.base_url,
            auth=(cfg.razorpay.key_id, cfg.razorpay.key_secret),
            timeouts={"connect": cfg.timeouts.http_connect, "total": cfg.timeouts.http_total},
            transport=transport,
        )

    async def create_order(self, req: GatewayOrderRequest) -> GatewayOrder:
        body = {
            "amount": req.amount,
            "currency": req.currency,
            "receipt": req.receipt,
            "payment_capture": 1,
        }
        if req.notes:
            body["notes"] = req.notes
        data = await self._request("POST", "/orders", json=body)
        self._log("razorpay_order_created", gateway_order_id=data.get("id"), receipt=req.receipt)
        return GatewayOrder.model_validate(data)

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        data = await self._request("GET", f"/payments/{payment_id}")
        return GatewayPayment.model_validate(data)

    async def create_contact(self, req: ContactRequest) -> GatewayContact:
        data = await self._request("POST", "/contacts", json=req.model_dump(exclude_none=True))
        self._log("razorpay_contact_created", contact_id=data.get("id"), reference_id=req.reference_id)
        return GatewayContact.model_validate(data)

    async def create_fund_account(self, req: FundAccountRequest) -> GatewayFundAccount:
        body = {
            "contact_id": req.contact_id,
            "account_type": "bank_account",
            "bank_account": {
                "name": req.holder_name,
                "ifsc": req.ifsc,
                "account_number": req.account_number,
            },
        }
        data = await self._request("POST", "/fund_accounts", json=body)
        self._log("razorpay_fund_account_created", fund_account_id=data.get("id"), contact_id=req.contact_id)
        return GatewayFundAccount.model_validate(data)

    async def create_transfer(self, req: TransferRequest) -> GatewayTransfer:
        body = req.model_dump(exclude={"idempotency_key"}, exclude_none=True)
        data = await self._request(
            "POST",
            "/payouts",
            json=body,
            headers={"X-Payout-Idempotency": req.idempotency_key},
        )
        self._log(
            "razorpay_payout_created",
            gateway_payout_id=data.get("id"),
            status=data.get("status"),
            reference_id=req.reference_id,
        )
        return GatewayTransfer.model_validate(data)

    async def fetch_transfer(self, transfer_id: str) -> GatewayTransfer:
        data = await self._request("GET", f"/payouts/{transfer_id}")
        return GatewayTransfer.model_validate(data)
