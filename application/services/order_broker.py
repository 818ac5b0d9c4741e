"""
Order broker: validates a checkout request and opens a gateway order.

Depends only on the PaymentGateway port and the retry executor; the gateway
adapter is injected from the composition root.
"""
from __future__ import annotations

import secrets
import string
import time
from typing import Iterable, Optional

from application.dtos.payments import CreateOrderRequest, GatewayOrder, GatewayOrderRequest
from application.ports.payment_gateway import PaymentGateway
from application.utils.retry import GatewayCallExecutor
from core.logging_config import get_logger
from domain.payment.exceptions import InvalidPaymentInputException


logger = get_logger(__name__)

_RECEIPT_ALPHABET = string.ascii_lowercase + string.digits


def generate_receipt() -> str:
    """order_<epoch ms>_<9 random chars>"""
    suffix = "".join(secrets.choice(_RECEIPT_ALPHABET) for _ in range(9))
    return f"order_{int(time.time() * 1000)}_{suffix}"


class OrderBroker:
    def __init__(
        self,
        gateway: PaymentGateway,
        executor: GatewayCallExecutor,
        *,
        allowed_currencies: Iterable[str] = ("INR", "USD", "EUR"),
    ) -> None:
        self.gateway = gateway
        self.executor = executor
        self.allowed_currencies = frozenset(c.upper() for c in allowed_currencies)

    def validate(self, amount, currency: Optional[str]) -> str:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidPaymentInputException(
                "Invalid amount. Amount must be a positive number.", field="amount"
            )
        normalized = (currency or "").strip().upper()
        if normalized not in self.allowed_currencies:
            raise InvalidPaymentInputException(
                f"Invalid currency. Supported currencies: {', '.join(sorted(self.allowed_currencies))}",
                field="currency",
            )
        return normalized

    async def create_order(
        self,
        amount,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[dict] = None,
    ) -> GatewayOrder:
        currency = self.validate(amount, currency)
        request = GatewayOrderRequest(
            amount=amount,
            currency=currency,
            receipt=receipt or generate_receipt(),
            notes=notes or {},
        )
        logger.info("order_create_request", amount=amount, currency=currency, receipt=request.receipt)
        order = await self.executor.execute(lambda: self.gateway.create_order(request), "order_creation")
        logger.info("order_created", gateway_order_id=order.id, amount=order.amount, currency=order.currency)
        return order

    async def create_from_request(self, req: CreateOrderRequest) -> GatewayOrder:
        return await self.create_order(req.amount, req.currency, req.receipt)
