"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
Adapters report failures with the transport-neutral ``GatewayCallError``
family below; the retry executor decides what is retryable and translates
the final error for callers.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

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


class GatewayCallError(Exception):
    """Raw failure of one gateway call."""

    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.description = description or message


class GatewayTimeoutError(GatewayCallError):
    pass


class GatewayConnectionError(GatewayCallError):
    pass


class GatewayServerError(GatewayCallError):
    """5xx / 429 from the gateway."""


class GatewayAuthError(GatewayCallError):
    retryable = False


class GatewayRequestError(GatewayCallError):
    """Gateway rejected the request as malformed or not allowed."""

    retryable = False


class GatewayNotFoundError(GatewayRequestError):
    pass


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for the payment/payout provider.

    Implementations should be async and side-effect free beyond IO.
    """

    provider: str

    async def create_order(self, req: GatewayOrderRequest) -> GatewayOrder: ...

    async def fetch_payment(self, payment_id: str) -> GatewayPayment: ...

    async def create_contact(self, req: ContactRequest) -> GatewayContact: ...

    async def create_fund_account(self, req: FundAccountRequest) -> GatewayFundAccount: ...

    async def create_transfer(self, req: TransferRequest) -> GatewayTransfer: ...

    async def fetch_transfer(self, transfer_id: str) -> GatewayTransfer: ...

    async def aclose(self) -> None: ...
