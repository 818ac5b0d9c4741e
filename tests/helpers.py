"""Test doubles and seed helpers shared by the settlement tests."""
import asyncio
from typing import Optional

from application.dtos.payments import (
    GatewayContact,
    GatewayFundAccount,
    GatewayOrder,
    GatewayPayment,
    GatewayTransfer,
)
from domain.commerce.entity import CommerceOrder, OrderItem
from domain.creator.entity import BankAccount, CreatorAccount
from domain.subscription.entity import Subscription, SubscriptionTier


KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"


class StubGateway:
    """In-memory gateway; ``fail_with`` queues exceptions raised before any response.

    Transfers are deduplicated on the idempotency key like the real header.
    ``lose_transfer_responses`` creates the transfer and then raises, which is
    what a timeout after the gateway accepted the request looks like.
    """

    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self.payments: dict[str, GatewayPayment] = {}
        self.transfer_status = "processing"
        self.transfers: dict[str, GatewayTransfer] = {}
        self.transfer_keys: dict[str, str] = {}
        self.fail_with: list[Exception] = []
        self.lose_transfer_responses: list[Exception] = []
        self.closed = False

    def _record(self, name: str, arg) -> None:
        self.calls.append((name, arg))
        if self.fail_with:
            raise self.fail_with.pop(0)

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def create_order(self, req):
        self._record("create_order", req)
        return GatewayOrder(id="order_gw_1", amount=req.amount, currency=req.currency, receipt=req.receipt)

    async def fetch_payment(self, payment_id):
        self._record("fetch_payment", payment_id)
        return self.payments[payment_id]

    async def create_contact(self, req):
        self._record("create_contact", req)
        return GatewayContact(id="cont_1", name=req.name)

    async def create_fund_account(self, req):
        self._record("create_fund_account", req)
        return GatewayFundAccount(id="fa_1", contact_id=req.contact_id)

    async def create_transfer(self, req):
        self._record("create_transfer", req)
        # let concurrent payouts interleave at the network boundary
        await asyncio.sleep(0)
        transfer_id = self.transfer_keys.get(req.idempotency_key)
        if transfer_id is None:
            transfer = GatewayTransfer(
                id=f"pout_{len(self.transfers) + 1}",
                status=self.transfer_status,
                amount=req.amount,
                currency=req.currency,
                reference_id=req.reference_id,
            )
            self.transfers[transfer.id] = transfer
            self.transfer_keys[req.idempotency_key] = transfer_id = transfer.id
        if self.lose_transfer_responses:
            raise self.lose_transfer_responses.pop(0)
        return self.transfers[transfer_id]

    async def fetch_transfer(self, transfer_id):
        self._record("fetch_transfer", transfer_id)
        return self.transfers[transfer_id]

    async def aclose(self):
        self.closed = True


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def seed_creator(uow_factory, *, balance: int = 0, bank: bool = True, **kwargs) -> CreatorAccount:
    account = BankAccount("Asha Rao", "000111222333", "HDFC0000001") if bank else None
    async with uow_factory() as uow:
        return await uow.creator_repository.create(
            CreatorAccount(id=None, name="Asha", email="asha@example.com", available_balance=balance,
                           bank_account=account, **kwargs)
        )


async def seed_subscription(
    uow_factory,
    *,
    gateway_order_id: str,
    amount: int = 49900,
    creator_id: Optional[int] = None,
    gateway_subscription_id: Optional[str] = None,
) -> Subscription:
    tier = SubscriptionTier.CREATOR if creator_id else SubscriptionTier.PLATFORM
    async with uow_factory() as uow:
        return await uow.subscription_repository.create(
            Subscription(
                id=None,
                subscriber_id=7,
                tier=tier,
                amount=amount,
                creator_id=creator_id,
                plan_id="plan_gold",
                gateway_order_id=gateway_order_id,
                gateway_subscription_id=gateway_subscription_id,
            )
        )


async def seed_order(uow_factory, *, gateway_order_id: str, items: list[OrderItem]) -> CommerceOrder:
    async with uow_factory() as uow:
        return await uow.order_repository.create(
            CommerceOrder(
                id=None,
                buyer_id=7,
                total_amount=sum(item.line_total for item in items),
                items=items,
                gateway_order_id=gateway_order_id,
            )
        )


async def load_creator(uow_factory, creator_id: int) -> CreatorAccount:
    async with uow_factory() as uow:
        return await uow.creator_repository.get_by_id(creator_id)
