"""Races between concurrent settlements and payouts on a file-backed database."""
import asyncio

import pytest

from application.services.payout_service import PayoutService
from application.services.settlement_service import SettlementService
from domain.commerce.entity import OrderItem
from domain.payment.exceptions import InsufficientBalanceException
from domain.payout.entity import Payout, PayoutStatus

from helpers import load_creator, seed_creator, seed_order, seed_subscription


@pytest.fixture
def payouts(file_uow_factory, gateway, executor):
    return PayoutService(file_uow_factory, gateway, executor, source_account_number="2323230000000000")


@pytest.fixture
def settlement(file_uow_factory, distributor):
    return SettlementService(file_uow_factory, distributor)


async def _registered_creator(uow_factory, balance: int):
    return await seed_creator(
        uow_factory, balance=balance, gateway_contact_id="cont_1", gateway_fund_account_id="fa_1"
    )


@pytest.mark.asyncio
async def test_concurrent_payouts_both_settle_when_balance_covers_them(payouts, file_uow_factory, gateway):
    creator = await _registered_creator(file_uow_factory, 100000)

    results = await asyncio.gather(
        payouts.create_artist_payout(creator.id, 10000),
        payouts.create_artist_payout(creator.id, 20000),
    )

    assert sorted(p.amount for p in results) == [10000, 20000]
    assert all(p.status is PayoutStatus.PROCESSING for p in results)
    assert len({p.idempotency_key for p in results}) == 2
    assert gateway.count("create_transfer") == 2
    account = await load_creator(file_uow_factory, creator.id)
    assert account.available_balance == 70000
    assert account.total_paid_out == 30000
    assert account.payout_sequence == 2
    assert len(await payouts.list_creator_payouts(creator.id)) == 2


@pytest.mark.asyncio
async def test_concurrent_payouts_cannot_overdraw(payouts, file_uow_factory, gateway):
    creator = await _registered_creator(file_uow_factory, 25000)

    results = await asyncio.gather(
        payouts.create_artist_payout(creator.id, 20000),
        payouts.create_artist_payout(creator.id, 20000),
        return_exceptions=True,
    )

    made = [r for r in results if isinstance(r, Payout)]
    rejected = [r for r in results if isinstance(r, InsufficientBalanceException)]
    assert len(made) == 1 and len(rejected) == 1
    # the loser is turned away before any transfer leaves
    assert gateway.count("create_transfer") == 1
    account = await load_creator(file_uow_factory, creator.id)
    assert account.available_balance == 5000
    assert account.total_paid_out == 20000
    (stored,) = await payouts.list_creator_payouts(creator.id)
    assert stored.gateway_payout_id == made[0].gateway_payout_id


@pytest.mark.asyncio
async def test_concurrent_captures_for_one_order_credit_once(settlement, file_uow_factory):
    creator = await seed_creator(file_uow_factory)
    await seed_order(
        file_uow_factory,
        gateway_order_id="order_race",
        items=[OrderItem(id=None, item_type="ticket", unit_price=25000, quantity=2, creator_id=creator.id)],
    )

    results = await asyncio.gather(
        settlement.settle_payment_captured("order_race", "pay_race", event_id="evt_a"),
        settlement.settle_payment_captured("order_race", "pay_race", event_id="evt_b"),
    )

    assert sorted(r.reason for r in results) == ["already_settled", "order_paid"]
    async with file_uow_factory() as uow:
        ledger = await uow.transaction_repository.list_by_gateway_payment_id("pay_race")
    assert len(ledger) == 1
    account = await load_creator(file_uow_factory, creator.id)
    assert account.available_balance == 45000
    assert account.revenue_events == 45000


@pytest.mark.asyncio
async def test_concurrent_captures_for_one_subscription_credit_once(settlement, file_uow_factory):
    creator = await seed_creator(file_uow_factory)
    await seed_subscription(file_uow_factory, gateway_order_id="order_sub_race", creator_id=creator.id)

    results = await asyncio.gather(
        settlement.settle_payment_captured("order_sub_race", "pay_sub_race", event_id="evt_1"),
        settlement.settle_payment_captured("order_sub_race", "pay_sub_race", event_id="evt_2"),
    )

    assert sorted(r.reason for r in results) == ["already_settled", "subscription_activated"]
    async with file_uow_factory() as uow:
        ledger = await uow.transaction_repository.list_by_gateway_payment_id("pay_sub_race")
    assert len(ledger) == 1
    assert (await load_creator(file_uow_factory, creator.id)).available_balance == 49900
