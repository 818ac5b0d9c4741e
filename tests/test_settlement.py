import pytest

from application.services.settlement_service import SettlementService
from domain.commerce.entity import OrderItem, OrderStatus
from domain.common.time import utcnow
from domain.subscription.entity import SubscriptionStatus

from helpers import load_creator, seed_creator, seed_order, seed_subscription


@pytest.fixture
def settlement(uow_factory, distributor):
    return SettlementService(uow_factory, distributor)


async def _ledger(uow_factory, gateway_payment_id):
    async with uow_factory() as uow:
        return await uow.transaction_repository.list_by_gateway_payment_id(gateway_payment_id)


@pytest.mark.asyncio
async def test_creator_subscription_credits_creator(settlement, uow_factory):
    creator = await seed_creator(uow_factory)
    subscription = await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)

    outcome = await settlement.settle_payment_captured("order_s1", "pay_s1", amount=49900, event_id="evt_1")

    assert outcome.reason == "subscription_activated"
    assert outcome.entity_id == subscription.id
    assert outcome.credited == {str(creator.id): 49900}
    account = await load_creator(uow_factory, creator.id)
    assert account.available_balance == 49900
    assert account.revenue_subscriptions == 49900
    async with uow_factory() as uow:
        stored = await uow.subscription_repository.get_by_id(subscription.id)
    assert stored.status == SubscriptionStatus.ACTIVE
    assert stored.active is True
    assert stored.gateway_payment_id == "pay_s1"
    (txn,) = await _ledger(uow_factory, "pay_s1")
    assert txn.creator_net == 49900 and txn.line_ref == f"subscription:{subscription.id}"


@pytest.mark.asyncio
async def test_platform_subscription_credits_nobody(settlement, uow_factory):
    await seed_subscription(uow_factory, gateway_order_id="order_p1")
    outcome = await settlement.settle_payment_captured("order_p1", "pay_p1")
    assert outcome.reason == "subscription_activated"
    assert outcome.credited == {}
    (txn,) = await _ledger(uow_factory, "pay_p1")
    assert txn.platform_fee == 49900


@pytest.mark.asyncio
async def test_same_event_twice_credits_once(settlement, uow_factory):
    creator = await seed_creator(uow_factory)
    await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)

    await settlement.settle_payment_captured("order_s1", "pay_s1", event_id="evt_1")
    replay = await settlement.settle_payment_captured("order_s1", "pay_s1", event_id="evt_1")

    assert replay.reason == "already_processed"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 49900


@pytest.mark.asyncio
async def test_verify_then_webhook_credits_once(settlement, uow_factory):
    creator = await seed_creator(uow_factory)
    await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)

    first = await settlement.settle_payment_captured("order_s1", "pay_s1")
    second = await settlement.settle_payment_captured("order_s1", "pay_s1", event_id="evt_9")

    assert first.reason == "subscription_activated"
    # nothing pending any more: the webhook finds no entity
    assert second.reason == "no_matching_entity"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 49900


@pytest.mark.asyncio
async def test_order_settles_each_item(settlement, uow_factory):
    merch_creator = await seed_creator(uow_factory)
    event_creator = await seed_creator(uow_factory)
    order = await seed_order(
        uow_factory,
        gateway_order_id="order_c1",
        items=[
            OrderItem(id=None, item_type="merch", unit_price=100000, quantity=1, creator_id=merch_creator.id),
            OrderItem(id=None, item_type="ticket", unit_price=25000, quantity=2, creator_id=event_creator.id),
            OrderItem(id=None, item_type="donation", unit_price=1000),
        ],
    )

    outcome = await settlement.settle_payment_captured("order_c1", "pay_c1", event_id="evt_c1")

    assert outcome.reason == "order_paid"
    assert outcome.entity_id == order.id
    assert outcome.transactions == 3
    assert outcome.credited == {str(merch_creator.id): 70000, str(event_creator.id): 45000}
    merch = await load_creator(uow_factory, merch_creator.id)
    events = await load_creator(uow_factory, event_creator.id)
    assert (merch.available_balance, merch.revenue_merchandise) == (70000, 70000)
    assert (events.available_balance, events.revenue_events) == (45000, 45000)
    txns = await _ledger(uow_factory, "pay_c1")
    assert sum(t.gross_amount for t in txns) == 151000
    assert all(t.platform_fee + t.cost_recovery + t.creator_net == t.gross_amount for t in txns)


@pytest.mark.asyncio
async def test_unknown_order_is_not_recorded(settlement, uow_factory):
    outcome = await settlement.settle_payment_captured("order_missing", "pay_x", event_id="evt_x")
    assert outcome.reason == "no_matching_entity"
    async with uow_factory() as uow:
        assert await uow.webhook_event_repository.exists("evt_x") is False


@pytest.mark.asyncio
async def test_failure_path_leaves_balance_untouched(settlement, uow_factory):
    creator = await seed_creator(uow_factory)
    subscription = await seed_subscription(uow_factory, gateway_order_id="order_f1", creator_id=creator.id)

    before = utcnow()
    outcome = await settlement.mark_payment_failed("order_f1", reason="Card declined", gateway_payment_id="pay_f1")

    assert outcome.reason == "subscription_payment_failed"
    async with uow_factory() as uow:
        stored = await uow.subscription_repository.get_by_id(subscription.id)
    assert stored.status == SubscriptionStatus.PAYMENT_FAILED
    assert stored.failure_reason == "Card declined"
    assert stored.updated_at >= before
    assert (await load_creator(uow_factory, creator.id)).available_balance == 0
    # a late capture no longer matches a pending entity
    late = await settlement.settle_payment_captured("order_f1", "pay_f1")
    assert late.reason == "no_matching_entity"


@pytest.mark.asyncio
async def test_order_failure(settlement, uow_factory):
    order = await seed_order(
        uow_factory, gateway_order_id="order_f2", items=[OrderItem(id=None, item_type="merch", unit_price=500)]
    )
    before = utcnow()
    outcome = await settlement.mark_payment_failed("order_f2", reason="timeout")
    assert outcome.reason == "order_payment_failed"
    assert outcome.status == "FAILED"
    async with uow_factory() as uow:
        stored = await uow.order_repository.get_by_id(order.id)
    assert stored.status == OrderStatus.FAILED
    assert stored.failure_reason == "timeout"
    assert stored.updated_at >= before


@pytest.mark.asyncio
async def test_subscription_lifecycle_events(settlement, uow_factory):
    creator = await seed_creator(uow_factory)
    subscription = await seed_subscription(
        uow_factory, gateway_order_id="order_l1", creator_id=creator.id, gateway_subscription_id="sub_1"
    )
    await settlement.settle_payment_captured("order_l1", "pay_l1")

    activated = await settlement.acknowledge_subscription_activated("sub_1")
    cancelled = await settlement.cancel_subscription("sub_1")
    again = await settlement.cancel_subscription("sub_1")

    assert activated.status == SubscriptionStatus.ACTIVE.value
    assert cancelled.reason == "subscription_cancelled"
    assert again.reason == "already_settled"
    async with uow_factory() as uow:
        stored = await uow.subscription_repository.get_by_id(subscription.id)
    assert stored.status == SubscriptionStatus.CANCELLED
    assert stored.active is False
    assert (await settlement.cancel_subscription("sub_unknown")).reason == "no_matching_entity"
