import json

import pytest

from application.dtos.webhooks import (
    PaymentWebhookEvent,
    PayoutWebhookEvent,
    UnhandledWebhookEvent,
    parse_webhook_event,
)
from application.services.payout_service import PayoutService
from application.services.settlement_service import SettlementService
from application.services.webhook_dispatcher import WebhookDispatcher, dedup_key
from domain.payment.exceptions import InvalidWebhookPayloadException

from helpers import load_creator, seed_creator, seed_subscription


def captured(order_id="order_s1", payment_id="pay_s1", event_id="evt_1", amount=49900):
    return {
        "id": event_id,
        "event": "payment.captured",
        "created_at": 1760000000,
        "payload": {"payment": {"entity": {"id": payment_id, "order_id": order_id, "amount": amount, "status": "captured"}}},
    }


@pytest.fixture
def dispatcher(uow_factory, distributor, gateway, executor, processed_store):
    settlement = SettlementService(uow_factory, distributor)
    payouts = PayoutService(uow_factory, gateway, executor, source_account_number="2323230000000000")
    return WebhookDispatcher(processed_store, settlement, payouts)


def test_parse_payment_event_from_bytes():
    event = parse_webhook_event(json.dumps(captured()).encode())
    assert isinstance(event, PaymentWebhookEvent)
    assert event.payment.order_id == "order_s1"
    assert event.entity_id == "pay_s1"


def test_parse_unknown_event_is_unhandled():
    event = parse_webhook_event({"event": "refund.created", "payload": {"refund": {"entity": {"id": "rfnd_1"}}}})
    assert isinstance(event, UnhandledWebhookEvent)


def test_parse_known_event_with_bad_body_fails_closed():
    with pytest.raises(InvalidWebhookPayloadException):
        parse_webhook_event({"event": "payment.captured", "payload": {"payment": {"entity": {"id": "pay_1"}}}})
    with pytest.raises(InvalidWebhookPayloadException):
        parse_webhook_event(b"not json")


def test_header_event_id_fills_missing_id():
    body = captured()
    del body["id"]
    assert parse_webhook_event(body, event_id="evt_hdr").id == "evt_hdr"


def test_payout_event_target_status():
    event = parse_webhook_event(
        {"event": "payout.failed", "payload": {"payout": {"entity": {"id": "pout_1", "failure_reason": "IFSC invalid"}}}}
    )
    assert isinstance(event, PayoutWebhookEvent)
    assert event.target_status == "failed"


def test_dedup_key_without_id_uses_entity_and_arrival():
    event = parse_webhook_event({k: v for k, v in captured().items() if k != "id"})
    assert dedup_key(event, arrival_ms=1234) == "pay_s1_payment.captured_1234"


@pytest.mark.asyncio
async def test_duplicate_delivery_settles_once(dispatcher, uow_factory):
    creator = await seed_creator(uow_factory)
    await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)
    event = parse_webhook_event(captured())

    first = await dispatcher.process_webhook_event(event)
    second = await dispatcher.process_webhook_event(event)

    assert first.reason == "subscription_activated"
    assert second.reason == "already_processed"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 49900


@pytest.mark.asyncio
async def test_durable_dedup_survives_lost_process_state(dispatcher, uow_factory, processed_store):
    creator = await seed_creator(uow_factory)
    await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)
    await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)
    event = parse_webhook_event(captured())

    await dispatcher.process_webhook_event(event)
    await processed_store.discard("evt_1")
    replay = await dispatcher.process_webhook_event(event)

    assert replay.reason == "already_processed"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 49900


@pytest.mark.asyncio
async def test_unhandled_event_is_acknowledged(dispatcher):
    event = parse_webhook_event({"id": "evt_r", "event": "refund.created", "payload": {}})
    outcome = await dispatcher.process_webhook_event(event)
    assert outcome.reason == "event_not_handled"


@pytest.mark.asyncio
async def test_handler_failure_releases_key(dispatcher, processed_store, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(dispatcher.settlement, "settle_payment_captured", boom)
    event = parse_webhook_event(captured())
    with pytest.raises(RuntimeError):
        await dispatcher.process_webhook_event(event)
    assert await processed_store.contains("evt_1") is False


@pytest.mark.asyncio
async def test_payment_failed_event(dispatcher, uow_factory):
    await seed_subscription(uow_factory, gateway_order_id="order_f1")
    event = parse_webhook_event(
        {
            "id": "evt_f",
            "event": "payment.failed",
            "payload": {"payment": {"entity": {"id": "pay_f", "order_id": "order_f1", "amount": 49900,
                                               "error_description": "Card declined"}}},
        }
    )
    outcome = await dispatcher.process_webhook_event(event)
    assert outcome.reason == "subscription_payment_failed"


@pytest.mark.asyncio
async def test_payout_reversal_webhook_refunds_processed_payout(dispatcher, uow_factory):
    creator = await seed_creator(uow_factory, balance=50000)
    payout = await dispatcher.payouts.create_artist_payout(creator.id, 20000)

    def payout_event(event_id, kind):
        entity = {"id": payout.gateway_payout_id, "failure_reason": "Beneficiary account closed"}
        return parse_webhook_event({"id": event_id, "event": kind, "payload": {"payout": {"entity": entity}}})

    processed = await dispatcher.process_webhook_event(payout_event("evt_p1", "payout.processed"))
    reversed_ = await dispatcher.process_webhook_event(payout_event("evt_p2", "payout.reversed"))

    assert processed.reason == "payout_processed"
    assert reversed_.reason == "payout_reversed"
    assert reversed_.credited == {str(creator.id): 20000}
    account = await load_creator(uow_factory, creator.id)
    assert account.available_balance == 50000
    assert account.total_paid_out == 0
