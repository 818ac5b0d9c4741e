import json

import httpx
import pytest

from api.dependencies import get_executor, get_gateway, get_uow_factory
from application.dtos.payments import GatewayPayment
from domain.services.signature import compute_signature
from main import app

from helpers import WEBHOOK_SECRET, load_creator, seed_creator, seed_subscription


@pytest.fixture
async def client(uow_factory, gateway, executor, attempt_store, processed_store):
    async def _gateway():
        yield gateway

    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_gateway] = _gateway
    app.dependency_overrides[get_executor] = lambda: executor
    app.state.attempt_store = attempt_store
    app.state.processed_store = processed_store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def _signed(payload: dict) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode()
    return body, {"Content-Type": "application/json", "X-Razorpay-Signature": compute_signature(body, WEBHOOK_SECRET)}


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"
    assert "X-Request-ID" in resp.headers


@pytest.mark.asyncio
async def test_create_order_returns_public_key(client):
    resp = await client.post("/api/v1/payments/orders", json={"amount": 50000, "currency": "inr"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["id"] == "order_gw_1"
    assert data["currency"] == "INR"
    assert data["key_id"] == "rzp_test_key"


@pytest.mark.asyncio
async def test_create_order_rejects_bad_amount(client, gateway):
    resp = await client.post("/api/v1/payments/orders", json={"amount": -1})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid amount. Amount must be a positive number."
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_verify_settles_subscription(client, gateway, verifier, uow_factory):
    creator = await seed_creator(uow_factory)
    await seed_subscription(uow_factory, gateway_order_id="order_s1", creator_id=creator.id)
    gateway.payments["pay_s1"] = GatewayPayment(id="pay_s1", order_id="order_s1", status="captured", amount=49900)

    resp = await client.post(
        "/api/v1/payments/verify",
        json={"order_id": "order_s1", "payment_id": "pay_s1", "signature": verifier.sign_payment("order_s1", "pay_s1")},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["settlement"]["reason"] == "subscription_activated"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 49900
    status = await client.get("/api/v1/payments/status/order_s1/pay_s1")
    assert status.json()["data"]["status"] == "completed"


@pytest.mark.asyncio
async def test_verify_still_processing_is_accepted(client, gateway, verifier):
    gateway.payments["pay_2"] = GatewayPayment(id="pay_2", order_id="order_2", status="created", amount=100)
    resp = await client.post(
        "/api/v1/payments/verify",
        json={"order_id": "order_2", "payment_id": "pay_2", "signature": verifier.sign_payment("order_2", "pay_2")},
    )
    assert resp.status_code == 202
    assert resp.json()["data"]["success"] is False


@pytest.mark.asyncio
async def test_verify_bad_signature(client, gateway):
    resp = await client.post(
        "/api/v1/payments/verify", json={"order_id": "o", "payment_id": "p", "signature": "f" * 64}
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "SignatureInvalid"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_status_lookup_and_clear(client):
    missing = await client.get("/api/v1/payments/status/order_x/pay_x")
    assert missing.status_code == 404

    await client.post("/api/v1/payments/verify", json={"order_id": "order_x", "payment_id": "pay_x", "signature": "0" * 64})
    listed = await client.get("/api/v1/payments/status")
    assert [s["order_id"] for s in listed.json()["data"]] == ["order_x"]
    cleared = await client.delete("/api/v1/payments/status/order_x/pay_x")
    assert cleared.json()["data"]["removed"] is True


@pytest.mark.asyncio
async def test_webhook_requires_valid_signature(client):
    body, headers = _signed({"id": "evt_1", "event": "payment.captured", "payload": {}})
    headers["X-Razorpay-Signature"] = "0" * 64
    resp = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_webhook_settles_once(client, uow_factory):
    creator = await seed_creator(uow_factory)
    await seed_subscription(uow_factory, gateway_order_id="order_w1", creator_id=creator.id)
    body, headers = _signed(
        {
            "id": "evt_w1",
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_w1", "order_id": "order_w1", "amount": 49900}}},
        }
    )

    first = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    second = await client.post("/api/v1/payments/webhook", content=body, headers=headers)

    assert first.json()["data"]["reason"] == "subscription_activated"
    assert second.json()["data"]["reason"] == "already_processed"
    assert (await load_creator(uow_factory, creator.id)).available_balance == 49900


@pytest.mark.asyncio
async def test_webhook_malformed_known_event(client):
    body, headers = _signed({"id": "evt_m", "event": "payment.captured", "payload": {"payment": {"entity": {}}}})
    resp = await client.post("/api/v1/payments/webhook", content=body, headers=headers)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_revenue_preview(client):
    resp = await client.post(
        "/api/v1/payments/revenue/preview", json={"product_type": "merch", "unit_price": 100000, "quantity": 1}
    )
    data = resp.json()["data"]
    assert (data["platform_fee"], data["cost_recovery"], data["creator_net"]) == (10000, 20000, 70000)


@pytest.mark.asyncio
async def test_payout_endpoints(client, uow_factory, gateway):
    creator = await seed_creator(uow_factory, balance=50000)

    created = await client.post("/api/v1/payouts", json={"creator_id": creator.id, "amount": 20000})
    too_much = await client.post("/api/v1/payouts", json={"creator_id": creator.id, "amount": 999999})
    listed = await client.get(f"/api/v1/payouts/creators/{creator.id}")
    gateway_id = created.json()["data"]["gateway_payout_id"]
    synced = await client.get(f"/api/v1/payouts/{gateway_id}/status")

    assert created.status_code == 201
    assert too_much.status_code == 400
    assert gateway.count("create_transfer") == 1
    assert [p["amount"] for p in listed.json()["data"]] == [20000]
    assert synced.json()["data"]["reason"] == "status_unchanged"
