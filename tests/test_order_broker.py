import re

import pytest

from application.ports.payment_gateway import GatewayServerError
from application.services.order_broker import OrderBroker, generate_receipt
from domain.payment.exceptions import GatewayUnavailableException, InvalidPaymentInputException


@pytest.fixture
def broker(gateway, executor):
    return OrderBroker(gateway, executor)


def test_receipt_format():
    receipt = generate_receipt()
    assert re.fullmatch(r"order_\d{13}_[a-z0-9]{9}", receipt)
    assert generate_receipt() != receipt


@pytest.mark.asyncio
async def test_create_order_normalizes_currency(broker, gateway):
    order = await broker.create_order(50000, "inr")
    assert order.amount == 50000
    assert order.currency == "INR"
    (_, request), = gateway.calls
    assert request.receipt.startswith("order_")


@pytest.mark.asyncio
async def test_create_order_keeps_caller_receipt(broker, gateway):
    await broker.create_order(100, "USD", receipt="rcpt_42")
    assert gateway.calls[0][1].receipt == "rcpt_42"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, 10.5, "100", True, None])
async def test_invalid_amount_makes_no_gateway_call(broker, gateway, amount):
    with pytest.raises(InvalidPaymentInputException) as excinfo:
        await broker.create_order(amount, "INR")
    assert excinfo.value.message == "Invalid amount. Amount must be a positive number."
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_unsupported_currency_lists_allowed_ones(broker, gateway):
    with pytest.raises(InvalidPaymentInputException) as excinfo:
        await broker.create_order(100, "GBP")
    assert excinfo.value.message == "Invalid currency. Supported currencies: EUR, INR, USD"
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_transient_gateway_errors_are_retried(broker, gateway, sleeper):
    gateway.fail_with = [GatewayServerError("502", status_code=502)]
    order = await broker.create_order(100)
    assert order.id == "order_gw_1"
    assert gateway.count("create_order") == 2
    assert sleeper.delays == [1.0]


@pytest.mark.asyncio
async def test_gateway_outage_is_user_safe(broker, gateway):
    gateway.fail_with = [GatewayServerError("upstream exploded", status_code=500) for _ in range(4)]
    with pytest.raises(GatewayUnavailableException) as excinfo:
        await broker.create_order(100)
    assert "exploded" not in excinfo.value.message
